# fsmviz/diagrams/state_diagram.py
from __future__ import annotations

from collections import Counter
from typing import Optional

from ..config import RenderConfig
from ..constants import DIAGRAM_HEADER, ENTRY, NO_TRANSITIONS_MARKUP, STOP, UNKNOWN, UNKNOWN_LABEL
from ..graph import Graph
from ..mermaid_fmt import (
    is_bare_state_id,
    mm_alias_base,
    mm_direction,
    mm_init,
    mm_state_alias,
    mm_state_edge,
    mm_unique_id,
)


def display_names(graph: Graph) -> dict[str, str]:
    """Local name when unique among the graph's states, else the qualified id."""
    counts = Counter(graph.local_names.values())
    return {
        qid: local if counts[local] == 1 else qid
        for qid, local in graph.local_names.items()
    }


def _state_ids(graph: Graph) -> tuple[dict[str, str], list[str]]:
    """Mermaid ids per node plus the declaration lines, in node order."""
    names = display_names(graph)
    ids: dict[str, str] = {}
    used: set[str] = {name for name in names.values() if is_bare_state_id(name)}
    decl_lines: list[str] = []

    for node in graph.nodes:
        if node in (ENTRY, STOP):
            continue
        if node == UNKNOWN:
            ids[node] = mm_unique_id("Unknown", used)
            decl_lines.append(mm_state_alias(ids[node], UNKNOWN_LABEL))
            continue
        name = names[node]
        if is_bare_state_id(name):
            ids[node] = name
            decl_lines.append(f"  {name}")
        else:
            ids[node] = mm_unique_id(mm_alias_base(name), used)
            decl_lines.append(mm_state_alias(ids[node], name))
    return ids, decl_lines


def gen_state_diagram(graph: Graph, cfg: Optional[RenderConfig] = None) -> str:
    """Render the graph as a Mermaid stateDiagram-v2.

    A graph without transitions renders as NO_TRANSITIONS_MARKUP so the view
    layer can show a placeholder instead of an empty canvas.
    """
    cfg = cfg or RenderConfig()
    if not graph.transition_edges():
        return NO_TRANSITIONS_MARKUP

    ids, decl_lines = _state_ids(graph)

    lines: list[str] = []
    if cfg.theme:
        lines.append(mm_init(theme=cfg.theme))
    lines.append(DIAGRAM_HEADER)
    if cfg.direction:
        lines.append(mm_direction(cfg.direction))
    lines.extend(decl_lines)

    for edge in graph.edges:
        src = "[*]" if edge.source == ENTRY else ids[edge.source]
        dst = "[*]" if edge.target == STOP else ids[edge.target]
        lines.append(mm_state_edge(src, dst, edge.label))

    return "\n".join(lines) + "\n"
