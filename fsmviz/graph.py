# fsmviz/graph.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from .analysis.declarations import StateTable
from .analysis.helpers import ResolvedClause, Unresolved
from .analysis.transitions import GotoState, Stay, Stop, Transitions
from .constants import ENTRY, STOP, UNKNOWN
from .issues import W_UNKNOWN_SOURCE, W_UNKNOWN_TARGET, IssueLog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedEdge:
    source: str
    target: str
    label: str


@dataclass(frozen=True)
class Graph:
    """Canonical transition graph: ENTRY first, declared states, UNKNOWN, STOP last."""

    nodes: tuple[str, ...]
    edges: tuple[ResolvedEdge, ...]
    entry_state: Optional[str]
    # qualified id -> local name, for every declared state
    local_names: dict[str, str] = field(default_factory=dict)

    def transition_edges(self) -> tuple[ResolvedEdge, ...]:
        """Edges other than the synthetic ENTRY edge."""
        return tuple(e for e in self.edges if e.source != ENTRY)


def pick_entry_state(table: StateTable, transitions: Transitions) -> Optional[str]:
    """First declared state used as a `when` source, else the first declared state."""
    for source in transitions.block_sources:
        if source in table:
            return source
    ids = table.ids()
    return ids[0] if ids else None


def stop_label(label: str, stop: Stop) -> str:
    marker = "stop: failure" if stop.failure else "stop"
    return f"{label} ({marker})" if label else marker


def build_graph(
    table: StateTable,
    transitions: Transitions,
    clauses: list[ResolvedClause],
    log: IssueLog,
) -> Graph:
    """Assemble the graph in declaration/discovery order; unknown endpoints are dropped."""
    entry_state = pick_entry_state(table, transitions)
    edges: list[ResolvedEdge] = []
    if entry_state is not None:
        edges.append(ResolvedEdge(ENTRY, entry_state, ""))

    uses_unknown = False
    for clause in clauses:
        if clause.source not in table:
            log.warn(
                W_UNKNOWN_SOURCE,
                f"when({clause.source}) refers to an undeclared state; "
                f"transition {clause.label!r} dropped",
                line=clause.line,
                hint="declare it as `case object Name extends <StateType>`",
            )
            continue

        action = clause.action
        if isinstance(action, GotoState):
            if action.target not in table:
                log.warn(
                    W_UNKNOWN_TARGET,
                    f"goto({action.target}) refers to an undeclared state; "
                    f"transition {clause.label!r} dropped",
                    line=clause.line,
                )
                continue
            edges.append(ResolvedEdge(clause.source, action.target, clause.label))
        elif isinstance(action, Stay):
            edges.append(ResolvedEdge(clause.source, clause.source, clause.label))
        elif isinstance(action, Stop):
            edges.append(ResolvedEdge(clause.source, STOP, stop_label(clause.label, action)))
        elif isinstance(action, Unresolved):
            uses_unknown = True
            edges.append(ResolvedEdge(clause.source, UNKNOWN, clause.label))
        else:
            # CallLocal never survives resolution.
            raise TypeError(f"unexpected action after resolution: {action!r}")

    nodes = [ENTRY, *table.ids()]
    if uses_unknown:
        nodes.append(UNKNOWN)
    nodes.append(STOP)

    logger.debug("graph: %d node(s), %d edge(s)", len(nodes), len(edges))
    return Graph(
        nodes=tuple(nodes),
        edges=tuple(edges),
        entry_state=entry_state,
        local_names={d.qualified_id: d.local_name for d in table},
    )
