# fsmviz/mermaid_fmt.py
from __future__ import annotations

import html
import json
import re
from typing import Any

from .constants import MERMAID_RESERVED

# Mermaid state IDs must be alphanumeric/underscore and must not start with a
# digit.
MERMAID_ID_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def mermaid_block(code: str) -> str:
    """Wrap Mermaid source in a Markdown Mermaid code fence."""
    return "```mermaid\n" + code.rstrip() + "\n```\n"


def mm_text(text: str, *, escape_semicolon: bool = False) -> str:
    """Escape text for Mermaid labels."""
    normalized = re.sub(r"\s+", " ", html.unescape(str(text))).strip()
    # Semicolons first: the entities below end in `;` themselves.
    if escape_semicolon:
        normalized = normalized.replace(";", "#59;")
    return (
        normalized.replace("&", "#amp;")
        .replace("<", "#lt;")
        .replace(">", "#gt;")
        .replace('"', "#quot;")
        .replace("|", "#124;")
    )


def mm_init(**config_sections: Any) -> str:
    # Stable JSON: sorted keys + compact separators.
    payload = json.dumps(config_sections, sort_keys=True, separators=(",", ":"))
    return f"%%{{init:{payload}}}%%"


def is_bare_state_id(name: str) -> bool:
    return bool(MERMAID_ID_RE.match(name)) and name not in MERMAID_RESERVED


def mm_alias_base(name: str) -> str:
    """Mermaid-safe id derived from an arbitrary name (used only as an alias)."""
    base = re.sub(r"[^A-Za-z0-9_]+", "_", name).strip("_") or "anon"
    if base[0].isdigit() or base in MERMAID_RESERVED:
        base = f"s_{base}"
    return base


def mm_unique_id(base: str, used: set[str]) -> str:
    candidate = base
    n = 2
    while candidate in used:
        candidate = f"{base}_{n}"
        n += 1
    used.add(candidate)
    return candidate


def mm_state_alias(state_id: str, label: str) -> str:
    return f'  state "{mm_text(label)}" as {state_id}'


def mm_state_edge(src: str, dst: str, label: str | None = None) -> str:
    if label:
        return f"  {src} --> {dst} : {mm_text(label, escape_semicolon=True)}"
    return f"  {src} --> {dst}"


def mm_direction(direction: str) -> str:
    return f"  direction {direction}"
