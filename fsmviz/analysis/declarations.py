# fsmviz/analysis/declarations.py
"""State declaration extraction.

Recognizes ``object Name { ... }`` groups (which qualify the states declared
inside them) and ``case object Name extends StateType`` declarations, inside a
group or at top level.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterator, Optional

from ..constants import FSM_BASE_TYPES
from ..errors import AmbiguousStateRefError, DuplicateStateError
from .lexer import TokenStream

logger = logging.getLogger(__name__)

_TYPE_KEYWORDS = ("trait", "class", "object")


@dataclass(frozen=True)
class StateDecl:
    scope: Optional[str]
    local_name: str
    qualified_id: str
    line: int
    column: int


class StateTable:
    """Declared states in order of first appearance."""

    def __init__(self, decls: list[StateDecl]) -> None:
        self.decls: tuple[StateDecl, ...] = tuple(decls)
        self._by_id: dict[str, StateDecl] = {d.qualified_id: d for d in self.decls}
        self._by_local: dict[str, list[str]] = defaultdict(list)
        for d in self.decls:
            self._by_local[d.local_name].append(d.qualified_id)

    def __contains__(self, qualified_id: object) -> bool:
        return qualified_id in self._by_id

    def __iter__(self) -> Iterator[StateDecl]:
        return iter(self.decls)

    def __len__(self) -> int:
        return len(self.decls)

    def ids(self) -> list[str]:
        return [d.qualified_id for d in self.decls]

    def resolve(
        self, ref: str, line: Optional[int] = None, column: Optional[int] = None
    ) -> Optional[str]:
        """Resolve a qualified or bare state reference to a qualified id.

        Returns None when nothing matches; raises AmbiguousStateRefError when
        a bare (or partially qualified) name matches several states.
        """
        if ref in self._by_id:
            return ref

        parts = ref.split(".")
        if len(parts) == 1:
            candidates = list(self._by_local.get(ref, ()))
        else:
            candidates = [q for q in self._by_id if q.endswith("." + ref)]

        if len(candidates) == 1:
            return candidates[0]
        if len(candidates) > 1:
            raise AmbiguousStateRefError(ref, tuple(candidates), line, column)

        # `Outer.State.Idle` when only `State.Idle` is declared.
        for k in range(1, len(parts)):
            tail = ".".join(parts[k:])
            if tail in self._by_id:
                return tail
        return None


def read_dotted(stream: TokenStream, i: int) -> tuple[str, int]:
    """Read `a.b.c` starting at ident `i`; returns (text, next index)."""
    names = [stream[i].text]
    j = i + 1
    while True:
        dot, nxt = stream.get(j), stream.get(j + 1)
        if dot is None or nxt is None or not dot.is_punct(".") or not nxt.is_ident():
            break
        names.append(nxt.text)
        j += 2
    return ".".join(names), j


def _skip_brackets(stream: TokenStream, j: int) -> int:
    while True:
        tok = stream.get(j)
        if tok is None or not (tok.is_punct("[") or tok.is_punct("(")):
            return j
        j = stream.closing(j) + 1


def _read_supertypes(stream: TokenStream, j: int) -> tuple[list[str], int]:
    """Parse an optional `extends A[..](..) with B ...` clause at `j`."""
    j = _skip_brackets(stream, j)
    tok = stream.get(j)
    if tok is None or not tok.is_ident("extends"):
        return [], j

    supertypes: list[str] = []
    j += 1
    while True:
        tok = stream.get(j)
        if tok is None or not tok.is_ident():
            break
        dotted, j = read_dotted(stream, j)
        supertypes.append(dotted.rsplit(".", 1)[-1])
        j = _skip_brackets(stream, j)
        tok = stream.get(j)
        if tok is None or not tok.is_ident("with"):
            break
        j += 1
    return supertypes, j


def find_state_types(stream: TokenStream) -> Optional[frozenset[str]]:
    """Names of the state type(s), or None when every case object counts.

    The first type argument of `FSM[...]` (and friends) is the state type;
    traits and classes extending a state type are state types too.
    """
    declared: set[str] = set()
    parents: dict[str, list[str]] = {}
    object_supers: set[str] = set()

    for i, tok in enumerate(stream.tokens):
        if tok.is_ident(*FSM_BASE_TYPES):
            bracket = stream.get(i + 1)
            first = stream.get(i + 2)
            if bracket is not None and bracket.is_punct("[") and first is not None and first.is_ident():
                dotted, _ = read_dotted(stream, i + 2)
                declared.add(dotted.rsplit(".", 1)[-1])
            continue

        if tok.is_ident(*_TYPE_KEYWORDS):
            name = stream.get(i + 1)
            if name is None or not name.is_ident():
                continue
            supers, _ = _read_supertypes(stream, i + 2)
            if tok.text == "object":
                object_supers.update(supers)
            else:
                parents.setdefault(name.text, []).extend(supers)

    if not declared:
        fallback = frozenset(s for s in object_supers if "state" in s.lower())
        return fallback or None

    changed = True
    while changed:
        changed = False
        for name, supers in parents.items():
            if name not in declared and declared.intersection(supers):
                declared.add(name)
                changed = True
    return frozenset(declared)


def extract_declarations(stream: TokenStream) -> StateTable:
    """Build the state table from `object` groups and state declarations."""
    state_types = find_state_types(stream)
    decls: list[StateDecl] = []
    seen: dict[str, StateDecl] = {}
    # (closing brace index, group name) for the enclosing `object` groups.
    groups: list[tuple[int, str]] = []

    i = 0
    n = len(stream)
    while i < n:
        while groups and groups[-1][0] < i:
            groups.pop()

        tok = stream[i]
        is_case = tok.is_ident("case")
        kw_index = i + 1 if is_case else i
        kw = stream.get(kw_index)
        name = stream.get(kw_index + 1)
        if (
            kw is None
            or not kw.is_ident("object", "class")
            or name is None
            or not name.is_ident()
            or (kw.text == "class" and not is_case)
        ):
            i += 1
            continue

        supers, j = _read_supertypes(stream, kw_index + 2)
        body = stream.get(j)
        has_body = body is not None and body.is_punct("{")

        if state_types is None:
            is_state = is_case and kw.text == "object"
        else:
            is_state = bool(state_types.intersection(supers))

        if is_state:
            scope = ".".join(g for _, g in groups) or None
            qualified_id = f"{scope}.{name.text}" if scope else name.text
            if qualified_id in seen:
                raise DuplicateStateError(qualified_id, name.line, name.column)
            decl = StateDecl(scope, name.text, qualified_id, name.line, name.column)
            seen[qualified_id] = decl
            decls.append(decl)
            i = stream.closing(j) + 1 if has_body else j
            continue

        if kw.text == "object" and not is_case and has_body:
            groups.append((stream.closing(j), name.text))
        i = j

    logger.debug("extracted %d state declaration(s)", len(decls))
    return StateTable(decls)
