# fsmviz/analysis/helpers.py
"""Local helper resolution.

A clause may end in a call to a helper defined elsewhere in the source
(``case Event(Begin, _) => handleBegin()``). Helpers are inlined exactly one
level deep: a helper whose outcome is itself another helper call is reported
instead of followed, which keeps mutually recursive helpers from looping.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from ..issues import W_UNRESOLVED_CALL, IssueLog
from .declarations import StateTable
from .lexer import TokenStream
from .transitions import (
    ActionRef,
    BodyReader,
    Branch,
    CallLocal,
    Transitions,
    pattern_bindings,
)

logger = logging.getLogger(__name__)

# Tokens that end an unbraced `def f() = expr` body.
_DEF_TERMINATORS = (
    "def",
    "val",
    "var",
    "lazy",
    "when",
    "whenUnhandled",
    "onTransition",
    "onTermination",
    "startWith",
    "initialize",
    "override",
    "private",
    "protected",
    "final",
    "implicit",
    "case",
    "class",
    "object",
    "trait",
)


@dataclass(frozen=True)
class LocalFunctionDef:
    name: str
    branches: tuple[Branch, ...]
    line: int


@dataclass(frozen=True)
class Unresolved:
    """Marker for a clause whose destination could not be determined."""

    name: str


@dataclass(frozen=True)
class ResolvedClause:
    source: str
    label: str
    action: Union[ActionRef, Unresolved]
    line: int


def _param_names(stream: TokenStream, i: int) -> frozenset[str]:
    """Parameter names of the `def` at `i`, over all parameter lists."""
    names: frozenset[str] = frozenset()
    j = i + 2
    while True:
        tok = stream.get(j)
        if tok is None or not (tok.is_punct("(") or tok.is_punct("[")):
            return names
        close = stream.closing(j)
        if tok.is_punct("("):
            names |= pattern_bindings(stream, j + 1, close)
        j = close + 1


def _body_range(stream: TokenStream, i: int) -> Optional[tuple[int, int]]:
    """Body token range of the `def` at `i`, or None for abstract defs."""
    depth = stream[i].depth
    j = i + 2
    n = len(stream)
    while j < n:
        tok = stream[j]
        if tok.is_punct("(") or tok.is_punct("["):
            j = stream.closing(j) + 1
            continue
        if tok.is_punct("{"):
            # Procedure syntax: `def f() { ... }`
            return j + 1, stream.closing(j)
        if tok.is_op("="):
            break
        if tok.depth < depth or (tok.depth == depth and tok.is_ident(*_DEF_TERMINATORS)):
            return None
        j += 1
    else:
        return None

    start = j + 1
    first = stream.get(start)
    if first is None:
        return None
    if first.is_punct("{"):
        return start + 1, stream.closing(start)
    k = start
    while k < n:
        tok = stream[k]
        if tok.depth < depth or (tok.depth == depth and tok.is_ident(*_DEF_TERMINATORS)):
            break
        k += 1
    return start, k


def extract_local_functions(stream: TokenStream, table: StateTable) -> dict[str, LocalFunctionDef]:
    """Index helper definitions by name; the first definition of a name wins."""
    reader = BodyReader(stream, table)
    functions: dict[str, LocalFunctionDef] = {}
    for i, tok in enumerate(stream.tokens):
        name = stream.get(i + 1)
        if not tok.is_ident("def") or name is None or not name.is_ident():
            continue
        if name.text in functions:
            continue
        body = _body_range(stream, i)
        if body is None:
            continue
        branches = tuple(reader.outcomes(*body, _param_names(stream, i)))
        functions[name.text] = LocalFunctionDef(name.text, branches, name.line)

    logger.debug("indexed %d local function(s)", len(functions))
    return functions


def resolve_clauses(
    transitions: Transitions,
    functions: dict[str, LocalFunctionDef],
    log: IssueLog,
) -> list[ResolvedClause]:
    """Replace `CallLocal` actions with the helper's outcome(s), one level deep."""
    resolved: list[ResolvedClause] = []
    for clause in transitions.clauses:
        action = clause.action
        if not isinstance(action, CallLocal):
            resolved.append(ResolvedClause(clause.source, clause.event, action, clause.line))
            continue

        fn = functions.get(action.name)
        if fn is None or not fn.branches:
            reason = "is not defined" if fn is None else "issues no transition"
            log.warn(
                W_UNRESOLVED_CALL,
                f"local function {action.name!r} {reason}; "
                f"clause {clause.event!r} routed to the unknown state",
                line=clause.line,
            )
            resolved.append(
                ResolvedClause(clause.source, clause.event, Unresolved(action.name), clause.line)
            )
            continue

        fan_out = len(fn.branches) > 1
        for branch in fn.branches:
            label = clause.event
            if fan_out and branch.label:
                label = f"{clause.event}/{branch.label}"
            target: Union[ActionRef, Unresolved] = branch.action
            if isinstance(branch.action, CallLocal):
                log.warn(
                    W_UNRESOLVED_CALL,
                    f"local function {fn.name!r} defers to {branch.action.name!r}; "
                    "nested helper calls are not followed",
                    line=clause.line,
                )
                target = Unresolved(branch.action.name)
            resolved.append(ResolvedClause(clause.source, label, target, clause.line))
    return resolved
