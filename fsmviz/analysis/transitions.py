# fsmviz/analysis/transitions.py
"""Guarded transition blocks: ``when(State) { case Event(...) => action }``."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from ..constants import NON_CALL_WORDS
from ..issues import W_CLAUSE_NO_ACTION, IssueLog
from .declarations import StateTable, read_dotted
from .lexer import TokenStream

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GotoState:
    target: str
    payload: Optional[str] = None


@dataclass(frozen=True)
class Stay:
    payload: Optional[str] = None


@dataclass(frozen=True)
class Stop:
    failure: bool = False
    reason: Optional[str] = None


@dataclass(frozen=True)
class CallLocal:
    name: str


ActionRef = Union[GotoState, Stay, Stop, CallLocal]


@dataclass(frozen=True)
class TransitionClause:
    source: str
    event: str
    action: ActionRef
    line: int


@dataclass(frozen=True)
class Transitions:
    clauses: tuple[TransitionClause, ...]
    # Source reference of every `when` block, in source order.
    block_sources: tuple[str, ...]


def _split_first_arg(stream: TokenStream, start: int, end: int) -> int:
    """End index of the first comma-separated argument in tokens[start:end]."""
    depth = stream[start].depth if start < end else 0
    for k in range(start, end):
        tok = stream[k]
        if tok.depth == depth and tok.is_punct(","):
            return k
    return end


def unquote(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
        return text[1:-1]
    return text


def _payload(stream: TokenStream, j: int, end: int) -> Optional[str]:
    """Payload of a trailing `using expr` / `.using(expr)`."""
    tok = stream.get(j)
    if tok is None or j >= end:
        return None
    if tok.is_punct(".") and j + 2 < end:
        word, paren = stream[j + 1], stream[j + 2]
        if word.is_ident("using") and paren.is_punct("("):
            return stream.text(j + 3, stream.closing(j + 2)) or None
        return None
    if tok.is_ident("using") and j + 1 < end and stream[j + 1].is_ident():
        _, k = read_dotted(stream, j + 1)
        while k < end and (stream[k].is_punct("(") or stream[k].is_punct("[")):
            k = stream.closing(k) + 1
        return stream.text(j + 1, min(k, end))
    return None


def _target_ref(stream: TokenStream, open_paren: int, table: StateTable) -> Optional[str]:
    close = stream.closing(open_paren)
    first = stream.get(open_paren + 1)
    if first is None or open_paren + 1 >= close or not first.is_ident():
        return None
    ref, _ = read_dotted(stream, open_paren + 1)
    resolved = table.resolve(ref, first.line, first.column)
    return resolved if resolved is not None else ref


def parse_directive(
    stream: TokenStream, i: int, end: int, table: StateTable
) -> Optional[ActionRef]:
    """Recognize a goto/stay/stop directive starting at token `i`."""
    tok = stream[i]
    if tok.kind != "ident":
        return None
    prev = stream.get(i - 1)
    if prev is not None and prev.is_punct("."):
        return None
    nxt = stream.get(i + 1)
    has_call = nxt is not None and i + 1 < end and nxt.is_punct("(")

    if tok.text == "goto" and has_call:
        target = _target_ref(stream, i + 1, table)
        if target is None:
            return None
        return GotoState(target, _payload(stream, stream.closing(i + 1) + 1, end))

    if tok.text == "Target" and i + 3 < end:
        dot, enter, paren = stream[i + 1], stream[i + 2], stream[i + 3]
        if dot.is_punct(".") and enter.is_ident("enter") and paren.is_punct("("):
            target = _target_ref(stream, i + 3, table)
            if target is not None:
                close = stream.closing(i + 3)
                arg_end = _split_first_arg(stream, i + 4, close)
                payload = stream.text(arg_end + 1, close) if arg_end < close else None
                return GotoState(target, payload or None)
        return None

    if tok.text == "stay":
        after = stream.closing(i + 1) + 1 if has_call else i + 1
        return Stay(_payload(stream, after, end))

    if tok.text in ("stop", "stopSuccess", "stopFailure"):
        reason = stream.text(i + 2, stream.closing(i + 1)) if has_call else ""
        failure = tok.text == "stopFailure" or (
            tok.text == "stop"
            and has_call
            and any(t.is_ident("Failure") for t in stream.tokens[i + 2:stream.closing(i + 1)])
        )
        return Stop(failure=failure, reason=reason or None)

    return None


def _local_call(
    stream: TokenStream, i: int, end: int, bound: frozenset[str] = frozenset()
) -> Optional[CallLocal]:
    tok = stream[i]
    if tok.kind != "ident" or tok.text in NON_CALL_WORDS or not tok.text[0].islower():
        return None
    if tok.text in bound:
        return None
    prev, nxt = stream.get(i - 1), stream.get(i + 1)
    if prev is not None and (prev.is_punct(".") or prev.is_ident("new", "def", "val", "var")):
        return None
    if nxt is not None and i + 1 < end and not nxt.is_punct("("):
        # `helper` used as a bare expression is fine; `x.y`, `x = ...`, `x match` are not.
        if nxt.is_punct(".") or nxt.kind == "op" or nxt.is_ident() or nxt.is_punct(":"):
            return None
    return CallLocal(tok.text)


def find_action(
    stream: TokenStream,
    start: int,
    end: int,
    table: StateTable,
    bound: frozenset[str] = frozenset(),
) -> Optional[ActionRef]:
    """First transition directive in tokens[start:end], else the first local call.

    Names in `bound` (pattern variables, parameters) are never local calls.
    """
    for k in range(start, end):
        action = parse_directive(stream, k, end, table)
        if action is not None:
            return action
    for k in range(start, end):
        call = _local_call(stream, k, end, bound)
        if call is not None:
            return call
    return None


def event_label(stream: TokenStream, start: int, end: int) -> str:
    """Event label of a case pattern in tokens[start:end]."""
    depth = stream[start].depth if start < end else 0
    for k in range(start, end):
        if stream[k].depth == depth and stream[k].is_ident("if"):
            end = k
            break

    first, paren = stream.get(start), stream.get(start + 1)
    if (
        first is not None
        and first.is_ident("Event")
        and paren is not None
        and start + 1 < end
        and paren.is_punct("(")
    ):
        close = stream.closing(start + 1)
        arg_end = _split_first_arg(stream, start + 2, close)
        return unquote(stream.text(start + 2, arg_end))
    return unquote(stream.text(start, end))


def pattern_bindings(stream: TokenStream, start: int, end: int) -> frozenset[str]:
    """Lowercase names bound by a case pattern or parameter list in tokens[start:end]."""
    depth = stream[start].depth if start < end else 0
    names: set[str] = set()
    for k in range(start, end):
        tok = stream[k]
        if tok.depth == depth and tok.is_ident("if"):
            break
        if tok.kind != "ident" or not tok.text[0].islower():
            continue
        prev, nxt = stream.get(k - 1), stream.get(k + 1)
        if prev is not None and prev.is_punct("."):
            continue
        if nxt is not None and k + 1 < end and (nxt.is_punct("(") or nxt.is_punct(".")):
            continue
        names.add(tok.text)
    return frozenset(names)


def case_arms(stream: TokenStream, open_brace: int) -> list[tuple[int, int, int]]:
    """(case index, arrow index, arm end) for each `case` directly in a block."""
    close = stream.closing(open_brace)
    depth = stream[open_brace].depth + 1
    starts = [
        k
        for k in range(open_brace + 1, close)
        if stream[k].depth == depth and stream[k].is_ident("case")
        and not (stream.get(k + 1) is not None and stream[k + 1].is_ident("object", "class"))
    ]
    arms: list[tuple[int, int, int]] = []
    for pos, k in enumerate(starts):
        arm_end = starts[pos + 1] if pos + 1 < len(starts) else close
        arrow = next(
            (a for a in range(k + 1, arm_end) if stream[a].depth == depth and stream[a].is_op("=>")),
            None,
        )
        if arrow is not None:
            arms.append((k, arrow, arm_end))
    return arms


@dataclass(frozen=True)
class Branch:
    label: Optional[str]
    action: ActionRef


def _compose(label: Optional[str], sub: Optional[str]) -> Optional[str]:
    if label and sub:
        return f"{label}/{sub}"
    return label or sub


class BodyReader:
    """Reads the possible actions of a clause or helper body.

    `match` arms are labelled with their pattern, `if` arms with their
    condition and the final arm with `else`. Nested branches compose as `a/b`.
    """

    def __init__(self, stream: TokenStream, table: StateTable) -> None:
        self.stream = stream
        self.table = table

    def outcomes(self, start: int, end: int, bound: frozenset[str] = frozenset()) -> list[Branch]:
        """Possible actions of tokens[start:end] with their branch labels."""
        if start >= end:
            return []
        stream = self.stream
        base = min(stream[k].depth for k in range(start, end))

        for k in range(start, end):
            tok = stream[k]
            if tok.depth != base:
                continue
            nxt = stream.get(k + 1)
            if nxt is None or k + 1 >= end:
                break
            if tok.is_ident("match") and nxt.is_punct("{"):
                branches = self._match_arms(k + 1, bound)
            elif tok.is_ident("if") and nxt.is_punct("("):
                branches = self._if_chain(k, end, bound)
            else:
                continue
            if branches:
                return branches
            break

        action = find_action(stream, start, end, self.table, bound)
        return [Branch(None, action)] if action is not None else []

    def _match_arms(self, brace: int, bound: frozenset[str]) -> list[Branch]:
        branches: list[Branch] = []
        for case_i, arrow, arm_end in case_arms(self.stream, brace):
            label = self._pattern_label(case_i + 1, arrow)
            arm_bound = bound | pattern_bindings(self.stream, case_i + 1, arrow)
            for sub in self.outcomes(arrow + 1, arm_end, arm_bound):
                branches.append(Branch(_compose(label, sub.label), sub.action))
        return branches

    def _pattern_label(self, start: int, end: int) -> str:
        stream = self.stream
        for k in range(start, end):
            if stream[k].depth == stream[start].depth and stream[k].is_ident("if"):
                end = k
                break
        return unquote(stream.text(start, end))

    def _arm_end(self, start: int, end: int) -> int:
        """End of one `if`/`else` arm starting at `start`."""
        stream = self.stream
        if start >= end:
            return end
        if stream[start].is_punct("{"):
            return stream.closing(start) + 1
        depth = stream[start].depth
        for k in range(start, end):
            if stream[k].depth == depth and stream[k].is_ident("else"):
                return k
        return end

    def _arm_range(self, start: int, end: int) -> tuple[int, int]:
        stream = self.stream
        if start < end and stream[start].is_punct("{"):
            return start + 1, stream.closing(start)
        return start, end

    def _if_chain(self, k: int, end: int, bound: frozenset[str]) -> list[Branch]:
        stream = self.stream
        branches: list[Branch] = []
        while True:
            close = stream.closing(k + 1)
            cond = stream.text(k + 2, close)
            arm_stop = self._arm_end(close + 1, end)
            for sub in self.outcomes(*self._arm_range(close + 1, arm_stop), bound):
                branches.append(Branch(_compose(cond, sub.label), sub.action))

            tok = stream.get(arm_stop)
            if tok is None or arm_stop >= end or not tok.is_ident("else"):
                return branches
            after = stream.get(arm_stop + 1)
            paren = stream.get(arm_stop + 2)
            if after is not None and after.is_ident("if") and paren is not None and paren.is_punct("("):
                k = arm_stop + 1
                continue
            else_end = self._arm_end(arm_stop + 1, end)
            for sub in self.outcomes(*self._arm_range(arm_stop + 1, else_end), bound):
                branches.append(Branch(_compose("else", sub.label), sub.action))
            return branches


def _block_brace(stream: TokenStream, close_paren: int) -> Optional[int]:
    nxt = stream.get(close_paren + 1)
    if nxt is None:
        return None
    if nxt.is_punct("{"):
        return close_paren + 1
    inner = stream.get(close_paren + 2)
    if nxt.is_punct("(") and inner is not None and inner.is_punct("{"):
        return close_paren + 2
    return None


def extract_transitions(stream: TokenStream, table: StateTable, log: IssueLog) -> Transitions:
    """Collect the TransitionClauses of every `when` block.

    A clause whose body branches (`if`/`else`, `match`) yields one clause per
    branch, labelled `event/branch`.
    """
    stream.check_balanced()

    reader = BodyReader(stream, table)
    clauses: list[TransitionClause] = []
    sources: list[str] = []
    for i, tok in enumerate(stream.tokens):
        paren = stream.get(i + 1)
        if not tok.is_ident("when") or paren is None or not paren.is_punct("("):
            continue
        ref_tok = stream.get(i + 2)
        if ref_tok is None or not ref_tok.is_ident():
            continue
        close_paren = stream.closing(i + 1)
        ref, _ = read_dotted(stream, i + 2)
        brace = _block_brace(stream, close_paren)
        if brace is None:
            continue

        resolved = table.resolve(ref, ref_tok.line, ref_tok.column)
        source = resolved if resolved is not None else ref
        sources.append(source)

        for case_i, arrow, arm_end in case_arms(stream, brace):
            event = event_label(stream, case_i + 1, arrow)
            line = stream[case_i].line
            bound = pattern_bindings(stream, case_i + 1, arrow)
            branches = reader.outcomes(arrow + 1, arm_end, bound)
            if not branches:
                log.warn(
                    W_CLAUSE_NO_ACTION,
                    f"clause {event!r} in when({ref}) has no recognizable action; skipped",
                    line=line,
                )
                continue
            fan_out = len(branches) > 1
            for branch in branches:
                label = f"{event}/{branch.label}" if fan_out and branch.label else event
                clauses.append(TransitionClause(source, label, branch.action, line))

    logger.debug("extracted %d clause(s) from %d block(s)", len(clauses), len(sources))
    return Transitions(clauses=tuple(clauses), block_sources=tuple(sources))
