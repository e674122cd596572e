# fsmviz/analysis/lexer.py
"""Tolerant tokenizer for Akka FSM (Scala) source text.

Everything that is not whitespace or a comment becomes a token; unknown
characters are kept as one-character ``op`` tokens so later stages can skip
them. Bracket nesting is tracked while scanning and every opener is paired
with its closer, so structural problems can be reported with a position.
"""
from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

from ..constants import TOKEN_CACHE_SIZE
from ..errors import LexError, ParseError

logger = logging.getLogger(__name__)

OPENERS = {"(": ")", "[": "]", "{": "}"}
CLOSERS = {")": "(", "]": "[", "}": "{"}

_MULTI_OPS: tuple[str, ...] = ("=>", "->", "<-", "::", "==", "!=", "<=", ">=", "&&", "||")
_UNICODE_OPS = {"⇒": "=>", "→": "->", "←": "<-"}


@dataclass(frozen=True)
class Token:
    kind: str  # ident | number | string | char | punct | op
    text: str
    offset: int
    line: int
    column: int
    depth: int

    def is_ident(self, *names: str) -> bool:
        return self.kind == "ident" and (not names or self.text in names)

    def is_punct(self, text: str) -> bool:
        return self.kind == "punct" and self.text == text

    def is_op(self, text: str) -> bool:
        return self.kind == "op" and self.text == text


@dataclass(frozen=True)
class BalanceProblem:
    reason: str
    line: int
    column: int


@dataclass(frozen=True)
class TokenStream:
    tokens: tuple[Token, ...]
    pairs: Mapping[int, int]
    problems: tuple[BalanceProblem, ...]

    def __len__(self) -> int:
        return len(self.tokens)

    def __getitem__(self, index: int) -> Token:
        return self.tokens[index]

    def get(self, index: int) -> Optional[Token]:
        if 0 <= index < len(self.tokens):
            return self.tokens[index]
        return None

    def check_balanced(self) -> None:
        if self.problems:
            first = self.problems[0]
            raise ParseError(first.reason, first.line, first.column)

    def closing(self, index: int) -> int:
        """Index of the bracket closing the opener at `index`."""
        try:
            return self.pairs[index]
        except KeyError:
            tok = self.tokens[index]
            raise ParseError("unbalanced block", tok.line, tok.column) from None

    def text(self, start: int, end: int) -> str:
        """Source-like text for tokens[start:end] with normalized spacing."""
        out: list[str] = []
        prev: Optional[Token] = None
        for tok in self.tokens[start:end]:
            if prev is not None and _needs_space(prev, tok):
                out.append(" ")
            out.append(tok.text)
            prev = tok
        return "".join(out)


def _needs_space(prev: Token, tok: Token) -> bool:
    if tok.kind == "punct" and tok.text in (".", ",", ")", "]", ":", ";"):
        return False
    if prev.kind == "punct" and prev.text in (".", "(", "["):
        return False
    if prev.is_op("!"):
        return False
    if tok.kind == "punct" and tok.text in ("(", "["):
        return not (prev.kind == "ident" or prev.text in (")", "]"))
    return True


class _Scanner:
    def __init__(self, text: str) -> None:
        self.text = text
        self.n = len(text)
        self.i = 0
        self.line = 1
        self.line_start = 0
        self.tokens: list[Token] = []
        self.stack: list[tuple[str, int]] = []
        self.pairs: dict[int, int] = {}
        self.problems: list[BalanceProblem] = []

    def column(self, offset: int) -> int:
        return offset - self.line_start + 1

    def advance_to(self, end: int) -> None:
        """Move to `end`, keeping line bookkeeping for skipped newlines."""
        nl = self.text.rfind("\n", self.i, end)
        if nl != -1:
            self.line += self.text.count("\n", self.i, end)
            self.line_start = nl + 1
        self.i = end

    def emit(self, kind: str, text: str, start: int, line: int, column: int) -> None:
        self.tokens.append(Token(kind, text, start, line, column, len(self.stack)))

    def run(self) -> TokenStream:
        text, n = self.text, self.n
        while self.i < n:
            ch = text[self.i]
            start, line, column = self.i, self.line, self.column(self.i)

            if ch.isspace():
                self.advance_to(self.i + 1)
                continue

            if text.startswith("//", self.i):
                end = text.find("\n", self.i)
                self.advance_to(n if end == -1 else end)
                continue

            if text.startswith("/*", self.i):
                self.advance_to(self._block_comment_end(line, column))
                continue

            if ch.isalpha() or ch in "_$":
                end = self.i + 1
                while end < n and (text[end].isalnum() or text[end] in "_$"):
                    end += 1
                self.emit("ident", text[self.i:end], start, line, column)
                self.advance_to(end)
                continue

            if ch == "`":
                end = text.find("`", self.i + 1)
                if end != -1 and "\n" not in text[self.i:end]:
                    self.emit("ident", text[self.i + 1:end], start, line, column)
                    self.advance_to(end + 1)
                    continue

            if ch.isdigit():
                end = self._number_end()
                self.emit("number", text[self.i:end], start, line, column)
                self.advance_to(end)
                continue

            if ch == '"':
                end = self._string_end(line, column)
                self.emit("string", text[self.i:end], start, line, column)
                self.advance_to(end)
                continue

            if ch == "'":
                end = self._char_end()
                if end:
                    self.emit("char", text[self.i:end], start, line, column)
                    self.advance_to(end)
                    continue

            if ch in OPENERS:
                self.open_bracket(start, line, column, ch)
                self.advance_to(self.i + 1)
                continue

            if ch in CLOSERS:
                self.close_bracket(start, line, column, ch)
                self.advance_to(self.i + 1)
                continue

            if ch in ".,;:" and not text.startswith("::", self.i):
                self.emit("punct", ch, start, line, column)
                self.advance_to(self.i + 1)
                continue

            op = next((o for o in _MULTI_OPS if text.startswith(o, self.i)), None)
            if op is not None:
                self.emit("op", op, start, line, column)
                self.advance_to(self.i + len(op))
                continue

            self.emit("op", _UNICODE_OPS.get(ch, ch), start, line, column)
            self.advance_to(self.i + 1)

        for _, index in self.stack:
            tok = self.tokens[index]
            self.problems.append(BalanceProblem("unbalanced block", tok.line, tok.column))
        self.problems.sort(key=lambda p: (p.line, p.column))

        return TokenStream(
            tokens=tuple(self.tokens),
            pairs=MappingProxyType(dict(self.pairs)),
            problems=tuple(self.problems),
        )

    def open_bracket(self, start: int, line: int, column: int, ch: str) -> None:
        self.emit("punct", ch, start, line, column)
        self.stack.append((ch, len(self.tokens) - 1))

    def close_bracket(self, start: int, line: int, column: int, ch: str) -> None:
        expected = CLOSERS[ch]
        if not any(opener == expected for opener, _ in self.stack):
            self.problems.append(
                BalanceProblem(f"unbalanced block: unexpected {ch!r}", line, column)
            )
            self.emit("punct", ch, start, line, column)
            return

        # Unwind openers that were never closed (e.g. `(` inside `{ ... }`).
        while self.stack[-1][0] != expected:
            _, index = self.stack.pop()
            tok = self.tokens[index]
            self.problems.append(BalanceProblem("unbalanced block", tok.line, tok.column))

        _, open_index = self.stack.pop()
        self.emit("punct", ch, start, line, column)
        self.pairs[open_index] = len(self.tokens) - 1

    def _block_comment_end(self, line: int, column: int) -> int:
        text, depth, j = self.text, 0, self.i
        while j < self.n:
            if text.startswith("/*", j):
                depth += 1
                j += 2
            elif text.startswith("*/", j):
                depth -= 1
                j += 2
                if depth == 0:
                    return j
            else:
                j += 1
        raise LexError("unterminated comment", line, column)

    def _number_end(self) -> int:
        text, n, j = self.text, self.n, self.i
        if text.startswith(("0x", "0X"), j):
            j += 2
            while j < n and (text[j] in "0123456789abcdefABCDEF_"):
                j += 1
        else:
            while j < n and (text[j].isdigit() or text[j] == "_"):
                j += 1
            if j + 1 < n and text[j] == "." and text[j + 1].isdigit():
                j += 1
                while j < n and text[j].isdigit():
                    j += 1
            if j < n and text[j] in "eE":
                k = j + 1
                if k < n and text[k] in "+-":
                    k += 1
                if k < n and text[k].isdigit():
                    j = k
                    while j < n and text[j].isdigit():
                        j += 1
        if j < n and text[j] in "lLfFdD":
            j += 1
        return j

    def _string_end(self, line: int, column: int) -> int:
        text = self.text
        if text.startswith('"""', self.i):
            end = text.find('"""', self.i + 3)
            if end == -1:
                raise LexError("unterminated string literal", line, column)
            end += 3
            # Scala allows extra quotes right before the closing delimiter.
            while end < self.n and text[end] == '"':
                end += 1
            return end

        j = self.i + 1
        while j < self.n:
            c = text[j]
            if c == "\\":
                j += 2
                continue
            if c == '"':
                return j + 1
            if c == "\n":
                break
            j += 1
        raise LexError("unterminated string literal", line, column)

    def _char_end(self) -> int:
        text, i = self.text, self.i
        if text.startswith("\\", i + 1):
            # Skip the escaped character itself: `'\''` is one literal.
            end = text.find("'", i + 3)
            if end != -1 and end - i <= 8 and "\n" not in text[i:end]:
                return end + 1
            return 0
        if i + 2 < self.n and text[i + 2] == "'" and text[i + 1] != "\n":
            return i + 3
        return 0


@functools.lru_cache(maxsize=TOKEN_CACHE_SIZE)
def tokenize(text: str) -> TokenStream:
    """Tokenize `text`. Raises LexError only for unterminated literals/comments."""
    stream = _Scanner(text).run()
    logger.debug(
        "tokenized %d chars into %d tokens (%d balance problems)",
        len(text),
        len(stream.tokens),
        len(stream.problems),
    )
    return stream
