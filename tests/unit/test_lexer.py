import pytest

from fsmviz.analysis.lexer import tokenize
from fsmviz.errors import LexError, ParseError


def kinds_and_text(text: str) -> list[tuple[str, str]]:
    return [(t.kind, t.text) for t in tokenize(text).tokens]


def test_comments_and_whitespace_are_skipped():
    src = """
    // case object Hidden extends State
    /* when(State.A) { /* nested */ case Event(X, _) => goto(State.B) } */
    case object Shown extends State
    """
    assert kinds_and_text(src) == [
        ("ident", "case"),
        ("ident", "object"),
        ("ident", "Shown"),
        ("ident", "extends"),
        ("ident", "State"),
    ]


def test_operators_strings_and_numbers():
    toks = kinds_and_text('case Event(Go, _) => goto(S.B) using Info("a => b", 99.99)')
    assert ("op", "=>") in toks
    assert ("string", '"a => b"') in toks
    assert ("number", "99.99") in toks
    # The arrow inside the string literal is not a separate token.
    assert toks.count(("op", "=>")) == 1


def test_unicode_arrow_is_normalized():
    toks = kinds_and_text("case Event(Go, _) ⇒ stay()")
    assert ("op", "=>") in toks


def test_positions_and_depth():
    stream = tokenize("when(State.A) {\n  case Event(X, _) => stay()\n}")
    case_tok = next(t for t in stream.tokens if t.text == "case")
    assert (case_tok.line, case_tok.column) == (2, 3)
    assert case_tok.depth == 1

    brace = next(i for i, t in enumerate(stream.tokens) if t.text == "{")
    assert stream.tokens[stream.closing(brace)].text == "}"


def test_unbalanced_block_is_recorded_not_raised():
    stream = tokenize("class FSM {")
    assert stream.problems
    with pytest.raises(ParseError) as exc:
        stream.check_balanced()
    assert exc.value.user_message() == "Parse error: unbalanced block at line 1, column 11"


def test_stray_closer_is_a_balance_problem():
    stream = tokenize("object A }")
    with pytest.raises(ParseError) as exc:
        stream.check_balanced()
    assert "unexpected '}'" in exc.value.reason


def test_unterminated_string_raises_lex_error():
    with pytest.raises(LexError) as exc:
        tokenize('val s = "never closed\nval t = 1')
    assert exc.value.line == 1
    assert exc.value.user_message().startswith("Parse error: unterminated string literal")


def test_unterminated_block_comment_raises_lex_error():
    with pytest.raises(LexError):
        tokenize("/* open /* nested */ still open")


def test_unknown_characters_are_tolerated():
    toks = kinds_and_text("### not scala ###")
    assert ("op", "#") in toks
    assert ("ident", "scala") in toks


def test_text_rebuilds_readable_source():
    stream = tokenize('OrderInfo("ORDER-123", 99.99)')
    assert stream.text(0, len(stream)) == 'OrderInfo("ORDER-123", 99.99)'

    stream = tokenize("data.isValid && !other.ok")
    assert stream.text(0, len(stream)) == "data.isValid && !other.ok"


def test_escaped_quote_char_literal_is_one_token():
    toks = kinds_and_text(r"val q = '\''; val n = '\n'; val u = 'A'")
    assert ("char", r"'\''") in toks
    assert ("char", r"'\n'") in toks
    assert ("char", r"'A'") in toks
    assert ("op", "'") not in toks
