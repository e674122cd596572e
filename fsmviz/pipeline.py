# fsmviz/pipeline.py
"""Akka FSM source text in, Mermaid state diagram out.

`analyze()` is the entry point for interactive callers: it never raises for
any input string and reports failures as a `Parse error: ...` message.
`render_markup()` is the raising variant.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, Optional

from .analysis.declarations import extract_declarations
from .analysis.helpers import extract_local_functions, resolve_clauses
from .analysis.lexer import tokenize
from .analysis.transitions import extract_transitions
from .config import AppConfig
from .constants import EMPTY_INPUT_MESSAGE
from .diagrams.state_diagram import gen_state_diagram
from .errors import FsmVizError, ParseError
from .graph import Graph, build_graph
from .issues import AnalysisIssue, IssueLog

logger = logging.getLogger(__name__)

Status = Literal["ok", "empty", "error"]


@dataclass(frozen=True)
class AnalysisResult:
    status: Status
    markup: str = ""
    error: Optional[str] = None
    message: Optional[str] = None
    issues: tuple[AnalysisIssue, ...] = ()


@dataclass(frozen=True)
class Analysis:
    graph: Graph
    markup: str
    issues: tuple[AnalysisIssue, ...]


def build_analysis(text: str, config: Optional[AppConfig] = None) -> Analysis:
    """Run the full pipeline; raises FsmVizError on fatal problems."""
    config = config or AppConfig()
    log = IssueLog(config.issues)

    stream = tokenize(text)
    table = extract_declarations(stream)
    transitions = extract_transitions(stream, table, log)
    if not len(table) and not transitions.block_sources:
        first = stream.get(0)
        raise ParseError(
            "no FSM states or transitions found",
            first.line if first else None,
            first.column if first else None,
        )

    functions = extract_local_functions(stream, table)
    clauses = resolve_clauses(transitions, functions, log)
    graph = build_graph(table, transitions, clauses, log)

    escalated = log.errors
    if escalated:
        first_issue = escalated[0]
        raise ParseError(f"{first_issue.message} [{first_issue.code}]", first_issue.line)

    markup = gen_state_diagram(graph, config.render)
    return Analysis(graph=graph, markup=markup, issues=tuple(log.issues))


def render_markup(text: str, config: Optional[AppConfig] = None) -> str:
    return build_analysis(text, config).markup


def analyze(text: str, config: Optional[AppConfig] = None) -> AnalysisResult:
    """Analyze one snapshot of source text.

    Empty input is not an error; it yields status "empty" with a placeholder
    message. Fatal analysis problems yield status "error".
    """
    if not text or not text.strip():
        return AnalysisResult(status="empty", message=EMPTY_INPUT_MESSAGE)

    try:
        analysis = build_analysis(text, config)
    except FsmVizError as e:
        logger.debug("analysis failed: %s", e.user_message())
        return AnalysisResult(status="error", error=e.user_message())
    except RecursionError:
        return AnalysisResult(
            status="error", error=ParseError("input is nested too deeply").user_message()
        )

    return AnalysisResult(status="ok", markup=analysis.markup, issues=analysis.issues)
