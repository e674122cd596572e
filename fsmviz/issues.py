# fsmviz/issues.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping, Optional

Severity = Literal["error", "warning"]

# Codes emitted by the analysis pipeline.
W_UNKNOWN_SOURCE = "W_UNKNOWN_SOURCE"
W_UNKNOWN_TARGET = "W_UNKNOWN_TARGET"
W_UNRESOLVED_CALL = "W_UNRESOLVED_CALL"
W_CLAUSE_NO_ACTION = "W_CLAUSE_NO_ACTION"

KNOWN_CODES: frozenset[str] = frozenset(
    {W_UNKNOWN_SOURCE, W_UNKNOWN_TARGET, W_UNRESOLVED_CALL, W_CLAUSE_NO_ACTION}
)


@dataclass(frozen=True)
class AnalysisIssue:
    """Structured, non-fatal analysis finding."""

    severity: Severity
    code: str
    message: str
    line: Optional[int] = None
    hint: Optional[str] = None

    def render(self) -> str:
        where = f"line {self.line}: " if self.line is not None else ""
        text = f"{where}{self.message}"
        if self.hint:
            text += f" (hint: {self.hint})"
        return text


@dataclass(frozen=True)
class IssueConfig:
    """Issue handling configuration.

    `ignore` drops codes entirely; `escalate` turns warning codes into errors,
    which fail the analysis.
    """

    ignore: frozenset[str] = field(default_factory=frozenset)
    escalate: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "IssueConfig":
        def _codes(key: str) -> frozenset[str]:
            raw = data.get(key) or []
            if isinstance(raw, str):
                raw = [raw]
            if not isinstance(raw, (list, tuple)):
                raise TypeError(f"config.{key} must be a list of issue codes")
            codes = frozenset(str(c).strip() for c in raw if str(c).strip())
            unknown = sorted(codes - KNOWN_CODES)
            if unknown:
                raise ValueError(f"unknown issue code(s) in config.{key}: {', '.join(unknown)}")
            return codes

        return cls(ignore=_codes("ignore"), escalate=_codes("escalate"))


class IssueLog:
    """Collects issues for one analysis pass, applying ignore/escalate rules."""

    def __init__(self, cfg: Optional[IssueConfig] = None) -> None:
        self.cfg = cfg or IssueConfig()
        self.issues: list[AnalysisIssue] = []

    def warn(
        self,
        code: str,
        message: str,
        line: Optional[int] = None,
        hint: Optional[str] = None,
    ) -> None:
        if code in self.cfg.ignore:
            return
        severity: Severity = "error" if code in self.cfg.escalate else "warning"
        self.issues.append(
            AnalysisIssue(severity=severity, code=code, message=message, line=line, hint=hint)
        )

    @property
    def errors(self) -> list[AnalysisIssue]:
        return [iss for iss in self.issues if iss.severity == "error"]

    @property
    def warnings(self) -> list[AnalysisIssue]:
        return [iss for iss in self.issues if iss.severity == "warning"]
