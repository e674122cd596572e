# fsmviz/config.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .constants import DIRECTIONS
from .issues import IssueConfig

CONFIG_KEYS: frozenset[str] = frozenset(
    {"direction", "theme", "title", "strict", "ignore", "escalate"}
)


@dataclass(frozen=True)
class RenderConfig:
    direction: Optional[str] = None
    theme: Optional[str] = None
    title: str = "FSM diagram"

    def __post_init__(self) -> None:
        if self.direction is not None and self.direction not in DIRECTIONS:
            raise ValueError(
                f"direction must be one of {', '.join(DIRECTIONS)}, got {self.direction!r}"
            )


@dataclass(frozen=True)
class AppConfig:
    render: RenderConfig = RenderConfig()
    issues: IssueConfig = IssueConfig()
    strict: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AppConfig":
        unknown = sorted(set(data) - CONFIG_KEYS)
        if unknown:
            raise ValueError(f"unknown config key(s): {', '.join(unknown)}")

        def _opt_str(key: str) -> Optional[str]:
            value = data.get(key)
            if value is None:
                return None
            if not isinstance(value, str) or not value.strip():
                raise TypeError(f"config.{key} must be a non-empty string")
            return value.strip()

        direction = _opt_str("direction")
        render = RenderConfig(
            direction=direction.upper() if direction else None,
            theme=_opt_str("theme"),
            title=_opt_str("title") or RenderConfig.title,
        )
        strict = data.get("strict", False)
        if not isinstance(strict, bool):
            raise TypeError("config.strict must be a boolean")
        return cls(render=render, issues=IssueConfig.from_mapping(data), strict=strict)
