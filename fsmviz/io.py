# fsmviz/io.py
from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Optional

import yaml

from .config import AppConfig


def load_source(path: Optional[Path]) -> str:
    """Read FSM source text verbatim from `path`, or stdin when path is None or '-'."""
    if path is None or str(path) == "-":
        return sys.stdin.read()
    if not path.exists():
        raise FileNotFoundError(str(path))
    if not path.is_file():
        raise ValueError(f"Not a file: {path}")
    # utf-8-sig: uploaded files often carry a BOM.
    return path.read_text(encoding="utf-8-sig")


def _load_yaml_mapping(path: Path) -> dict[str, Any]:
    raw = path.read_text(encoding="utf-8")

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ValueError(f"Failed to parse YAML {path}: {e}") from e

    # An empty file is an empty config.
    if data is None:
        return {}

    if not isinstance(data, dict):
        raise TypeError(
            f"Top-level YAML must be a mapping in {path}, got {type(data).__name__}"
        )

    return data


def load_config(path: Optional[Path]) -> AppConfig:
    """Load the YAML configuration file; defaults when no path is given."""
    if path is None:
        return AppConfig()
    if not path.exists():
        raise FileNotFoundError(str(path))
    return AppConfig.from_mapping(_load_yaml_mapping(path))
