# fsmviz/cli.py
from __future__ import annotations

import argparse
import dataclasses
import sys
from pathlib import Path
from typing import Optional, Sequence

from .constants import DIRECTIONS
from .io import load_config, load_source
from .mermaid_fmt import mermaid_block
from .pipeline import analyze
from .writer import write_md, write_mermaid


def _output_format(out: Optional[Path], fmt: str) -> str:
    if fmt != "auto":
        return fmt
    if out is not None and out.suffix.lower() in (".md", ".markdown"):
        return "md"
    return "mmd"


def main(argv: Optional[Sequence[str]] = None) -> None:
    """CLI entrypoint."""
    parser = argparse.ArgumentParser(
        description="Generate a Mermaid state diagram from Akka FSM (Scala) source."
    )
    parser.add_argument(
        "source",
        type=Path,
        nargs="?",
        default=None,
        help="Scala source file to analyze (default: read stdin).",
    )
    parser.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Output file (default: write the diagram to stdout).",
    )
    parser.add_argument(
        "--format",
        type=str,
        choices=("auto", "mmd", "md"),
        default="auto",
        help="Output format: raw Mermaid (mmd) or Markdown with a mermaid fence (md). "
        "auto picks md for .md outputs.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML config file (keys: direction, theme, title, strict, ignore, escalate).",
    )
    parser.add_argument(
        "--direction",
        type=str.upper,
        choices=DIRECTIONS,
        default=None,
        help="Diagram direction (overrides config).",
    )
    parser.add_argument(
        "--theme",
        type=str,
        default=None,
        help="Mermaid theme written as an init directive (overrides config).",
    )
    parser.add_argument(
        "--title",
        type=str,
        default=None,
        help="Title used for Markdown output (overrides config).",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail on analysis warnings (e.g., unknown states, unresolved helpers). "
        "Errors always fail.",
    )

    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
        text = load_source(args.source)
    except (OSError, ValueError, TypeError) as e:
        print(f"error: {e}", file=sys.stderr)
        raise SystemExit(2)

    render = config.render
    if args.direction:
        render = dataclasses.replace(render, direction=args.direction)
    if args.theme:
        render = dataclasses.replace(render, theme=args.theme)
    if args.title:
        render = dataclasses.replace(render, title=args.title)
    config = dataclasses.replace(config, render=render, strict=config.strict or args.strict)

    result = analyze(text, config)

    if result.status == "empty":
        print(f"warning: {result.message}", file=sys.stderr)
        return

    if result.status == "error":
        print(f"error: {result.error}", file=sys.stderr)
        raise SystemExit(2)

    for issue in result.issues:
        print(f"warning: {issue.render()}", file=sys.stderr)

    if config.strict and result.issues:
        print("error: warnings present and --strict is set", file=sys.stderr)
        raise SystemExit(2)

    out: Optional[Path] = args.out
    fmt = _output_format(out, args.format)
    if out is None:
        if fmt == "md":
            sys.stdout.write(f"# {config.render.title}\n\n")
            sys.stdout.write(mermaid_block(result.markup))
        else:
            sys.stdout.write(result.markup)
        return

    if fmt == "md":
        write_md(out, config.render.title, result.markup)
    else:
        write_mermaid(out, result.markup)
