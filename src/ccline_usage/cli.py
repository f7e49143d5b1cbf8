from __future__ import annotations

import argparse
import json
import logging
from typing import Sequence

from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text

from ccline_usage.config import load_segment_options
from ccline_usage.models import SegmentOutput
from ccline_usage.render import render_plain, render_text, render_tmux
from ccline_usage.segment import UsageSegment


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="ccline-usage",
        description="Show Claude API rate-limit usage as a status-line segment.",
    )
    output_group = parser.add_mutually_exclusive_group()
    output_group.add_argument(
        "--tmux",
        action="store_true",
        help="Print tmux-ready usage status line.",
    )
    output_group.add_argument(
        "--json",
        action="store_true",
        help="Print the segment as JSON (primary, secondary, metadata).",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="Read segment options from this TOML file.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log cache and network decisions to stderr.",
    )
    args = parser.parse_args(argv)

    console = Console()
    error_console = Console(stderr=True)
    _configure_logging(error_console, args.verbose)

    segment = UsageSegment(
        options_provider=lambda: load_segment_options(path=args.config),
    )
    output = segment.collect()
    if output is None:
        return 1

    for key in ("invalid_reset_period", "invalid_reset_format"):
        if key in output.metadata:
            option = key.removeprefix("invalid_")
            _print_error(
                error_console,
                f"Invalid {option} {output.metadata[key]!r}; "
                f"using {output.metadata[option]!r}",
            )

    if args.json:
        console.file.write(_to_json(output) + "\n")
    elif args.tmux:
        console.file.write(render_tmux(output))
    elif console.is_terminal:
        console.print(render_text(output))
    else:
        console.file.write(render_plain(output))
    return 0


def _configure_logging(console: Console, verbose: bool) -> None:
    handler = RichHandler(console=console, show_time=False, show_path=verbose)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[handler],
        force=True,
    )


def _print_error(console: Console, message: str) -> None:
    if console.is_terminal:
        console.print(Text(message, style="yellow"))
    else:
        console.print(message, markup=False, highlight=False)


def _to_json(output: SegmentOutput) -> str:
    return json.dumps(
        {
            "primary": output.primary,
            "secondary": output.secondary,
            "metadata": output.metadata,
        },
        ensure_ascii=False,
        sort_keys=True,
    )


if __name__ == "__main__":
    raise SystemExit(main())
