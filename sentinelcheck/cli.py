#!/usr/bin/env python3
"""
sentinelcheck CLI

Thin wrapper over the analysis engine.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from sentinelcheck.formatting import format_json, format_text
from sentinelcheck.logs import configure_logging
from sentinelcheck.orchestrator import analyze_files, analyze_repo

logger = logging.getLogger("sentinelcheck.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sentinelcheck",
        description="Report WorkState sentinel misuse and ${} placeholders in f-strings.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  sentinelcheck analyze .
  sentinelcheck --format json analyze /path/to/repo
  sentinelcheck check module.py other.py
        """,
    )
    parser.add_argument(
        "--format",
        choices=("text", "json"),
        default="text",
        help="Output format (default: text)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log skipped files and internal errors",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        required=True,
        metavar="{analyze,check}",
    )

    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Analyze the Python files of a Git repository",
    )
    analyze_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to Git repository (default: current directory)",
    )

    check_parser = subparsers.add_parser(
        "check",
        help="Analyze the given Python files together",
    )
    check_parser.add_argument(
        "files",
        nargs="+",
        help="Python source files",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(debug=args.debug)

    target = None
    if args.command == "analyze":
        target = Path(args.path).resolve()
        if not target.exists():
            print(f"Error: Path does not exist: {target}", file=sys.stderr)
            return 1
    elif args.command == "check":
        missing = [f for f in args.files if not Path(f).is_file()]
        if missing:
            print(f"Error: File does not exist: {missing[0]}", file=sys.stderr)
            return 1
    else:
        # This should never happen because argparse enforces commands
        parser.error(f"Unknown command: {args.command}")
        return 1

    try:
        if target is not None:
            diagnostics = analyze_repo(target)
        else:
            diagnostics = analyze_files([Path(f) for f in args.files])
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception:
        logger.debug("Analysis failed", exc_info=True)
        print("Internal error during analysis.", file=sys.stderr)
        if not args.debug:
            print("Run with --debug for details.", file=sys.stderr)
        return 2

    if args.format == "json":
        print(format_json(diagnostics))
    else:
        if target is not None:
            print(f"Analyzed repository: {target}")
        print(f"Total findings: {len(diagnostics)}")
        if diagnostics:
            print()
            print(format_text(diagnostics))

    return 1 if diagnostics else 0


if __name__ == "__main__":
    sys.exit(main())
