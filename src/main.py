# src/main.py — v2
"""CLI entry point — run, tools, predicates commands.

Usage:
    daftflow run <spec> [data.json] [options]
    daftflow tools
    daftflow predicates
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from daftflow.version import __version__

if TYPE_CHECKING:
    from daftflow.core.models import Result

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        _setup_logging(args.verbose)
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="daftflow",
        description=f"daftflow v{__version__} — declarative DAG workflow runner",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- run ---
    p_run = subparsers.add_parser("run", help="Execute a workflow spec locally")
    p_run.add_argument("spec", type=Path, help="Spec file (.json, .yaml, .yml)")
    p_run.add_argument(
        "data", type=Path, nargs="?", default=None,
        help="Optional JSON file merged over the spec's initial data",
    )
    p_run.add_argument(
        "-c", "--concurrency", type=int, default=None,
        help="Max steps running at once (default: from settings, 4)",
    )
    p_run.add_argument(
        "--json", action="store_true", dest="as_json",
        help="Print the full Result as JSON",
    )
    p_run.set_defaults(func=_cmd_run)

    # --- tools ---
    p_tools = subparsers.add_parser("tools", help="List built-in tools")
    p_tools.set_defaults(func=_cmd_tools)

    # --- predicates ---
    p_preds = subparsers.add_parser("predicates", help="List built-in predicates")
    p_preds.set_defaults(func=_cmd_predicates)

    return parser


async def _cmd_run(args: argparse.Namespace) -> int:
    """Execute a spec file and print the result."""
    from daftflow.api.facade import run_spec
    from daftflow.config.settings import load_settings
    from daftflow.config.spec_loader import SpecLoadError, load_spec_with_data

    overrides: dict[str, object] = {}
    if args.concurrency is not None:
        overrides["concurrency"] = args.concurrency
    settings = load_settings(**overrides)

    try:
        spec = load_spec_with_data(args.spec, args.data)
    except SpecLoadError as exc:
        logger.error("%s", exc)
        return 1

    logger.info("Executing %s (%d steps)", args.spec, len(spec.steps))
    result = await run_spec(spec, settings=settings, spec_file=str(args.spec))

    if args.as_json:
        print(result.model_dump_json(indent=2))
    else:
        _print_result_summary(result)
    return 0 if result.success else 1


async def _cmd_tools(args: argparse.Namespace) -> int:
    """List built-in tools with their descriptions."""
    from daftflow.tools.builtin import default_tools

    registry = default_tools()
    for name in registry.names:
        tool = registry.get_or_raise(name)
        print(f"  {name:20s} {tool.description}")
    return 0


async def _cmd_predicates(args: argparse.Namespace) -> int:
    """List built-in predicate names."""
    from daftflow.tools.predicates import default_predicates

    for name in default_predicates().names:
        print(f"  {name}")
    return 0


def _print_result_summary(result: Result) -> None:
    """Print a human-readable summary of a Result."""
    print(f"\n{result.message}")
    print(f"Result: {json.dumps(result.data, default=str)}")
    for step in result.steps:
        status = "ok" if step.success else f"FAILED: {step.error}"
        print(f"  {step.name:20s} {step.iterations:3d} iter  {status}")
    print("Usage:")
    print(f"  Tokens:   {result.usage.tokens}")
    print(f"  Cost:     ${result.usage.cost:.4f}")
    print(f"  Duration: {result.usage.duration_ms / 1000:.1f}s")


def _setup_logging(verbose: bool) -> None:
    """Configure logging for CLI usage from settings."""
    from daftflow.config.settings import load_settings
    from daftflow.logging.logger import setup_logging

    settings = load_settings()
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


if __name__ == "__main__":
    sys.exit(main())
