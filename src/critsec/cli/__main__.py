"""
Main Entry Point for the critsec CLI.

This module handles argument parsing and dispatches to specific command
handlers defined in `critsec.cli.commands`.
"""

import argparse
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from critsec import __version__
from critsec.cli import commands
from critsec.config import RuntimeConfig
from critsec.enums import LivenessMode, ReachabilityMode
from critsec.utils.console import log_error, set_verbosity


def _add_common_arguments(cmd: argparse.ArgumentParser) -> None:
  cmd.add_argument("paths", type=Path, nargs="+", help="Input source files or directories")
  cmd.add_argument("--json", action="store_true", help="Print machine-readable JSON to stdout")
  cmd.add_argument(
    "--entry",
    action="append",
    default=None,
    metavar="NAME",
    help="Entry point function name; repeatable (default: from toml, else 'main')",
  )
  cmd.add_argument(
    "--no-module-entry",
    action="store_false",
    dest="module_entry",
    default=None,
    help="Do not treat module top-level code as an entry point",
  )
  cmd.add_argument(
    "--liveness",
    choices=[m.value for m in LivenessMode],
    default=None,
    help="Dead-code filter strategy (default: from toml, else entry-reachable)",
  )
  cmd.add_argument("-v", "--verbose", action="store_true", help="Log analysis details")


def main(argv: Optional[List[str]] = None) -> int:
  """
  Main CLI entry point.

  Parses arguments via argparse and calls the appropriate handler function.

  Args:
      argv: Optional list of command line arguments (defaults to sys.argv).

  Returns:
      int: Exit code (0 clean, 1 violations found, 2 tool-fatal error).
  """
  parser = argparse.ArgumentParser(description="critsec: Guarded-section lease checker")
  parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

  subparsers = parser.add_subparsers(dest="command", required=True)

  # --- Command: CHECK ---
  cmd_check = subparsers.add_parser("check", help="Report guarded-section accesses outside a lease")
  _add_common_arguments(cmd_check)
  cmd_check.add_argument("--context", type=int, default=None, metavar="N", help="Print N source lines around each finding")
  cmd_check.add_argument(
    "--reachability",
    choices=[m.value for m in ReachabilityMode],
    default=None,
    help="Caller search strategy (default: from toml, else full)",
  )

  # --- Command: GRAPH ---
  cmd_graph = subparsers.add_parser("graph", help="Show the call graph, entry points and live set")
  _add_common_arguments(cmd_graph)

  args = parser.parse_args(argv)
  set_verbosity(args.verbose)

  try:
    config = RuntimeConfig.load(
      entry_points=args.entry,
      reachability=getattr(args, "reachability", None),
      liveness=args.liveness,
      context_lines=getattr(args, "context", None),
      module_entry=args.module_entry,
      search_path=args.paths[0],
    )
  except ValidationError as e:
    log_error(f"Invalid configuration: {e}")
    return 2

  if args.command == "check":
    return commands.handle_check(args.paths, config, args.json)

  elif args.command == "graph":
    return commands.handle_graph(args.paths, config, args.json)

  return 0
