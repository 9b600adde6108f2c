"""
Graph Command Handler.

Prints the call graph the checker builds for a program, with the entry points
and the live set, to debug why an access is (or is not) considered guarded.
"""

import json
from pathlib import Path
from typing import List

from rich.table import Table

from critsec.config import RuntimeConfig
from critsec.engine import CheckEngine
from critsec.exceptions import CritsecError
from critsec.frontend.loader import load_program
from critsec.utils.console import console, log_error


def handle_graph(paths: List[Path], config: RuntimeConfig, json_mode: bool = False) -> int:
  """
  Builds and prints the whole-program call graph.

  Args:
      paths: Files or directories to load.
      config: Resolved runtime settings.
      json_mode: If True, print JSON to stdout.

  Returns:
      int: 0 on success, 2 on a tool-fatal error.
  """
  engine = CheckEngine(config)
  try:
    model = engine.prepare(load_program(paths, exclude=config.exclude))
  except CritsecError as e:
    log_error(str(e))
    return 2

  live = model.liveness
  if json_mode:
    data = model.graph.to_dict()
    data["entry_points"] = [str(f) for f in model.entry_points]
    data["live"] = [str(f) for f in model.graph.nodes if live.is_live(f)]
    print(json.dumps(data, indent=2))
    return 0

  table = Table(title="Call Graph")
  table.add_column("Caller", style="cyan")
  table.add_column("Callee", style="magenta")
  for edge in model.graph.edges:
    table.add_row(str(edge.caller), str(edge.callee))
  console.print(table)

  dead = [f for f in model.graph.nodes if not f.is_external and not live.is_live(f)]
  console.print(f"[bold]Entry points:[/bold] {len(model.entry_points)}")
  console.print(f"Units:       {len(model.graph.nodes)}")
  console.print(f"Edges:       {len(model.graph.edges)}")
  console.print(f"Dead units:  [red]{len(dead)}[/red]")
  for f in dead:
    console.print(f"  [dim]{f}[/dim]")
  return 0
