"""
Check Command Handler.

Runs the lease checker over files or directories and prints one line per
finding (``<file>:<line>:<col>: <message>``), optionally with source context,
or a JSON array with ``--json``.
"""

from pathlib import Path
from typing import Dict, List

from critsec.analysis.diagnostics import DiagnosticEmitter
from critsec.config import RuntimeConfig
from critsec.engine import CheckEngine
from critsec.exceptions import CritsecError
from critsec.utils.console import log_error, log_success, log_warning


def _line_reader():
  cache: Dict[str, List[str]] = {}

  def read(file: str) -> List[str]:
    if file not in cache:
      try:
        cache[file] = Path(file).read_text("utf-8").splitlines()
      except (OSError, UnicodeDecodeError):
        cache[file] = []
    return cache[file]

  return read


def handle_check(paths: List[Path], config: RuntimeConfig, json_mode: bool = False) -> int:
  """
  Checks the given inputs and reports violations.

  Args:
      paths: Files or directories to analyse together as one program.
      config: Resolved runtime settings.
      json_mode: If True, print a JSON array to stdout instead of text lines.

  Returns:
      int: 0 if clean, 1 if any violation was found, 2 on a tool-fatal error.
  """
  engine = CheckEngine(config)
  try:
    result = engine.run(paths)
  except CritsecError as e:
    log_error(str(e))
    return 2

  emitter = DiagnosticEmitter(line_source=_line_reader(), context_lines=config.context_lines)

  if json_mode:
    print(emitter.to_json(result.violations))
    return result.exit_code

  for line in emitter.render(result.violations):
    print(line)

  if result.has_violations:
    log_warning(f"{len(result.violations)} violation(s) in {len(result.files)} file(s)")
  else:
    log_success(f"No violations in {len(result.files)} file(s)")
  return result.exit_code
