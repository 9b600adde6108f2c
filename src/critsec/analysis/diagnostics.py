"""
Diagnostic Emitter.

Turns collected `Violation`s into output. Each finding is rendered as
``<file>:<line>:<col>: <message>``, optionally followed by a block of
surrounding source lines, or as a JSON object with the same fields.

Ordering is stable: position order within a file, files in scan order.
"""

import json
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from critsec.enums import ViolationKind
from critsec.frontend.identity import SourcePosition

MESSAGES: Dict[ViolationKind, str] = {
  ViolationKind.ARG_PASS: "guarded-section types cannot be passed to a function",
  ViolationKind.UNGUARDED_WRITE: "assignment to guarded-section without lease",
  ViolationKind.UNGUARDED_READ: "access of guarded-section without lease",
  ViolationKind.MULTIPLE_INSTANCE: "multiple instance of a guarded-section derived type",
}


@dataclass(frozen=True)
class Violation:
  """
  One finding at one source position.
  """

  kind: ViolationKind
  position: SourcePosition
  message: str

  @classmethod
  def create(cls, kind: ViolationKind, position: SourcePosition) -> "Violation":
    """Builds a violation carrying the standard message for `kind`."""
    return cls(kind=kind, position=position, message=MESSAGES[kind])

  def format(self) -> str:
    return f"{self.position}: {self.message}"

  def to_dict(self) -> Dict[str, object]:
    return {
      "file": self.position.file,
      "line": self.position.line,
      "column": self.position.column,
      "kind": self.kind.value,
      "message": self.message,
    }


class Report:
  """
  Append-only collection of violations, grouped by file in scan order.
  """

  def __init__(self) -> None:
    self._by_file: Dict[str, List[Violation]] = {}

  def open_file(self, file: str) -> None:
    """Registers a file so its position in the scan order is fixed."""
    self._by_file.setdefault(file, [])

  def add(self, violation: Violation) -> None:
    self._by_file.setdefault(violation.position.file, []).append(violation)

  def extend(self, violations: Iterable[Violation]) -> None:
    for v in violations:
      self.add(v)

  def ordered(self) -> List[Violation]:
    """
    Returns all violations, files in scan order and positions ascending.
    """
    result: List[Violation] = []
    for items in self._by_file.values():
      result.extend(sorted(items, key=lambda v: (v.position.line, v.position.column, v.kind.value)))
    return result

  def __len__(self) -> int:
    return sum(len(items) for items in self._by_file.values())


class DiagnosticEmitter:
  """
  Renders violations as text lines or JSON.
  """

  def __init__(self, line_source: Optional[Callable[[str], List[str]]] = None, context_lines: int = 0):
    """
    Args:
        line_source: Returns the source lines of a file; required for context output.
        context_lines: Number of lines printed before and after the finding.
    """
    self.line_source = line_source
    self.context_lines = context_lines

  def format(self, violation: Violation) -> str:
    """
    Formats one violation, with its context block when enabled.

    Args:
        violation: The finding to render.

    Returns:
        str: One line, or several when context is requested.
    """
    header = violation.format()
    if self.context_lines <= 0 or self.line_source is None:
      return header
    return "\n".join([header, *self._context_block(violation.position)])

  def render(self, violations: Iterable[Violation]) -> List[str]:
    return [self.format(v) for v in violations]

  def to_json(self, violations: Iterable[Violation]) -> str:
    return json.dumps([v.to_dict() for v in violations], indent=2)

  def _context_block(self, position: SourcePosition) -> List[str]:
    lines = self.line_source(position.file)
    if not lines:
      return []
    first = max(1, position.line - self.context_lines)
    last = min(len(lines), position.line + self.context_lines)
    width = len(str(last))

    block = []
    for lineno in range(first, last + 1):
      marker = ">" if lineno == position.line else " "
      block.append(f"  {marker} {lineno:>{width}} | {lines[lineno - 1]}")
      if lineno == position.line:
        block.append(f"    {' ' * width} | {' ' * (position.column - 1)}^")
    return block
