"""
Tests for Violation rendering and Report ordering.
"""

import json

from critsec.analysis.diagnostics import MESSAGES, DiagnosticEmitter, Report, Violation
from critsec.enums import ViolationKind
from critsec.frontend.identity import SourcePosition

SOURCE = {
  "a.py": ["import x", "", "def f():", "  g.value = 1", "  return 0"],
}


def test_exact_messages():
  assert MESSAGES[ViolationKind.ARG_PASS] == "guarded-section types cannot be passed to a function"
  assert MESSAGES[ViolationKind.UNGUARDED_WRITE] == "assignment to guarded-section without lease"
  assert MESSAGES[ViolationKind.UNGUARDED_READ] == "access of guarded-section without lease"
  assert MESSAGES[ViolationKind.MULTIPLE_INSTANCE] == "multiple instance of a guarded-section derived type"


def test_format_line():
  v = Violation.create(ViolationKind.UNGUARDED_WRITE, SourcePosition("a.py", 4, 3))
  assert v.format() == "a.py:4:3: assignment to guarded-section without lease"
  assert DiagnosticEmitter().format(v) == v.format()


def test_context_block():
  v = Violation.create(ViolationKind.UNGUARDED_WRITE, SourcePosition("a.py", 4, 3))
  emitter = DiagnosticEmitter(line_source=SOURCE.get, context_lines=1)
  assert emitter.format(v).splitlines() == [
    "a.py:4:3: assignment to guarded-section without lease",
    "    3 | def f():",
    "  > 4 |   g.value = 1",
    "      |   ^",
    "    5 |   return 0",
  ]


def test_context_clamped_to_file():
  v = Violation.create(ViolationKind.UNGUARDED_READ, SourcePosition("a.py", 1, 1))
  emitter = DiagnosticEmitter(line_source=SOURCE.get, context_lines=3)
  lines = emitter.format(v).splitlines()
  assert lines[1] == "  > 1 | import x"
  assert lines[-1] == "    4 |   g.value = 1"


def test_context_for_unknown_file():
  v = Violation.create(ViolationKind.UNGUARDED_READ, SourcePosition("missing.py", 2, 1))
  emitter = DiagnosticEmitter(line_source=lambda f: [], context_lines=2)
  assert emitter.format(v) == "missing.py:2:1: access of guarded-section without lease"


def test_json_rendering():
  v = Violation.create(ViolationKind.ARG_PASS, SourcePosition("a.py", 3, 1))
  data = json.loads(DiagnosticEmitter().to_json([v]))
  assert data == [
    {
      "file": "a.py",
      "line": 3,
      "column": 1,
      "kind": "arg-pass",
      "message": "guarded-section types cannot be passed to a function",
    }
  ]


def test_report_orders_by_position_and_keeps_file_order():
  report = Report()
  report.open_file("b.py")
  report.open_file("a.py")
  report.add(Violation.create(ViolationKind.UNGUARDED_READ, SourcePosition("a.py", 9, 1)))
  report.add(Violation.create(ViolationKind.UNGUARDED_READ, SourcePosition("b.py", 5, 7)))
  report.add(Violation.create(ViolationKind.UNGUARDED_WRITE, SourcePosition("a.py", 2, 4)))
  report.add(Violation.create(ViolationKind.UNGUARDED_READ, SourcePosition("b.py", 5, 2)))

  ordered = [str(v.position) for v in report.ordered()]
  assert ordered == ["b.py:5:2", "b.py:5:7", "a.py:2:4", "a.py:9:1"]
  assert len(report) == 4
