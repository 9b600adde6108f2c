"""
End-to-End Checker Tests.

Verifies the full pipeline on a small program:
1. Writes and reads outside a lease are reported with their exact position.
2. A second live instantiation is reported once.
3. The same illegal pattern in an unreferenced function is ignored.
4. Accesses inside the lease callback are accepted.
"""

from critsec.enums import ViolationKind

EXAMPLE = """\
from critsec import Section


class G(Section):
  def __init__(self):
    super().__init__()
    self.value = 0


g = G()


def f():
  g.value = 1
  _ = g.value


def second():
  g2 = G()
  return g2


def unused():
  g.value = 1
  _ = g.value
  g3 = G()


def main():
  f()
  second()
  g.lease(lambda: g.value)
"""


def test_example_program(check_lines):
  assert check_lines(EXAMPLE) == [
    "app.py:14:3: assignment to guarded-section without lease",
    "app.py:15:7: access of guarded-section without lease",
    "app.py:19:3: multiple instance of a guarded-section derived type",
  ]


def test_example_kinds(check_code):
  result = check_code(EXAMPLE)
  kinds = [v.kind for v in result.violations]
  assert kinds == [
    ViolationKind.UNGUARDED_WRITE,
    ViolationKind.UNGUARDED_READ,
    ViolationKind.MULTIPLE_INSTANCE,
  ]
  assert result.exit_code == 1


def test_rerun_is_identical(check_lines):
  first = check_lines(EXAMPLE)
  second = check_lines(EXAMPLE)
  assert first == second


def test_clean_program(check_code):
  code = """
from critsec import Section


class Counter(Section):
  def __init__(self):
    super().__init__()
    self.value = 0

  def bump(self):
    self.value += 1


counter = Counter()


def read():
  return counter.value


def main():
  counter.lease(counter.bump)
  counter.lease(read)
  counter.lease(lambda: counter.value)
"""
  result = check_code(code)
  assert result.violations == []
  assert result.exit_code == 0


def test_method_called_directly_is_reported(check_lines):
  code = """\
from critsec import Section


class Counter(Section):
  def bump(self):
    self.value += 1


counter = Counter()


def main():
  counter.bump()
"""
  assert check_lines(code) == ["app.py:6:5: assignment to guarded-section without lease"]


def test_module_level_access_is_skipped(check_lines):
  code = """
from critsec import Section


class G(Section):
  pass


g = G()
g.value = 1
print(g.value)
"""
  assert check_lines(code) == []


def test_marker_through_module_import(check_lines):
  code = """\
import critsec


class G(critsec.Section):
  pass


g = G()


def main():
  print(g.total)
"""
  assert check_lines(code) == ["app.py:12:9: access of guarded-section without lease"]


def test_non_guarded_classes_are_ignored(check_lines):
  code = """
class Plain:
  pass


p = Plain()


def main():
  p.value = 1
  other = Plain()
"""
  assert check_lines(code) == []
