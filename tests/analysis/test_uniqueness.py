"""
Tests for UniquenessChecker and InstanceRegistry.
"""

from critsec.analysis.catalog import GuardedType
from critsec.analysis.liveness import LivenessFilter
from critsec.analysis.uniqueness import InstanceRegistry, UniquenessChecker
from critsec.enums import ViolationKind
from critsec.frontend.callgraph import CallGraph
from critsec.frontend.identity import FunctionId, SourcePosition
from critsec.frontend.symbols import ClassRef


def test_second_live_instantiation(check_lines):
  code = """\
from critsec import Section


class G(Section):
  pass


def setup():
  first = G()


def again():
  second: G = G()
  third = G()


def main():
  setup()
  again()
"""
  assert check_lines(code) == [
    "app.py:13:3: multiple instance of a guarded-section derived type",
    "app.py:14:3: multiple instance of a guarded-section derived type",
  ]


def test_module_level_instances_are_not_reported(check_lines):
  code = """
from critsec import Section


class G(Section):
  pass


a = G()
b = G()
"""
  assert check_lines(code) == []


def test_dead_duplicates_are_not_reported(check_lines):
  code = """
from critsec import Section


class G(Section):
  pass


g = G()


def never_called():
  other = G()
"""
  assert check_lines(code) == []


def test_same_name_in_different_scopes(check_lines):
  code = """\
from critsec import Section


class Lock(Section):
  pass


def build():
  class Lock(Section):
    pass

  local = Lock()
  return local


first = Lock()


def main():
  inner = build()
  other = Lock()
"""
  assert check_lines(code) == ["app.py:21:3: multiple instance of a guarded-section derived type"]


def test_walrus_instantiation(check_lines):
  code = """\
from critsec import Section


class G(Section):
  pass


g = G()


def main():
  if (other := G()) is not None:
    pass
"""
  assert check_lines(code) == ["app.py:12:7: multiple instance of a guarded-section derived type"]


def test_record_directly():
  graph = CallGraph()
  live_fn = FunctionId("m.py", "m", "main", 3, 1)
  graph.add_node(live_fn)
  checker = UniquenessChecker(LivenessFilter(graph, [live_fn]))
  registry = InstanceRegistry()

  ref = ClassRef("m.py", "m", "G", 1, 1)
  gt = GuardedType("G", ref, "Optional[G]", SourcePosition("m.py", 1, 1))
  pos = SourcePosition("m.py", 4, 3)

  assert checker.record(registry, gt, None, pos) is None
  assert ref in registry
  violation = checker.record(registry, gt, live_fn, pos)
  assert violation.kind == ViolationKind.MULTIPLE_INSTANCE
  assert violation.position == pos


def test_dead_module_body_does_not_register(check_lines):
  code = """\
from critsec import Section


class G(Section):
  pass


g = G()


def main():
  local = G()
"""
  assert check_lines(code, module_entry=False) == []


def test_record_module_level_in_dead_unit():
  graph = CallGraph()
  module = FunctionId("m.py", "m", "<module>", 1, 1)
  graph.add_node(module)
  checker = UniquenessChecker(LivenessFilter(graph, []))
  registry = InstanceRegistry()

  ref = ClassRef("m.py", "m", "G", 1, 1)
  gt = GuardedType("G", ref, "Optional[G]", SourcePosition("m.py", 1, 1))

  assert checker.record(registry, gt, None, SourcePosition("m.py", 4, 1), unit=module) is None
  assert ref not in registry
