"""
Tests for Symbol Table Analysis.

Covers imports, constructor and annotation inference, receivers, instance
attributes, return annotations, scoping rules and cross-module resolution.
"""

import textwrap
from pathlib import Path

import libcst as cst
import pytest

from critsec.frontend.loader import Program, parse_source
from critsec.frontend.symbols import ClassType, FunctionType, InstanceType, ModuleType, SymbolTable


def build(*modules):
  """Builds a table from (module_name, code) pairs."""
  files = []
  for name, code in modules:
    path = Path(*name.split(".")).with_suffix(".py")
    files.append(parse_source(textwrap.dedent(code), path, module_name=name))
  return SymbolTable.build(Program(files=files))


def module_scope(table, index=0):
  return table.scope_for(table.program.files[index].module)


def function_scope(table, qualname):
  for fid in table.function_ids:
    if fid.qualname == qualname:
      return table.function_scope(fid)
  raise KeyError(qualname)


def type_in(table, scope, expr: str):
  return table.type_of(cst.parse_expression(expr), scope)


def test_import_tracking():
  table = build(("m", "import torch.nn as nn\nimport os.path\n"))
  nn = table.resolve_name(module_scope(table), "nn")
  assert isinstance(nn, ModuleType)
  assert nn.path == "torch.nn"
  assert table.resolve_name(module_scope(table), "os").path == "os"


def test_constructor_assignment():
  table = build(("m", "class Foo:\n  pass\n\nx = Foo()\n"))
  sym = table.resolve_name(module_scope(table), "x")
  assert isinstance(sym, InstanceType)
  assert sym.ref.qualname == "Foo"


@pytest.mark.parametrize("annotation", ["Foo", '"Foo"', "Optional[Foo]", "typing.Optional[Foo]", "Foo | None", "Union[Foo, None]"])
def test_parameter_annotations(annotation):
  code = f"""
import typing
from typing import Optional, Union

class Foo:
  pass

def f(arg: {annotation}):
  pass
"""
  table = build(("m", code))
  sym = table.resolve_name(function_scope(table, "f"), "arg")
  assert isinstance(sym, InstanceType)
  assert sym.ref.name == "Foo"


def test_unannotated_parameter_shadows_global():
  code = """
class Foo:
  pass

item = Foo()

def f(item):
  return item
"""
  table = build(("m", code))
  assert table.resolve_name(function_scope(table, "f"), "item") is None


def test_receivers():
  code = """
class Foo:
  def method(self):
    pass

  @classmethod
  def build(cls):
    pass

  @staticmethod
  def util(value):
    pass
"""
  table = build(("m", code))
  assert isinstance(table.resolve_name(function_scope(table, "Foo.method"), "self"), InstanceType)
  assert isinstance(table.resolve_name(function_scope(table, "Foo.build"), "cls"), ClassType)
  assert table.resolve_name(function_scope(table, "Foo.util"), "value") is None


def test_instance_attribute_and_methods():
  code = """
class Inner:
  pass

class Outer:
  def __init__(self):
    self.inner = Inner()

  def run(self):
    pass

o = Outer()
"""
  table = build(("m", code))
  scope = module_scope(table)
  assert type_in(table, scope, "o.inner").ref.name == "Inner"
  run = type_in(table, scope, "o.run")
  assert isinstance(run, FunctionType)
  assert run.target.qualname == "Outer.run"
  assert table.is_method(table.resolve_name(scope, "o").ref, "run")
  assert not table.is_method(table.resolve_name(scope, "o").ref, "inner")


def test_return_annotation():
  code = """
class Foo:
  pass

def make() -> "Foo":
  return Foo()

x = make()
"""
  table = build(("m", code))
  assert table.resolve_name(module_scope(table), "x").ref.name == "Foo"


def test_class_scope_hidden_from_methods():
  code = """
class Foo:
  pass

x = Foo()

class K:
  x = 1

  def m(self):
    return x
"""
  table = build(("m", code))
  sym = table.resolve_name(function_scope(table, "K.m"), "x")
  assert isinstance(sym, InstanceType)


def test_global_declaration():
  code = """
class Foo:
  pass

def init():
  global shared
  shared = Foo()

def use():
  return shared
"""
  table = build(("m", code))
  assert isinstance(table.resolve_name(function_scope(table, "use"), "shared"), InstanceType)


def test_inherited_members():
  code = """
class Base:
  def ping(self):
    pass

class Child(Base):
  pass

c = Child()
"""
  table = build(("m", code))
  ping = type_in(table, module_scope(table), "c.ping")
  assert ping.target.qualname == "Base.ping"


def test_cross_module_imports():
  table = build(
    ("pkg.a", "class Foo:\n  pass\n"),
    ("pkg.b", "from pkg.a import Foo\nimport pkg.a\nfrom . import a\nfrom .a import Foo as Alias\n"),
  )
  scope = module_scope(table, 1)
  for expr in ("Foo()", "pkg.a.Foo()", "a.Foo()", "Alias()"):
    sym = type_in(table, scope, expr)
    assert isinstance(sym, InstanceType), expr
    assert sym.ref.module == "pkg.a"


def test_external_bases():
  code = """
import threading
from critsec import Section

class G(Section):
  pass

class H(G, threading.Thread):
  pass
"""
  table = build(("m", code))
  h = table.resolve_name(module_scope(table), "H")
  assert table.external_bases(h.ref) == ["threading.Thread", "critsec.Section"]


def test_lambda_identity():
  table = build(("m", "f = lambda: 0\n"))
  sym = table.resolve_name(module_scope(table), "f")
  assert isinstance(sym, FunctionType)
  assert sym.target.qualname == "<lambda>"
  assert (sym.target.line, sym.target.column) == (1, 5)


def test_property_is_data_attribute():
  code = """
class Inner:
  pass

class Outer:
  @property
  def inner(self) -> "Inner":
    return Inner()

  @inner.setter
  def inner(self, value):
    pass

  @functools.cached_property
  def cached(self):
    return 0

o = Outer()
"""
  table = build(("m", code))
  scope = module_scope(table)
  ref = table.resolve_name(scope, "o").ref
  assert not table.is_method(ref, "inner")
  assert not table.is_method(ref, "cached")
  assert type_in(table, scope, "o.inner").ref.name == "Inner"
  assert [f.line for f in table.property_accessors(ref, "inner")] == [7, 11]
  assert table.property_accessors(ref, "missing") == []


def test_forward_reference_cycle_resolves():
  code = """
class G:
  pass

x = y
x = G()
y = x
"""
  table = build(("m", code))
  scope = module_scope(table)
  assert isinstance(table.resolve_name(scope, "x"), InstanceType)
  assert isinstance(table.resolve_name(scope, "y"), InstanceType)
