"""
Symbol Table and Static Type Resolution.

This module provides the front-end pass that gives the checker its view of
"what type does this expression have". It runs in two steps:

1.  **Declaration Pass** (`DeclarationCollector`): one walk per file that builds
    the scope tree (module, class, function and lambda scopes), records every
    name binding without evaluating it, and assigns each callable unit its
    `FunctionId`.
2.  **Lazy Resolution** (`SymbolTable.type_of`): bindings are evaluated on
    demand and memoised, so a function body may refer to module globals that are
    assigned textually after it, and imports between analysed modules resolve
    regardless of file order.

The inference is flow-insensitive: when a name has several bindings in one
scope, the first binding that yields a type wins.

Resolved types:
    - ``ModuleType``: an imported module, or a dotted path outside the program.
    - ``ClassType``: a class declared in the program (the class object itself).
    - ``InstanceType``: an instance of such a class.
    - ``FunctionType``: a ``def`` or ``lambda`` of the program.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set, Tuple

import libcst as cst

from critsec.frontend.identity import LAMBDA_NAME, MODULE_QUALNAME, FunctionId
from critsec.frontend.loader import Program, SourceFile

logger = logging.getLogger(__name__)

CONSTRUCTOR_METHODS = frozenset({"__init__", "__post_init__", "__new__"})

# Last segment of decorators that turn a def into a data attribute
PROPERTY_DECORATORS = frozenset({"property", "cached_property", "getter", "setter", "deleter"})

# Binding kinds
VALUE = "value"
ANNOTATION = "annotation"
FIXED = "fixed"
UNKNOWN = "unknown"


def get_full_name(node: cst.CSTNode) -> str:
  """
  Resolves a CST Name or Attribute chain to a dot-separated string.

  Args:
      node: Typically a `cst.Name` (``x``) or `cst.Attribute` (``x.y``).

  Returns:
      str: e.g. "critsec.crit.Section", or "" for any other node.
  """
  if isinstance(node, cst.Name):
    return node.value
  elif isinstance(node, cst.Attribute):
    base = get_full_name(node.value)
    return f"{base}.{node.attr.value}" if base else ""
  return ""


@dataclass(frozen=True)
class ClassRef:
  """
  Identity of a class declared in the analysed program.
  """

  file: str
  module: str
  qualname: str
  line: int
  column: int

  @property
  def name(self) -> str:
    """The unqualified class name."""
    return self.qualname.rsplit(".", 1)[-1]

  @property
  def fqn(self) -> str:
    """Dotted name including the module."""
    return f"{self.module}.{self.qualname}" if self.module else self.qualname


@dataclass
class SymbolType:
  """
  Base class for resolved types.
  """

  name: str
  """A string representation of the type."""

  def __str__(self) -> str:
    return self.name


@dataclass
class ModuleType(SymbolType):
  """
  An imported module, or any dotted path that does not resolve into the program.
  """

  path: str


@dataclass
class ClassType(SymbolType):
  """
  A class object declared in the program.
  """

  ref: ClassRef


@dataclass
class InstanceType(SymbolType):
  """
  An instance of a class declared in the program.
  """

  ref: ClassRef


@dataclass
class FunctionType(SymbolType):
  """
  A callable unit of the program. `owner` is set for methods.
  """

  target: FunctionId
  owner: Optional[ClassRef] = None


@dataclass
class Binding:
  """
  One unevaluated assignment of a name.

  ``expr`` is evaluated in ``scope`` when the binding is resolved; ``fixed``
  holds the type of definitions whose type is known at declaration time.
  """

  kind: str
  scope: "Scope"
  expr: Optional[cst.BaseExpression] = None
  fixed: Optional[SymbolType] = None


class Scope:
  """
  Represents a variable scope (Module, Class, Function or Lambda).
  """

  def __init__(
    self,
    kind: str,
    node: cst.CSTNode,
    parent: Optional["Scope"] = None,
    prefix: str = "",
    function_id: Optional[FunctionId] = None,
    class_ref: Optional[ClassRef] = None,
  ):
    """
    Initialize the scope.

    Args:
        kind: One of "module", "class", "function".
        node: The CST node opening the scope.
        parent: The enclosing scope (None for modules).
        prefix: Qualified-name prefix for declarations inside this scope.
        function_id: Identity of the callable unit (module and function scopes).
        class_ref: Identity of the class (class scopes).
    """
    self.kind = kind
    self.node = node
    self.parent = parent
    self.prefix = prefix
    self.function_id = function_id
    self.class_ref = class_ref
    self.bindings: Dict[str, List[Binding]] = {}
    self.globals: Set[str] = set()
    self.nonlocals: Set[str] = set()
    self.params: List[cst.Param] = []
    self.receiver: Optional[str] = None
    self.owner: Optional[ClassRef] = None

  def bind(self, name: str, binding: Binding) -> None:
    """
    Register a binding for a name in this scope.

    Args:
        name: Variable identifier.
        binding: The unevaluated binding.
    """
    self.bindings.setdefault(name, []).append(binding)

  def module_scope(self) -> "Scope":
    """Returns the root scope of the file."""
    current = self
    while current.parent is not None:
      current = current.parent
    return current

  def target_scope(self, name: str) -> "Scope":
    """
    Returns the scope an assignment to `name` binds in, honouring
    ``global`` and ``nonlocal`` declarations.
    """
    if name in self.globals:
      return self.module_scope()
    if name in self.nonlocals:
      current = self.parent
      while current is not None:
        if current.kind == "function" and name in current.bindings:
          return current
        current = current.parent
    return self

  def __repr__(self) -> str:
    return f"Scope({self.kind}, {self.prefix or '<root>'})"


@dataclass
class ClassInfo:
  """
  Declaration-time facts about one class.
  """

  ref: ClassRef
  node: cst.ClassDef
  scope: Scope
  outer: Scope
  instance_attrs: Dict[str, List[Binding]] = field(default_factory=dict)
  properties: Dict[str, List[FunctionId]] = field(default_factory=dict)


class DeclarationCollector(cst.CSTVisitor):
  """
  Builds the scope tree of one file and records all name bindings.
  """

  def __init__(self, table: "SymbolTable", source: SourceFile):
    """
    Args:
        table: The program-wide table receiving scopes and classes.
        source: The file being walked.
    """
    self.table = table
    self.source = source
    self._stack: List[Scope] = []

  @property
  def current(self) -> Scope:
    return self._stack[-1]

  # --- Scopes ---

  def visit_Module(self, node: cst.Module) -> None:
    fid = FunctionId(self.source.display_name, self.source.module_name, MODULE_QUALNAME, 1, 1)
    scope = Scope("module", node, function_id=fid)
    self.table._register_scope(node, scope)
    self.table._module_scopes[self.source.module_name] = scope
    self._stack.append(scope)

  def leave_Module(self, original_node: cst.Module) -> None:
    self._stack.pop()

  def visit_ClassDef(self, node: cst.ClassDef) -> None:
    outer = self.current
    name = node.name.value
    pos = self.source.position(node)
    ref = ClassRef(self.source.display_name, self.source.module_name, outer.prefix + name, pos.line, pos.column)
    self._bind(name, Binding(FIXED, outer, fixed=ClassType(name, ref)))

    scope = Scope("class", node, parent=outer, prefix=ref.qualname + ".", class_ref=ref)
    self.table._register_scope(node, scope)
    self.table._classes[ref] = ClassInfo(ref=ref, node=node, scope=scope, outer=outer)
    self._stack.append(scope)

  def leave_ClassDef(self, original_node: cst.ClassDef) -> None:
    self._stack.pop()

  def visit_FunctionDef(self, node: cst.FunctionDef) -> None:
    outer = self.current
    name = node.name.value
    pos = self.source.position(node)
    qualname = outer.prefix + name
    fid = FunctionId(self.source.display_name, self.source.module_name, qualname, pos.line, pos.column)
    owner = outer.class_ref if outer.kind == "class" else None
    decorators = {get_full_name(_decorator_target(d)).rsplit(".", 1)[-1] for d in node.decorators}
    if owner is not None and decorators & PROPERTY_DECORATORS:
      self._bind_property(name, node, fid, owner)
    else:
      self._bind(name, Binding(FIXED, outer, fixed=FunctionType(name, fid, owner)))

    scope = Scope("function", node, parent=outer, prefix=qualname + ".<locals>.", function_id=fid)
    scope.owner = owner
    self.table._register_scope(node, scope)

    positional = [*node.params.posonly_params, *node.params.params]
    receiver = positional[0] if owner is not None and positional and "staticmethod" not in decorators else None

    for param in _all_params(node.params):
      scope.params.append(param)
      pname = param.name.value
      if param is receiver:
        scope.receiver = pname
        fixed: SymbolType = ClassType(owner.name, owner) if "classmethod" in decorators else InstanceType(owner.name, owner)
        scope.bind(pname, Binding(FIXED, scope, fixed=fixed))
      elif param.annotation is not None:
        scope.bind(pname, Binding(ANNOTATION, outer, expr=param.annotation.annotation))
      else:
        scope.bind(pname, Binding(UNKNOWN, scope))

    self._stack.append(scope)

  def leave_FunctionDef(self, original_node: cst.FunctionDef) -> None:
    self._stack.pop()

  def visit_Lambda(self, node: cst.Lambda) -> None:
    outer = self.current
    pos = self.source.position(node)
    qualname = outer.prefix + LAMBDA_NAME
    fid = FunctionId(self.source.display_name, self.source.module_name, qualname, pos.line, pos.column)

    scope = Scope("function", node, parent=outer, prefix=qualname + ".<locals>.", function_id=fid)
    self.table._register_scope(node, scope)
    for param in _all_params(node.params):
      scope.params.append(param)
      scope.bind(param.name.value, Binding(UNKNOWN, scope))
    self._stack.append(scope)

  def leave_Lambda(self, original_node: cst.Lambda) -> None:
    self._stack.pop()

  def visit_Global(self, node: cst.Global) -> None:
    self.current.globals.update(n.name.value for n in node.names)

  def visit_Nonlocal(self, node: cst.Nonlocal) -> None:
    self.current.nonlocals.update(n.name.value for n in node.names)

  # --- Bindings ---

  def visit_Assign(self, node: cst.Assign) -> None:
    for target in node.targets:
      self._bind_target(target.target, node.value)

  def visit_AnnAssign(self, node: cst.AnnAssign) -> None:
    target = node.target
    if isinstance(target, cst.Name):
      self._bind(target.value, Binding(ANNOTATION, self.current, expr=node.annotation.annotation))
    elif isinstance(target, cst.Attribute):
      self._bind_instance_attr(target, Binding(ANNOTATION, self.current, expr=node.annotation.annotation))

  def visit_NamedExpr(self, node: cst.NamedExpr) -> None:
    self._bind_target(node.target, node.value)

  def visit_For(self, node: cst.For) -> None:
    self._bind_target(node.target, None)

  def visit_WithItem(self, node: cst.WithItem) -> None:
    if node.asname is not None:
      self._bind_target(node.asname.name, None)

  def visit_ExceptHandler(self, node: cst.ExceptHandler) -> None:
    if node.name is not None:
      self._bind_target(node.name.name, None)

  def visit_Import(self, node: cst.Import) -> None:
    """
    ``import a.b`` binds ``a``; ``import a.b as x`` binds ``x`` to ``a.b``.
    """
    for alias in node.names:
      full_path = get_full_name(alias.name)
      if alias.asname is not None:
        bind_name = alias.asname.name.value
        path = full_path
      else:
        bind_name = full_path.split(".")[0]
        path = bind_name
      self._bind(bind_name, Binding(FIXED, self.current, fixed=ModuleType("Module", path)))

  def visit_ImportFrom(self, node: cst.ImportFrom) -> None:
    """
    ``from m import n as k`` binds ``k`` to the dotted path ``m.n``.
    """
    if isinstance(node.names, cst.ImportStar):
      return
    base_mod = self._absolute_module(node)
    for alias in node.names:
      import_name = get_full_name(alias.name)
      bind_name = alias.asname.name.value if alias.asname else import_name
      full_path = f"{base_mod}.{import_name}" if base_mod else import_name
      self._bind(bind_name, Binding(FIXED, self.current, fixed=ModuleType("Module", full_path)))

  def _absolute_module(self, node: cst.ImportFrom) -> str:
    module = get_full_name(node.module) if node.module is not None else ""
    level = len(node.relative)
    if level == 0:
      return module

    parts = self.source.module_name.split(".")
    if self.source.path.stem != "__init__":
      parts = parts[:-1]
    if level > 1:
      parts = parts[: len(parts) - (level - 1)]
    if module:
      parts.append(module)
    return ".".join(parts)

  def _bind(self, name: str, binding: Binding) -> None:
    self.current.target_scope(name).bind(name, binding)

  def _bind_property(self, name: str, node: cst.FunctionDef, fid: FunctionId, owner: ClassRef) -> None:
    """
    Binds a property accessor as a data attribute typed by the getter's
    return annotation, and records the accessor on its class.
    """
    if node.returns is not None:
      self._bind(name, Binding(ANNOTATION, self.current, expr=node.returns.annotation))
    else:
      self._bind(name, Binding(UNKNOWN, self.current))
    self.table._classes[owner].properties.setdefault(name, []).append(fid)

  def _bind_target(self, target: cst.BaseExpression, value: Optional[cst.BaseExpression]) -> None:
    if isinstance(target, cst.Name):
      if value is None:
        self._bind(target.value, Binding(UNKNOWN, self.current))
      else:
        self._bind(target.value, Binding(VALUE, self.current, expr=value))
    elif isinstance(target, (cst.Tuple, cst.List)):
      for element in target.elements:
        self._bind_target(element.value, None)
    elif isinstance(target, cst.Attribute):
      kind = VALUE if value is not None else UNKNOWN
      self._bind_instance_attr(target, Binding(kind, self.current, expr=value))

  def _bind_instance_attr(self, target: cst.Attribute, binding: Binding) -> None:
    """Records ``self.x = ...`` inside a method as an attribute of the class."""
    method = _method_scope(self.current)
    if method is None or method.owner is None:
      return
    if isinstance(target.value, cst.Name) and target.value.value == method.receiver:
      info = self.table._classes[method.owner]
      info.instance_attrs.setdefault(target.attr.value, []).append(binding)


class SymbolTable:
  """
  Program-wide container of scopes, classes and callable units, with lazy
  type resolution over them.
  """

  def __init__(self, program: Program):
    """
    Args:
        program: The loaded program. Call `build` to populate.
    """
    self.program = program
    self._scopes: Dict[cst.CSTNode, Scope] = {}
    self._module_scopes: Dict[str, Scope] = {}
    self._classes: Dict[ClassRef, ClassInfo] = {}
    self._functions: Dict[FunctionId, Scope] = {}
    self._cache: Dict[Tuple[int, str], Optional[SymbolType]] = {}
    self._in_progress: Set[Tuple[int, str]] = set()
    self._member_cache: Dict[Tuple[ClassRef, str, bool], Optional[SymbolType]] = {}
    self._member_in_progress: Set[Tuple[ClassRef, str, bool]] = set()
    # Bumped whenever a lookup hits its own in-progress evaluation
    self._cycle_hits = 0

  @classmethod
  def build(cls, program: Program) -> "SymbolTable":
    """
    Runs the declaration pass over every file.

    Args:
        program: The loaded program.

    Returns:
        SymbolTable: A populated table.
    """
    table = cls(program)
    for source in program.files:
      source.module.visit(DeclarationCollector(table, source))
    logger.debug("Symbol table: %d callable units, %d classes", len(table._functions), len(table._classes))
    return table

  def _register_scope(self, node: cst.CSTNode, scope: Scope) -> None:
    self._scopes[node] = scope
    if scope.function_id is not None:
      self._functions[scope.function_id] = scope

  # --- Lookups ---

  def scope_for(self, node: cst.CSTNode) -> Optional[Scope]:
    """Returns the scope opened by a Module/ClassDef/FunctionDef/Lambda node."""
    return self._scopes.get(node)

  def function_scope(self, fid: FunctionId) -> Optional[Scope]:
    """Returns the scope of a callable unit."""
    return self._functions.get(fid)

  @property
  def function_ids(self) -> List[FunctionId]:
    """All callable units in declaration order."""
    return list(self._functions)

  def classes_in(self, source: SourceFile) -> Iterator[ClassInfo]:
    """Yields the classes declared in one file, in source order."""
    for ref, info in self._classes.items():
      if ref.file == source.display_name:
        yield info

  def class_info(self, ref: ClassRef) -> Optional[ClassInfo]:
    return self._classes.get(ref)

  # --- Resolution ---

  def resolve_name(self, scope: Scope, name: str) -> Optional[SymbolType]:
    """
    Resolves a name following Python's scoping rules.

    Class scopes are only visible from their own body, not from methods.

    Args:
        scope: The scope the name is used in.
        name: Identifier to look up.

    Returns:
        The resolved type, or None for builtins, unknowns and undefined names.
    """
    current: Optional[Scope] = scope.module_scope() if name in scope.globals else scope
    first = True
    while current is not None:
      if current.kind == "class" and not first:
        current = current.parent
        continue
      if name in current.bindings:
        return self._evaluate_name(current, name)
      first = False
      current = current.parent
    return None

  def binding_scope(self, scope: Scope, name: str) -> Optional[Scope]:
    """Returns the scope whose binding `resolve_name` would use."""
    current: Optional[Scope] = scope.module_scope() if name in scope.globals else scope
    first = True
    while current is not None:
      if not (current.kind == "class" and not first) and name in current.bindings:
        return current
      first = False
      current = current.parent
    return None

  def type_of(self, expr: cst.BaseExpression, scope: Scope) -> Optional[SymbolType]:
    """
    Infers the static type of an expression.

    Args:
        expr: Expression node.
        scope: The scope the expression is evaluated in.

    Returns:
        The resolved type, or None if unknown.
    """
    if isinstance(expr, cst.Name):
      return self.resolve_name(scope, expr.value)

    if isinstance(expr, cst.Attribute):
      base = self.type_of(expr.value, scope)
      if base is None:
        return None
      return self._attribute_type(base, expr.attr.value)

    if isinstance(expr, cst.Call):
      func_type = self.type_of(expr.func, scope)
      if isinstance(func_type, ClassType):
        return InstanceType(func_type.ref.name, func_type.ref)
      if isinstance(func_type, FunctionType):
        return self._return_type(func_type.target)
      return None

    if isinstance(expr, cst.Lambda):
      fid = self._scopes[expr].function_id if expr in self._scopes else None
      return FunctionType(LAMBDA_NAME, fid) if fid else None

    if isinstance(expr, cst.NamedExpr):
      return self.type_of(expr.value, scope)

    if isinstance(expr, cst.Await):
      return self.type_of(expr.expression, scope)

    return None

  def annotation_type(self, expr: cst.BaseExpression, scope: Scope) -> Optional[InstanceType]:
    """
    Resolves a type annotation to the instance type it declares.

    Understands plain and dotted class names, string forward references,
    ``Optional[X]``, ``Union[X, None]`` and ``X | None``.

    Args:
        expr: The annotation expression.
        scope: The scope the annotation is evaluated in.

    Returns:
        The declared instance type, or None.
    """
    if isinstance(expr, cst.SimpleString):
      text = expr.evaluated_value
      if not isinstance(text, str):
        return None
      try:
        return self.annotation_type(cst.parse_expression(text), scope)
      except cst.ParserSyntaxError:
        return None

    if isinstance(expr, cst.Subscript):
      wrapper = get_full_name(expr.value).rsplit(".", 1)[-1]
      if wrapper not in ("Optional", "Union", "Annotated", "ClassVar", "Final"):
        return None
      for element in expr.slice:
        if isinstance(element.slice, cst.Index):
          found = self.annotation_type(element.slice.value, scope)
          if found is not None:
            return found
          if wrapper == "Annotated":
            break
      return None

    if isinstance(expr, cst.BinaryOperation) and isinstance(expr.operator, cst.BitOr):
      return self.annotation_type(expr.left, scope) or self.annotation_type(expr.right, scope)

    if isinstance(expr, (cst.Name, cst.Attribute)):
      declared = self.type_of(expr, scope)
      if isinstance(declared, ClassType):
        return InstanceType(declared.ref.name, declared.ref)
    return None

  def member_type(self, ref: ClassRef, attr: str, instance: bool = True) -> Optional[SymbolType]:
    """
    Looks up an attribute on a class and its in-program bases.

    Args:
        ref: The class to search.
        attr: Attribute name.
        instance: If True, attributes assigned through the receiver in
            methods are considered as well as class-body definitions.

    Returns:
        The attribute's type, or None.
    """
    key = (ref, attr, instance)
    if key in self._member_cache:
      return self._member_cache[key]
    if key in self._member_in_progress:
      # e.g. self.node = self.node.next
      self._cycle_hits += 1
      return None

    hits = self._cycle_hits
    self._member_in_progress.add(key)
    try:
      found = self._lookup_member(ref, attr, instance)
    finally:
      self._member_in_progress.discard(key)

    if self._cacheable(found, hits):
      self._member_cache[key] = found
    return found

  def _lookup_member(self, ref: ClassRef, attr: str, instance: bool) -> Optional[SymbolType]:
    for info in self.mro(ref):
      if attr in info.scope.bindings:
        found = self._evaluate_name(info.scope, attr)
        if found is not None:
          return found
      if instance and attr in info.instance_attrs:
        for binding in info.instance_attrs[attr]:
          found = self._evaluate(binding)
          if found is not None:
            return found
    return None

  def is_method(self, ref: ClassRef, attr: str) -> bool:
    """
    True if `attr` names a ``def`` in the class body or an in-program base.
    Property accessors are data attributes, not methods.
    """
    found = self.member_type(ref, attr, instance=False)
    return isinstance(found, FunctionType) and found.owner is not None

  def property_accessors(self, ref: ClassRef, attr: str) -> List[FunctionId]:
    """Getter, setter and deleter defs behind a property, nearest class first."""
    for info in self.mro(ref):
      if attr in info.properties:
        return list(info.properties[attr])
    return []

  def mro(self, ref: ClassRef) -> List[ClassInfo]:
    """
    Linearised in-program class hierarchy (depth-first, left to right).
    """
    order: List[ClassInfo] = []
    seen: Set[ClassRef] = set()

    def walk(r: ClassRef) -> None:
      if r in seen or r not in self._classes:
        return
      seen.add(r)
      order.append(self._classes[r])
      for base in self.class_bases(r):
        if isinstance(base, ClassType):
          walk(base.ref)

    walk(ref)
    return order

  def class_bases(self, ref: ClassRef) -> List[Optional[SymbolType]]:
    """Resolved base-class expressions of a class, in declaration order."""
    info = self._classes.get(ref)
    if info is None:
      return []
    return [self.type_of(arg.value, info.outer) for arg in info.node.bases]

  def external_bases(self, ref: ClassRef) -> List[str]:
    """Dotted paths of bases, anywhere in the hierarchy, declared outside the program."""
    paths = []
    for info in self.mro(ref):
      for base in self.class_bases(info.ref):
        if isinstance(base, ModuleType):
          paths.append(base.path)
    return paths

  # --- Internals ---

  def _evaluate_name(self, scope: Scope, name: str) -> Optional[SymbolType]:
    key = (id(scope), name)
    if key in self._cache:
      return self._cache[key]
    if key in self._in_progress:
      self._cycle_hits += 1
      return None

    hits = self._cycle_hits
    self._in_progress.add(key)
    try:
      result = None
      for binding in scope.bindings.get(name, []):
        result = self._evaluate(binding)
        if result is not None:
          break
    finally:
      self._in_progress.discard(key)

    if self._cacheable(result, hits):
      self._cache[key] = result
    return result

  def _cacheable(self, result: Optional[SymbolType], hits: int) -> bool:
    """
    A None computed inside an unfinished cycle may resolve once the outer
    evaluation completes, so it is only cached at the outermost level.
    """
    if result is not None or hits == self._cycle_hits:
      return True
    return not self._in_progress and not self._member_in_progress

  def _evaluate(self, binding: Binding) -> Optional[SymbolType]:
    if binding.kind == FIXED:
      return self._materialize(binding.fixed)
    if binding.kind == VALUE and binding.expr is not None:
      return self.type_of(binding.expr, binding.scope)
    if binding.kind == ANNOTATION and binding.expr is not None:
      return self.annotation_type(binding.expr, binding.scope)
    return None

  def _materialize(self, sym: Optional[SymbolType]) -> Optional[SymbolType]:
    if isinstance(sym, ModuleType):
      return self._resolve_path(sym.path)
    return sym

  def _resolve_path(self, path: str) -> SymbolType:
    """
    Maps a dotted path onto the program when its prefix is an analysed module.
    """
    if path in self._module_scopes:
      return ModuleType("Module", path)

    parts = path.split(".")
    for cut in range(len(parts) - 1, 0, -1):
      prefix = ".".join(parts[:cut])
      if prefix not in self._module_scopes:
        continue
      module_scope = self._module_scopes[prefix]
      head = parts[cut]
      if head not in module_scope.bindings:
        break
      current = self._evaluate_name(module_scope, head)
      for attr in parts[cut + 1 :]:
        if current is None:
          break
        current = self._attribute_type(current, attr)
      if current is not None:
        return current
      break

    return ModuleType("Module", path)

  def _attribute_type(self, base: SymbolType, attr: str) -> Optional[SymbolType]:
    if isinstance(base, ModuleType):
      return self._resolve_path(f"{base.path}.{attr}")
    if isinstance(base, ClassType):
      return self.member_type(base.ref, attr, instance=False)
    if isinstance(base, InstanceType):
      return self.member_type(base.ref, attr, instance=True)
    return None

  def _return_type(self, fid: FunctionId) -> Optional[SymbolType]:
    scope = self._functions.get(fid)
    if scope is None or not isinstance(scope.node, cst.FunctionDef) or scope.node.returns is None:
      return None
    return self.annotation_type(scope.node.returns.annotation, scope.parent or scope)


def _decorator_target(decorator: cst.Decorator) -> cst.BaseExpression:
  expr = decorator.decorator
  return expr.func if isinstance(expr, cst.Call) else expr


def _all_params(params: cst.Parameters) -> List[cst.Param]:
  collected: List[cst.Param] = [*params.posonly_params, *params.params]
  if isinstance(params.star_arg, cst.Param):
    collected.append(params.star_arg)
  collected.extend(params.kwonly_params)
  if isinstance(params.star_kwarg, cst.Param):
    collected.append(params.star_kwarg)
  return collected


def _method_scope(scope: Scope) -> Optional[Scope]:
  """Nearest enclosing ``def`` directly inside a class body."""
  current: Optional[Scope] = scope
  while current is not None:
    if current.kind == "function" and current.owner is not None:
      return current
    if current.kind in ("class", "module"):
      return None
    current = current.parent
  return None


class ScopedVisitor(cst.CSTVisitor):
  """
  Base visitor that tracks the scope stack of a walk using an already-built
  `SymbolTable`. Subclasses overriding the scope hooks must call ``super()``.
  """

  def __init__(self, table: SymbolTable):
    self.table = table
    self.scope_stack: List[Scope] = []

  @property
  def scope(self) -> Scope:
    return self.scope_stack[-1]

  def _enter(self, node: cst.CSTNode) -> None:
    scope = self.table.scope_for(node)
    if scope is None:
      raise KeyError(f"No scope recorded for {type(node).__name__}")
    self.scope_stack.append(scope)

  def visit_Module(self, node: cst.Module) -> Optional[bool]:
    self._enter(node)
    return True

  def leave_Module(self, original_node: cst.Module) -> None:
    self.scope_stack.pop()

  def visit_ClassDef(self, node: cst.ClassDef) -> Optional[bool]:
    self._enter(node)
    return True

  def leave_ClassDef(self, original_node: cst.ClassDef) -> None:
    self.scope_stack.pop()

  def visit_FunctionDef(self, node: cst.FunctionDef) -> Optional[bool]:
    self._enter(node)
    return True

  def leave_FunctionDef(self, original_node: cst.FunctionDef) -> None:
    self.scope_stack.pop()

  def visit_Lambda(self, node: cst.Lambda) -> Optional[bool]:
    self._enter(node)
    return True

  def leave_Lambda(self, original_node: cst.Lambda) -> None:
    self.scope_stack.pop()

  def enclosing_unit(self) -> FunctionId:
    """
    The callable unit executing the current node. Class bodies run as part of
    whichever unit executes the ``class`` statement.
    """
    for scope in reversed(self.scope_stack):
      if scope.function_id is not None:
        return scope.function_id
    raise LookupError("walk did not start at a Module")

  def enclosing_function(self) -> Optional[Scope]:
    """Nearest ``def``/``lambda`` scope, or None at module level."""
    for scope in reversed(self.scope_stack):
      if scope.kind == "function":
        return scope
      if scope.kind == "module":
        return None
    return None
