"""
Access Site Scanner.

Walks one file's tree once and classifies the constructs that involve guarded
types:

- ``g.attr`` on a guarded instance is a read access.
- An assignment target (plain, annotated, augmented, ``del``, ``for``,
  ``with ... as`` and comprehension targets) that is ``g.attr`` after
  stripping subscripts is a write access. The target's position is marked
  so the same node is not reported again as a read.
- ``g = G()`` (also annotated and ``:=`` assignments) is an instantiation.
- A function with a parameter annotated as a guarded type is an arg-pass
  violation when the function is live. Attributes reached through that
  parameter are not analysed further.

Not counted as accesses: the lease selector itself (``g.lease``), references
to methods of the class, ``self.attr`` inside the class's own constructor, and
anything outside a function body.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

import libcst as cst

from critsec.analysis.catalog import GuardedType, GuardedTypeCatalog
from critsec.analysis.diagnostics import Violation
from critsec.analysis.liveness import LivenessFilter
from critsec.analysis.reachability import LeaseReachabilityChecker
from critsec.analysis.uniqueness import InstanceRegistry, UniquenessChecker
from critsec.enums import AccessKind, ViolationKind
from critsec.frontend.identity import FunctionId, SourcePosition
from critsec.frontend.loader import SourceFile
from critsec.frontend.symbols import CONSTRUCTOR_METHODS, ClassType, InstanceType, Scope, ScopedVisitor, SymbolTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessSite:
  """
  A read or write of an attribute of a guarded instance.
  """

  position: SourcePosition
  kind: AccessKind
  function: FunctionId
  guarded: GuardedType


@dataclass
class FileAnalysisState:
  """
  Mutable state of one file's analysis, threaded through the scanner.
  """

  source: SourceFile
  catalog: GuardedTypeCatalog
  registry: InstanceRegistry = field(default_factory=InstanceRegistry)
  inspected: Set[SourcePosition] = field(default_factory=set)
  instantiations: Set[SourcePosition] = field(default_factory=set)
  violations: List[Violation] = field(default_factory=list)


class AccessSiteScanner(ScopedVisitor):
  """
  Single-pass visitor producing the violations of one file.
  """

  def __init__(
    self,
    table: SymbolTable,
    state: FileAnalysisState,
    liveness: LivenessFilter,
    reachability: LeaseReachabilityChecker,
    uniqueness: UniquenessChecker,
    lease_method: str = "lease",
  ):
    super().__init__(table)
    self.state = state
    self.liveness = liveness
    self.reachability = reachability
    self.uniqueness = uniqueness
    self.lease_method = lease_method
    # Parameter names excluded from analysis, per function scope
    self._flagged: Dict[int, Set[str]] = {}

  # --- Declarations ---

  def visit_FunctionDef(self, node: cst.FunctionDef) -> Optional[bool]:
    super().visit_FunctionDef(node)
    scope = self.scope
    outer = scope.parent or scope

    flagged = set()
    for param in scope.params:
      if param.annotation is None:
        continue
      declared = self.table.annotation_type(param.annotation.annotation, outer)
      if self.state.catalog.match(declared) is not None:
        flagged.add(param.name.value)

    if flagged:
      self._flagged[id(scope)] = flagged
      if self.liveness.is_live(scope.function_id):
        pos = self.state.source.position(node)
        self.state.violations.append(Violation.create(ViolationKind.ARG_PASS, pos))
        logger.debug("Guarded parameter(s) %s in %s", sorted(flagged), scope.function_id)
    return True

  # --- Writes and instantiations ---

  def visit_Assign(self, node: cst.Assign) -> Optional[bool]:
    for target in node.targets:
      self._record_writes(target.target)
    self._check_instantiation(node, node.value)
    return True

  def visit_AnnAssign(self, node: cst.AnnAssign) -> Optional[bool]:
    if node.value is not None:
      self._record_writes(node.target)
      self._check_instantiation(node, node.value)
    return True

  def visit_AugAssign(self, node: cst.AugAssign) -> Optional[bool]:
    self._record_writes(node.target)
    return True

  def visit_Del(self, node: cst.Del) -> Optional[bool]:
    self._record_writes(node.target)
    return True

  def visit_For(self, node: cst.For) -> Optional[bool]:
    self._record_writes(node.target)
    return True

  def visit_WithItem(self, node: cst.WithItem) -> Optional[bool]:
    if node.asname is not None:
      self._record_writes(node.asname.name)
    return True

  def visit_CompFor(self, node: cst.CompFor) -> Optional[bool]:
    self._record_writes(node.target)
    return True

  def visit_NamedExpr(self, node: cst.NamedExpr) -> Optional[bool]:
    self._check_instantiation(node, node.value)
    return True

  # --- Reads ---

  def visit_Attribute(self, node: cst.Attribute) -> Optional[bool]:
    self._check_access(node, AccessKind.READ)
    return True

  # --- Internals ---

  def _record_writes(self, target: cst.BaseExpression) -> None:
    if isinstance(target, (cst.Tuple, cst.List)):
      for element in target.elements:
        self._record_writes(element.value)
    elif isinstance(target, cst.StarredElement):
      self._record_writes(target.value)
    elif isinstance(target, cst.Subscript):
      self._record_writes(target.value)
    elif isinstance(target, cst.Attribute):
      self._check_access(target, AccessKind.WRITE)

  def _check_access(self, node: cst.Attribute, kind: AccessKind) -> None:
    pos = self.state.source.position(node)
    if pos in self.state.inspected:
      return
    gt = self._match_attribute(node)
    if gt is None:
      return
    self.state.inspected.add(pos)

    function = self.enclosing_function()
    if function is None:
      return
    site = AccessSite(position=pos, kind=kind, function=function.function_id, guarded=gt)
    violation = self.reachability.check(site)
    if violation is not None:
      self.state.violations.append(violation)

  def _match_attribute(self, node: cst.Attribute) -> Optional[GuardedType]:
    attr = node.attr.value
    if attr == self.lease_method:
      return None
    base = self.table.type_of(node.value, self.scope)
    if not isinstance(base, InstanceType):
      return None
    gt = self.state.catalog.match(base)
    if gt is None:
      return None
    if self.table.is_method(base.ref, attr):
      return None
    if self._is_flagged_param(node.value) or self._is_under_construction(node.value):
      return None
    return gt

  def _is_flagged_param(self, expr: cst.BaseExpression) -> bool:
    if not isinstance(expr, cst.Name):
      return False
    owner: Optional[Scope] = self.table.binding_scope(self.scope, expr.value)
    return owner is not None and expr.value in self._flagged.get(id(owner), ())

  def _is_under_construction(self, expr: cst.BaseExpression) -> bool:
    """``self`` inside the constructor of its own class."""
    function = self.enclosing_function()
    if function is None or function.receiver is None or function.function_id.name not in CONSTRUCTOR_METHODS:
      return False
    return isinstance(expr, cst.Name) and expr.value == function.receiver

  def _check_instantiation(self, stmt: cst.CSTNode, value: cst.BaseExpression) -> None:
    if not isinstance(value, cst.Call):
      return
    created = self.table.type_of(value.func, self.scope)
    if not isinstance(created, ClassType):
      return
    gt = self.state.catalog.match(created)
    if gt is None:
      return

    call_pos = self.state.source.position(value)
    if call_pos in self.state.instantiations:
      return
    self.state.instantiations.add(call_pos)

    function = self.enclosing_function()
    fid = function.function_id if function is not None else None
    pos = self.state.source.position(stmt)
    violation = self.uniqueness.record(self.state.registry, gt, fid, pos, unit=self.enclosing_unit())
    if violation is not None:
      self.state.violations.append(violation)
