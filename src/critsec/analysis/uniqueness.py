"""
Uniqueness Checker.

A guarded type is expected to have one instance per file. The first live
instantiation registers the type; any further live instantiation is reported.
Types are keyed by class identity, so same-named classes in different scopes
are tracked separately.
"""

from typing import Optional, Set

from critsec.analysis.catalog import GuardedType
from critsec.analysis.diagnostics import Violation
from critsec.analysis.liveness import LivenessFilter
from critsec.enums import ViolationKind
from critsec.frontend.identity import FunctionId, SourcePosition
from critsec.frontend.symbols import ClassRef


class InstanceRegistry:
  """
  Guarded types already instantiated in one file. Only grows.
  """

  def __init__(self) -> None:
    self._seen: Set[ClassRef] = set()

  def add(self, ref: ClassRef) -> None:
    self._seen.add(ref)

  def __contains__(self, ref: object) -> bool:
    return ref in self._seen

  def __len__(self) -> int:
    return len(self._seen)


class UniquenessChecker:
  def __init__(self, liveness: LivenessFilter):
    self.liveness = liveness

  def record(
    self,
    registry: InstanceRegistry,
    gt: GuardedType,
    function: Optional[FunctionId],
    position: SourcePosition,
    unit: Optional[FunctionId] = None,
  ) -> Optional[Violation]:
    """
    Records an instantiation event.

    Args:
        registry: The current file's registry.
        gt: The instantiated guarded type.
        function: Enclosing function, or None for module-level code.
        position: Position of the declaring statement.
        unit: Callable unit running module-level code (the module body).
            A module-level instantiation registers only when it is live.

    Returns:
        A multiple-instance violation for a repeated live instantiation.
    """
    if function is None:
      if unit is None or self.liveness.is_live(unit):
        registry.add(gt.ref)
      return None
    if not self.liveness.is_live(function):
      return None
    if gt.ref in registry:
      return Violation.create(ViolationKind.MULTIPLE_INSTANCE, position)
    registry.add(gt.ref)
    return None
