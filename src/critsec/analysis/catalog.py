"""
Guarded-Type Catalog.

Recognises the classes of a file that carry the guarded-section marker,
i.e. whose **first** base class resolves to one of the configured marker paths
(``critsec.Section`` by default). A class whose first base is itself a guarded
class of the program is guarded as well.

Each entry records the class's value form (``G``) and its reference form
(``Optional[G]``); annotations in either spelling match the same entry.

Type aliases and generic instantiations are not followed.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Set

from critsec.frontend.identity import SourcePosition
from critsec.frontend.loader import SourceFile
from critsec.frontend.symbols import ClassRef, ClassType, InstanceType, ModuleType, SymbolTable, SymbolType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GuardedType:
  """
  A class whose attributes may only be touched inside a lease callback.
  """

  name: str
  ref: ClassRef
  reference_form: str
  position: SourcePosition


class GuardedTypeCatalog:
  """
  Guarded types keyed by class identity.
  """

  def __init__(self, types: Iterable[GuardedType] = ()):
    self._types: Dict[ClassRef, GuardedType] = {}
    for gt in types:
      self.register(gt)

  def register(self, gt: GuardedType) -> None:
    # First registration wins
    self._types.setdefault(gt.ref, gt)

  def get(self, ref: ClassRef) -> Optional[GuardedType]:
    return self._types.get(ref)

  def by_name(self, name: str) -> List[GuardedType]:
    """All entries whose value or reference form is `name`."""
    return [gt for gt in self._types.values() if name in (gt.name, gt.reference_form)]

  def match(self, symbol: Optional[SymbolType]) -> Optional[GuardedType]:
    """
    Returns the entry for an instance (or class) of a cataloged type.
    """
    if isinstance(symbol, (InstanceType, ClassType)):
      return self._types.get(symbol.ref)
    return None

  @classmethod
  def merge(cls, catalogs: Iterable["GuardedTypeCatalog"]) -> "GuardedTypeCatalog":
    """Combines per-file catalogs into the program view."""
    merged = cls()
    for catalog in catalogs:
      for gt in catalog:
        merged.register(gt)
    return merged

  def __contains__(self, ref: object) -> bool:
    return ref in self._types

  def __iter__(self) -> Iterator[GuardedType]:
    return iter(self._types.values())

  def __len__(self) -> int:
    return len(self._types)


class CatalogBuilder:
  """
  Decides which classes are guarded. Memoises across files, since a guarded
  base may live in another module.
  """

  def __init__(self, table: SymbolTable, marker_paths: Iterable[str]):
    self.table = table
    self.marker_paths: Set[str] = set(marker_paths)
    self._memo: Dict[ClassRef, bool] = {}

  def is_guarded(self, ref: ClassRef) -> bool:
    if ref in self._memo:
      return self._memo[ref]
    # Cycle guard for pathological self-inheritance
    self._memo[ref] = False

    bases = self.table.class_bases(ref)
    first = bases[0] if bases else None
    result = False
    if isinstance(first, ModuleType):
      result = first.path in self.marker_paths
    elif isinstance(first, ClassType):
      result = first.ref.fqn in self.marker_paths or self.is_guarded(first.ref)

    self._memo[ref] = result
    return result

  def build(self, source: SourceFile) -> GuardedTypeCatalog:
    """
    Scans the class declarations of one file.

    Args:
        source: The file to catalog.

    Returns:
        GuardedTypeCatalog: The file's guarded types.
    """
    catalog = GuardedTypeCatalog()
    for info in self.table.classes_in(source):
      if not self.is_guarded(info.ref):
        continue
      gt = GuardedType(
        name=info.ref.name,
        ref=info.ref,
        reference_form=f"Optional[{info.ref.name}]",
        position=SourcePosition(info.ref.file, info.ref.line, info.ref.column),
      )
      catalog.register(gt)
      logger.debug("Guarded type %s at %s", info.ref.fqn, gt.position)
    return catalog
