"""
Liveness Filter.

Decides whether a callable unit can execute at all. Findings inside dead code
are suppressed.

Two strategies:

- ``ENTRY_REACHABLE`` (default): the live set is computed once by forward
  reachability from the entry points and reused for every query.
- ``HAS_CALLER``: a unit is live if it is an entry point or has at least one
  incoming edge. Cheaper, but a function called only from dead code counts as
  live.
"""

import logging
from collections import deque
from typing import Iterable, List, Optional, Set

from critsec.enums import LivenessMode
from critsec.frontend.callgraph import CallGraph
from critsec.frontend.identity import FunctionId

logger = logging.getLogger(__name__)


def find_entry_points(graph: CallGraph, names: Iterable[str], module_entry: bool = True) -> List[FunctionId]:
  """
  Selects the entry points among the graph's nodes.

  Args:
      graph: The program call graph.
      names: Qualified names (``main``, ``Server.run``) or fully qualified
          names (``app.cli.main``) of entry functions.
      module_entry: If True, every module body is an entry point.

  Returns:
      List[FunctionId]: Entry points in node order.
  """
  wanted = set(names)
  entries = []
  for fid in graph.nodes:
    if fid.is_external:
      continue
    if (module_entry and fid.is_module) or fid.qualname in wanted or fid.fqn in wanted:
      entries.append(fid)
  return entries


class LivenessFilter:
  """
  Answers "is this unit live?" under the configured strategy.
  """

  def __init__(self, graph: CallGraph, entry_points: Iterable[FunctionId], mode: LivenessMode = LivenessMode.ENTRY_REACHABLE):
    self.graph = graph
    self.entry_points: Set[FunctionId] = set(entry_points)
    self.mode = mode
    self._live: Optional[Set[FunctionId]] = None

  @property
  def live_set(self) -> Set[FunctionId]:
    """
    Units reachable from an entry point, computed on first use.
    """
    if self._live is None:
      self._live = self._forward_reachable()
      logger.debug("Live set: %d of %d units", len(self._live), len(self.graph.nodes))
    return self._live

  def is_live(self, fid: FunctionId) -> bool:
    if self.mode == LivenessMode.HAS_CALLER:
      return fid in self.entry_points or self.graph.has_incoming(fid)
    return fid in self.live_set

  def _forward_reachable(self) -> Set[FunctionId]:
    seen: Set[FunctionId] = set(self.entry_points)
    queue = deque(self.entry_points)
    while queue:
      current = queue.popleft()
      for callee in self.graph.callees_of(current):
        if callee not in seen:
          seen.add(callee)
          queue.append(callee)
    return seen
