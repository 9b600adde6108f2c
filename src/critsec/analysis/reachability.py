"""
Lease-Reachability Checker.

An access inside unit F is guarded when the lease invocation node can be found
by walking call edges backwards from F. Otherwise the access is reported.

Two strategies:

- ``FULL`` (default): breadth-first search over *all* incoming edges,
  memoised per unit.
- ``SINGLE_PREDECESSOR``: for each incoming edge of F, follow only the first
  recorded incoming edge of every caller upwards. This misses lease paths that
  go through a second caller of an intermediate function, so it can report
  accesses that are in fact guarded.
"""

import logging
from collections import deque
from typing import Dict, Iterable, Optional, Set

from critsec.analysis.diagnostics import Violation
from critsec.analysis.liveness import LivenessFilter
from critsec.enums import AccessKind, ReachabilityMode, ViolationKind
from critsec.frontend.callgraph import CallGraph
from critsec.frontend.identity import FunctionId

logger = logging.getLogger(__name__)


class LeaseReachabilityChecker:
  """
  Decides whether access sites run under a lease.
  """

  def __init__(
    self,
    graph: CallGraph,
    liveness: LivenessFilter,
    lease_targets: Iterable[str],
    mode: ReachabilityMode = ReachabilityMode.FULL,
  ):
    """
    Args:
        graph: Program call graph.
        liveness: Filter used to skip dead units.
        lease_targets: Fully qualified names of the lease method.
        mode: Search strategy.
    """
    self.graph = graph
    self.liveness = liveness
    self.lease_targets: Set[str] = set(lease_targets)
    self.mode = mode
    self._memo: Dict[FunctionId, bool] = {}

  def is_lease(self, fid: FunctionId) -> bool:
    return fid.fqn in self.lease_targets

  def is_guarded(self, fid: FunctionId) -> bool:
    """
    True if a lease invocation is found upwards from `fid`.
    """
    if fid in self._memo:
      return self._memo[fid]
    if self.mode == ReachabilityMode.SINGLE_PREDECESSOR:
      result = any(self._walk_first_predecessor(edge.caller) for edge in self.graph.incoming(fid))
      self._memo[fid] = result
      return result
    return self._search_all_callers(fid)

  def check(self, site) -> Optional[Violation]:
    """
    Checks one access site.

    Args:
        site: An `AccessSite` produced by the scanner.

    Returns:
        The violation to report, or None when the site is dead or guarded.
    """
    if not self.liveness.is_live(site.function):
      return None
    if self.is_guarded(site.function):
      return None
    kind = ViolationKind.UNGUARDED_WRITE if site.kind == AccessKind.WRITE else ViolationKind.UNGUARDED_READ
    logger.debug("Unguarded %s in %s at %s", site.kind.value, site.function, site.position)
    return Violation.create(kind, site.position)

  def _search_all_callers(self, fid: FunctionId) -> bool:
    visited: Set[FunctionId] = {fid}
    queue = deque([fid])
    while queue:
      current = queue.popleft()
      for caller in self.graph.callers_of(current):
        if self.is_lease(caller) or self._memo.get(caller):
          self._memo[fid] = True
          return True
        if caller not in visited:
          visited.add(caller)
          queue.append(caller)

    # Every visited unit's callers are a subset of fid's: none reaches a lease either
    for unit in visited:
      self._memo[unit] = False
    return False

  def _walk_first_predecessor(self, start: FunctionId) -> bool:
    seen: Set[FunctionId] = set()
    current = start
    while True:
      if self.is_lease(current):
        return True
      if current in seen:
        return False
      seen.add(current)
      incoming = self.graph.incoming(current)
      if not incoming:
        return False
      current = incoming[0].caller
