"""
Whole-Program Call Graph.

Nodes are `FunctionId`s of callable units (module bodies, ``def``s, lambdas)
plus external callees such as the lease primitive. Edges are statically
resolvable calls:

- Direct calls to functions and lambdas bound to names.
- Constructor calls, as an edge to the class's ``__init__``.
- Method calls on receivers of resolved type (including ``self``).
- Callable arguments: ``run(cb)`` adds ``run -> cb`` when ``run`` is resolved,
  and ``caller -> cb`` when the callee is external (``Thread(target=cb)``).
- Lease calls: ``g.lease(cb)`` on a guarded instance adds ``caller -> LEASE``
  and ``LEASE -> cb``, where LEASE is the single node of the marker's method.

The graph is built once and is read-only afterwards.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set

import libcst as cst

from critsec.exceptions import CallGraphError
from critsec.frontend.identity import FunctionId, external_function
from critsec.frontend.loader import Program
from critsec.frontend.symbols import ClassType, FunctionType, InstanceType, ModuleType, ScopedVisitor, SymbolTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallEdge:
  """
  A directed call from `caller` to `callee`.
  """

  caller: FunctionId
  callee: FunctionId


class CallGraph:
  """
  Directed graph of callable units with insertion-ordered adjacency.

  The order in which incoming edges are recorded is the source order of the
  call sites, which the single-predecessor reachability mode relies on.
  """

  def __init__(self) -> None:
    self._nodes: Dict[FunctionId, None] = {}
    self._edges: Dict[CallEdge, None] = {}
    self._incoming: Dict[FunctionId, List[CallEdge]] = {}
    self._outgoing: Dict[FunctionId, List[CallEdge]] = {}

  def add_node(self, fid: FunctionId) -> None:
    if fid not in self._nodes:
      self._nodes[fid] = None
      self._incoming[fid] = []
      self._outgoing[fid] = []

  def add_edge(self, caller: FunctionId, callee: FunctionId) -> CallEdge:
    """
    Adds an edge, ignoring duplicates.

    Args:
        caller: The calling unit.
        callee: The called unit.

    Returns:
        CallEdge: The (possibly pre-existing) edge.
    """
    edge = CallEdge(caller, callee)
    if edge in self._edges:
      return edge
    self.add_node(caller)
    self.add_node(callee)
    self._edges[edge] = None
    self._outgoing[caller].append(edge)
    self._incoming[callee].append(edge)
    return edge

  @property
  def nodes(self) -> List[FunctionId]:
    return list(self._nodes)

  @property
  def edges(self) -> List[CallEdge]:
    return list(self._edges)

  def __contains__(self, fid: object) -> bool:
    return fid in self._nodes

  def incoming(self, fid: FunctionId) -> List[CallEdge]:
    """Edges whose callee is `fid`, in recording order."""
    return self._incoming.get(fid, [])

  def outgoing(self, fid: FunctionId) -> List[CallEdge]:
    """Edges whose caller is `fid`, in recording order."""
    return self._outgoing.get(fid, [])

  def has_incoming(self, fid: FunctionId) -> bool:
    return bool(self._incoming.get(fid))

  def callers_of(self, fid: FunctionId) -> List[FunctionId]:
    return [e.caller for e in self.incoming(fid)]

  def callees_of(self, fid: FunctionId) -> List[FunctionId]:
    return [e.callee for e in self.outgoing(fid)]

  def to_dict(self) -> Dict[str, List]:
    """Serializable summary used by ``critsec graph --json``."""
    return {
      "nodes": [str(n) for n in self._nodes],
      "edges": [{"caller": str(e.caller), "callee": str(e.callee)} for e in self._edges],
    }


class CallGraphBuilder(ScopedVisitor):
  """
  Records the call edges of one file into a shared `CallGraph`.
  """

  def __init__(self, table: SymbolTable, graph: CallGraph, lease_targets: Set[str]):
    """
    Args:
        table: Program symbol table.
        graph: Graph receiving the edges.
        lease_targets: Fully qualified names of the lease method
            (e.g. 'critsec.Section.lease').
    """
    super().__init__(table)
    self.graph = graph
    self.lease_targets = lease_targets

  def visit_Call(self, node: cst.Call) -> Optional[bool]:
    caller = self.enclosing_unit()
    callee = self._resolve_callee(node)
    if callee is not None:
      self.graph.add_edge(caller, callee)

    for arg in node.args:
      target = self._callable_target(arg.value)
      if target is None:
        continue
      self.graph.add_edge(callee if callee is not None else caller, target)
    return True

  def visit_Attribute(self, node: cst.Attribute) -> Optional[bool]:
    # Reading or assigning a property runs its accessors
    receiver = self.table.type_of(node.value, self.scope)
    if isinstance(receiver, InstanceType):
      for accessor in self.table.property_accessors(receiver.ref, node.attr.value):
        self.graph.add_edge(self.enclosing_unit(), accessor)
    return True

  def _resolve_callee(self, node: cst.Call) -> Optional[FunctionId]:
    func_type = self.table.type_of(node.func, self.scope)

    if isinstance(func_type, FunctionType):
      return func_type.target

    if isinstance(func_type, ClassType):
      init = self.table.member_type(func_type.ref, "__init__", instance=False)
      return init.target if isinstance(init, FunctionType) else None

    if isinstance(func_type, ModuleType) and func_type.path in self.lease_targets:
      # e.g. Section.lease(g, cb)
      return external_function(func_type.path)

    if func_type is None and isinstance(node.func, cst.Attribute):
      receiver = self.table.type_of(node.func.value, self.scope)
      if isinstance(receiver, InstanceType):
        attr = node.func.attr.value
        for base_path in self.table.external_bases(receiver.ref):
          fqn = f"{base_path}.{attr}"
          if fqn in self.lease_targets:
            return external_function(fqn)
    return None

  def _callable_target(self, expr: cst.BaseExpression) -> Optional[FunctionId]:
    arg_type = self.table.type_of(expr, self.scope)
    if isinstance(arg_type, FunctionType):
      return arg_type.target
    return None


def build_call_graph(program: Program, table: SymbolTable, lease_targets: Iterable[str]) -> CallGraph:
  """
  Builds the call graph of the whole program.

  Every callable unit of the symbol table becomes a node, even without edges.

  Args:
      program: The loaded program.
      table: Its symbol table.
      lease_targets: Fully qualified names of the lease method.

  Returns:
      CallGraph: The immutable-by-convention graph.

  Raises:
      CallGraphError: If construction fails.
  """
  graph = CallGraph()
  targets = set(lease_targets)
  for fid in table.function_ids:
    graph.add_node(fid)

  for source in program.files:
    try:
      source.module.visit(CallGraphBuilder(table, graph, targets))
    except (LookupError, RecursionError) as e:
      raise CallGraphError(f"Call graph construction failed in {source.display_name}: {e}") from e

  logger.debug("Call graph: %d nodes, %d edges", len(graph.nodes), len(graph.edges))
  return graph
