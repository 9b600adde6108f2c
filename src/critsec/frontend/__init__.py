"""
Front end: source loading, declaration identities, type resolution and the
whole-program call graph.
"""

from critsec.frontend.callgraph import CallEdge, CallGraph, build_call_graph
from critsec.frontend.identity import FunctionId, SourcePosition, external_function
from critsec.frontend.loader import Program, SourceFile, load_program, parse_source
from critsec.frontend.symbols import ClassRef, SymbolTable

__all__ = [
  "CallEdge",
  "CallGraph",
  "ClassRef",
  "FunctionId",
  "Program",
  "SourceFile",
  "SourcePosition",
  "SymbolTable",
  "build_call_graph",
  "external_function",
  "load_program",
  "parse_source",
]
