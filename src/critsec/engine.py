"""
Orchestration Engine for the Lease Checker.

This module provides the `CheckEngine`, the primary driver of an analysis run.

The pipeline consists of:

1.  **Loading**: discover and parse every input file (`critsec.frontend.loader`).
2.  **Declarations**: build the program symbol table, assigning every callable
    unit its stable `FunctionId`.
3.  **Call Graph**: built once for the whole program and read-only afterwards.
4.  **Per-file Analysis**: in scan order, each file is cataloged and then
    scanned in one walk. Accesses go through the Liveness Filter and the
    Lease-Reachability Checker; instantiations go through the Uniqueness Checker.
5.  **Reporting**: violations are merged in stable order into an
    `AnalysisResult`.

Loading and call-graph failures raise (`FrontendError`, `CallGraphError`).
Findings never abort the run.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from critsec.analysis.catalog import CatalogBuilder, GuardedTypeCatalog
from critsec.analysis.diagnostics import Report, Violation
from critsec.analysis.liveness import LivenessFilter, find_entry_points
from critsec.analysis.reachability import LeaseReachabilityChecker
from critsec.analysis.scanner import AccessSiteScanner, FileAnalysisState
from critsec.analysis.uniqueness import UniquenessChecker
from critsec.config import RuntimeConfig
from critsec.frontend.callgraph import CallGraph, build_call_graph
from critsec.frontend.identity import FunctionId
from critsec.frontend.loader import Program, load_program, parse_source
from critsec.frontend.symbols import SymbolTable
from critsec.utils.console import log_info


class AnalysisResult(BaseModel):
  """
  Outcome of one analysis run.
  """

  model_config = ConfigDict(arbitrary_types_allowed=True)

  files: List[str] = Field(default_factory=list, description="Analysed files in scan order.")
  violations: List[Violation] = Field(default_factory=list, description="Findings in stable order.")

  @property
  def has_violations(self) -> bool:
    return len(self.violations) > 0

  @property
  def exit_code(self) -> int:
    """1 when at least one violation was found, else 0."""
    return 1 if self.has_violations else 0

  def lines(self) -> List[str]:
    return [v.format() for v in self.violations]


@dataclass
class ProgramModel:
  """
  Whole-program facts shared by every per-file analysis.
  """

  program: Program
  table: SymbolTable
  graph: CallGraph
  entry_points: List[FunctionId]
  liveness: LivenessFilter
  lease_targets: List[str]


class CheckEngine:
  """
  Runs the checker over a program.
  """

  def __init__(self, config: Optional[RuntimeConfig] = None):
    """
    Args:
        config: Settings; defaults are used when omitted.
    """
    self.config = config or RuntimeConfig()

  @property
  def lease_targets(self) -> List[str]:
    return [f"{path}.{self.config.lease_method}" for path in self.config.marker_paths]

  def run(self, paths: Iterable[Path]) -> AnalysisResult:
    """
    Loads and analyses files or directories.

    Args:
        paths: Inputs to analyse.

    Returns:
        AnalysisResult: Ordered findings.

    Raises:
        FrontendError: If loading fails.
        CallGraphError: If the call graph cannot be built.
    """
    program = load_program(paths, exclude=self.config.exclude)
    return self.analyze(program)

  def run_source(self, code: str, path: str = "<string>", module_name: str = "__main__") -> AnalysisResult:
    """
    Analyses a single in-memory module.

    Args:
        code: Python source text.
        path: Name reported in diagnostics.
        module_name: Dotted name of the module.

    Returns:
        AnalysisResult: Ordered findings.
    """
    source = parse_source(code, Path(path), module_name=module_name)
    return self.analyze(Program(files=[source]))

  def prepare(self, program: Program) -> ProgramModel:
    """
    Builds the whole-program model: symbols, call graph and liveness.

    Args:
        program: The loaded program.

    Returns:
        ProgramModel: Shared facts for the per-file pipeline.
    """
    table = SymbolTable.build(program)
    targets = self.lease_targets
    graph = build_call_graph(program, table, targets)
    entries = find_entry_points(graph, self.config.entry_points, self.config.module_entry)
    liveness = LivenessFilter(graph, entries, self.config.liveness)
    return ProgramModel(program, table, graph, entries, liveness, targets)

  def analyze(self, program: Program) -> AnalysisResult:
    """
    Runs the per-file pipeline over a loaded program.

    Args:
        program: The loaded program.

    Returns:
        AnalysisResult: Ordered findings.
    """
    model = self.prepare(program)
    reachability = LeaseReachabilityChecker(model.graph, model.liveness, model.lease_targets, self.config.reachability)
    uniqueness = UniquenessChecker(model.liveness)

    builder = CatalogBuilder(model.table, self.config.marker_paths)
    catalogs = [builder.build(source) for source in program.files]
    catalog = GuardedTypeCatalog.merge(catalogs)

    report = Report()
    for source in program.files:
      report.open_file(source.display_name)
      state = FileAnalysisState(source=source, catalog=catalog)
      scanner = AccessSiteScanner(
        model.table,
        state,
        model.liveness,
        reachability,
        uniqueness,
        lease_method=self.config.lease_method,
      )
      source.module.visit(scanner)
      report.extend(state.violations)

    log_info(f"Checked {len(program.files)} file(s), {len(catalog)} guarded type(s), {len(report)} finding(s)")
    return AnalysisResult(files=[s.display_name for s in program.files], violations=report.ordered())
