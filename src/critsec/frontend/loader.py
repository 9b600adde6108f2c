"""
Source Loading.

Discovers Python files, derives their dotted module names and parses them with
LibCST. Each file is wrapped in a `MetadataWrapper` once, so every later pass
walks the same node objects and shares one position map.

Any failure here is tool-fatal and raised as `FrontendError`.
"""

import fnmatch
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

import libcst as cst
from libcst.metadata import CodeRange, MetadataWrapper, PositionProvider

from critsec.exceptions import FrontendError
from critsec.frontend.identity import SourcePosition

logger = logging.getLogger(__name__)


@dataclass
class SourceFile:
  """
  One parsed module of the analysed program.
  """

  path: Path
  module_name: str
  source: str
  wrapper: MetadataWrapper
  _positions: Mapping[cst.CSTNode, CodeRange] = field(repr=False)

  @property
  def module(self) -> cst.Module:
    """The tree the position map belongs to. Always visit this one."""
    return self.wrapper.module

  @property
  def display_name(self) -> str:
    """Path string used in diagnostics."""
    return str(self.path)

  @property
  def lines(self) -> List[str]:
    """Source split into lines, without line terminators."""
    return self.source.splitlines()

  def position(self, node: cst.CSTNode) -> SourcePosition:
    """
    Returns the 1-based start position of a node of this file's tree.

    Args:
        node: A node reachable from `self.module`.

    Returns:
        SourcePosition: File, line and column of the node's first character.
    """
    code_range = self._positions[node]
    return SourcePosition(self.display_name, code_range.start.line, code_range.start.column + 1)


@dataclass
class Program:
  """
  The set of files analysed together, in scan order.
  """

  files: List[SourceFile] = field(default_factory=list)

  @property
  def modules(self) -> Dict[str, SourceFile]:
    """Mapping of dotted module name to file."""
    return {f.module_name: f for f in self.files}

  def get(self, module_name: str) -> Optional[SourceFile]:
    """Looks up an analysed module by dotted name."""
    return self.modules.get(module_name)


def module_name_for(path: Path) -> str:
  """
  Derives the dotted module name of a file by walking up through packages.

  A directory counts as a package when it contains ``__init__.py``.

  Args:
      path: Path to a ``.py`` file.

  Returns:
      str: e.g. 'pkg.sub.mod' for 'pkg/sub/mod.py', 'pkg.sub' for its ``__init__.py``.
  """
  path = path.resolve()
  parts = [] if path.stem == "__init__" else [path.stem]
  parent = path.parent
  while (parent / "__init__.py").exists():
    parts.insert(0, parent.name)
    if parent.parent == parent:
      break
    parent = parent.parent
  return ".".join(parts) or path.parent.name


def discover_files(paths: Iterable[Path], exclude: Optional[List[str]] = None) -> List[Path]:
  """
  Expands input paths into a deterministic list of Python files.

  Args:
      paths: Files or directories given by the user.
      exclude: Glob patterns matched against each file's path.

  Returns:
      List[Path]: Files in input order, directory contents sorted.

  Raises:
      FrontendError: If an input path does not exist.
  """
  patterns = exclude or []
  found: List[Path] = []
  seen = set()

  for p in paths:
    if not p.exists():
      raise FrontendError(f"Path not found: {p}", path=p)
    candidates = [p] if p.is_file() else sorted(p.rglob("*.py"))
    for c in candidates:
      if any(fnmatch.fnmatch(c.as_posix(), pat) for pat in patterns):
        logger.debug("Excluded %s", c)
        continue
      key = c.resolve()
      if key in seen:
        continue
      seen.add(key)
      found.append(c)

  return found


def parse_source(source: str, path: Path, module_name: Optional[str] = None) -> SourceFile:
  """
  Parses one module and resolves its position metadata.

  Args:
      source: Python source text.
      path: Path reported in diagnostics.
      module_name: Dotted name; derived from `path` when omitted.

  Returns:
      SourceFile: The parsed unit.

  Raises:
      FrontendError: On syntax errors.
  """
  try:
    tree = cst.parse_module(source)
  except cst.ParserSyntaxError as e:
    raise FrontendError(f"Failed to parse {path}: {e}", path=path) from e

  wrapper = MetadataWrapper(tree)
  positions = wrapper.resolve(PositionProvider)
  name = module_name if module_name is not None else module_name_for(path)
  return SourceFile(path=path, module_name=name, source=source, wrapper=wrapper, _positions=positions)


def load_program(paths: Iterable[Path], exclude: Optional[List[str]] = None) -> Program:
  """
  Loads and parses every input file.

  Args:
      paths: Files or directories to analyse.
      exclude: Glob patterns of files to skip.

  Returns:
      Program: All parsed files in scan order.

  Raises:
      FrontendError: If a path is missing, unreadable, or fails to parse.
  """
  program = Program()
  for f in discover_files(paths, exclude):
    try:
      code = f.read_text("utf-8")
    except (OSError, UnicodeDecodeError) as e:
      raise FrontendError(f"Failed to read {f}: {e}", path=f) from e
    program.files.append(parse_source(code, f))
    logger.debug("Loaded %s as module '%s'", f, program.files[-1].module_name)

  return program
