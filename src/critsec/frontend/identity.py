"""
Stable identities shared by the syntax tree and the call graph.

Every callable unit (a module body, a ``def``/``async def``, or a ``lambda``)
receives one `FunctionId` during the declaration pass in
`critsec.frontend.symbols`. The call graph is keyed by the same objects, so no
position matching is needed to relate the two representations.
"""

from dataclasses import dataclass

MODULE_QUALNAME = "<module>"
LAMBDA_NAME = "<lambda>"
EXTERNAL_FILE = "<external>"


@dataclass(frozen=True, order=True)
class SourcePosition:
  """
  A point in a source file. Line and column are both 1-based.
  """

  file: str
  line: int
  column: int

  def __str__(self) -> str:
    return f"{self.file}:{self.line}:{self.column}"


@dataclass(frozen=True, order=True)
class FunctionId:
  """
  Identity of a callable unit.

  The declaration column is part of the key, so two lambdas on one line are
  still distinct units.
  """

  file: str
  module: str
  qualname: str
  line: int = 0
  column: int = 0

  @property
  def name(self) -> str:
    """The unqualified name (e.g. 'run' for 'Worker.run')."""
    return self.qualname.rsplit(".", 1)[-1]

  @property
  def fqn(self) -> str:
    """Dotted name including the module, as used for marker matching."""
    return f"{self.module}.{self.qualname}" if self.module else self.qualname

  @property
  def is_module(self) -> bool:
    """True for the synthetic unit representing a module's top-level body."""
    return self.qualname == MODULE_QUALNAME

  @property
  def is_external(self) -> bool:
    """True for callees that live outside the analysed program."""
    return self.file == EXTERNAL_FILE

  def __str__(self) -> str:
    if self.is_external:
      return self.qualname
    return f"{self.fqn} ({self.file}:{self.line}:{self.column})"


def external_function(dotted_path: str) -> FunctionId:
  """
  Builds the identity of a callee defined outside the analysed sources.

  Args:
      dotted_path: Fully qualified name, e.g. 'critsec.Section.lease'.

  Returns:
      FunctionId: A positionless identity in the external pseudo-file.
  """
  return FunctionId(file=EXTERNAL_FILE, module="", qualname=dotted_path)
