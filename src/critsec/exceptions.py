"""
Tool-fatal error types.

These exceptions signal infrastructure failures (the program could not be
loaded, or the call graph could not be built). They abort a run with no
partial report. Findings about the analysed program are never raised; they
are collected as `Violation` values instead.
"""

from pathlib import Path
from typing import Optional


class CritsecError(Exception):
  """Base class for all errors raised by the checker itself."""


class FrontendError(CritsecError):
  """
  Raised when source input cannot be loaded or parsed.

  Attributes:
      path (Optional[Path]): The offending file, if known.
  """

  def __init__(self, message: str, path: Optional[Path] = None):
    super().__init__(message)
    self.path = path


class CallGraphError(CritsecError):
  """Raised when the whole-program call graph cannot be constructed."""
