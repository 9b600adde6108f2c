"""
Pytest Configuration and Fixtures.

Includes:
- Syspath patching for local imports.
- Helpers that run the checker over inline source snippets.
"""

import sys
import textwrap
from pathlib import Path
from typing import Callable, List

import pytest

# Add src to path so we can import 'critsec' without installing it
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from critsec.config import RuntimeConfig
from critsec.engine import AnalysisResult, CheckEngine
from critsec.utils.console import reset_console


@pytest.fixture(autouse=True)
def clean_console():
  """Restores the default console after tests that redirect output."""
  yield
  reset_console()


@pytest.fixture
def check_code() -> Callable[..., AnalysisResult]:
  """
  Returns a runner that checks one inline module named 'app.py'.

  Keyword arguments are passed to `RuntimeConfig`.
  """

  def _run(code: str, **settings) -> AnalysisResult:
    engine = CheckEngine(RuntimeConfig(**settings))
    return engine.run_source(textwrap.dedent(code), path="app.py")

  return _run


@pytest.fixture
def check_lines(check_code) -> Callable[..., List[str]]:
  """Same as `check_code`, returning the formatted diagnostic lines."""

  def _run(code: str, **settings) -> List[str]:
    return check_code(code, **settings).lines()

  return _run
