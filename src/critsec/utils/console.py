"""
Console and logging setup for the checker.

Findings are the checker's product and are printed to stdout by the CLI
handlers. Everything else (progress, summaries, fatal errors and the DEBUG
trace of the analysis passes) goes through the ``critsec`` logger, rendered
by a `rich` handler on stderr.

Modules import the module-level `console` once. `set_console` swaps the
destination behind it (tests pass a recording `Console`) and moves the log
handler along with it.
"""

import logging
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.theme import Theme

SUCCESS_LEVEL_NUM = 25
logging.addLevelName(SUCCESS_LEVEL_NUM, "SUCCESS")

LOGGER_NAME = "critsec"
logger = logging.getLogger(LOGGER_NAME)

_THEME = Theme(
  {
    "logging.level.success": "green",
    "violation": "bold red",
    "unit": "cyan",
    "dead": "red",
    "path": "bold blue",
  }
)


def _stderr_console() -> Console:
  return Console(theme=_THEME, stderr=True)


class _ConsoleProxy:
  """
  Stable handle on the active rich console.

  Attributes:
      _backend (Console): Where output currently goes.
      _handler (RichHandler): The handler attached to the ``critsec`` logger.
  """

  def __init__(self) -> None:
    self._backend: Console = _stderr_console()
    self._handler: Optional[RichHandler] = None
    self._attach_handler()

  @property
  def backend(self) -> Console:
    return self._backend

  def swap(self, backend: Console) -> None:
    """
    Redirects console output and checker logs to `backend`.

    Args:
        backend (Console): The console to write to from now on.
    """
    self._backend = backend
    self._attach_handler()

  def _attach_handler(self) -> None:
    # One handler, owned by the proxy, always bound to the current backend
    if self._handler is not None:
      logger.removeHandler(self._handler)
    self._handler = RichHandler(
      console=self._backend,
      show_time=False,
      show_path=False,
      markup=True,
      rich_tracebacks=True,
    )
    logger.addHandler(self._handler)
    logger.propagate = False
    if logger.level == logging.NOTSET:
      logger.setLevel(logging.INFO)

  def print(self, *args: Any, **kwargs: Any) -> None:
    self._backend.print(*args, **kwargs)

  def __getattr__(self, name: str) -> Any:
    return getattr(self._backend, name)


console = _ConsoleProxy()


def set_console(new_console: Console) -> None:
  """
  Sends console output and checker logs to `new_console`.

  Args:
      new_console (Console): A configured rich console, e.g. one created
          with ``record=True`` to capture a run.
  """
  console.swap(new_console)


def reset_console() -> None:
  """Restores a fresh stderr console and the default INFO level."""
  logger.setLevel(logging.INFO)
  console.swap(_stderr_console())


def set_verbosity(verbose: bool) -> None:
  """
  Toggles the DEBUG trace of the analysis passes.

  Args:
      verbose (bool): If True, every ``critsec.*`` logger emits DEBUG records.
  """
  logger.setLevel(logging.DEBUG if verbose else logging.INFO)


def log_info(msg: str) -> None:
  """Logs a progress or summary message. `msg` may contain rich markup."""
  logger.info(f"ℹ️  {msg}", extra={"markup": True})


def log_success(msg: str) -> None:
  """Logs at the SUCCESS level, used for a clean run."""
  logger.log(SUCCESS_LEVEL_NUM, f"✅ {msg}", extra={"markup": True})


def log_warning(msg: str) -> None:
  logger.warning(f"⚠️  {msg}", extra={"markup": True})


def log_error(msg: str) -> None:
  """
  Logs a tool-fatal error.

  Args:
      msg (str): Usually the text of a `CritsecError`. Square brackets in
          file paths are escaped so rich does not read them as markup.
  """
  logger.error(f"❌ {escape(msg)}", extra={"markup": True})
