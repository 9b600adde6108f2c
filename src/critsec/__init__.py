"""
critsec Package.

A guarded-section type is a class derived from `critsec.Section`. Its
attributes may only be read or written inside a callback passed to the
instance's `lease` method, which holds the section's lock. This package ships
the marker class and a static checker enforcing that rule over a whole program.

Usage
-----

Marking a type
^^^^^^^^^^^^^^

.. code-block:: python

    from critsec import Section

    class Stats(Section):
      def __init__(self):
        super().__init__()
        self.hits = 0

    stats = Stats()
    stats.lease(lambda: setattr(stats, "hits", stats.hits + 1))

Checking code
^^^^^^^^^^^^^

.. code-block:: python

    import critsec

    for line in critsec.check(open("app.py").read(), path="app.py"):
        print(line)
"""

from typing import List, Optional

from critsec.config import RuntimeConfig
from critsec.crit import Section
from critsec.engine import AnalysisResult, CheckEngine

__version__ = "0.1.0"


def check(code: str, path: str = "<string>", config: Optional[RuntimeConfig] = None) -> List[str]:
  """
  Checks a string of Python code as a single-module program.

  A convenience wrapper around `CheckEngine.run_source`. For files and
  directories, use the ``critsec check`` command or `CheckEngine.run`.

  Args:
      code (str): The source code to check.
      path (str): Name used in diagnostics.
      config (RuntimeConfig, optional): Settings; defaults when omitted.

  Returns:
      List[str]: Formatted diagnostics in stable order.
  """
  engine = CheckEngine(config)
  return engine.run_source(code, path=path).lines()


__all__ = ["AnalysisResult", "CheckEngine", "RuntimeConfig", "Section", "__version__", "check"]
