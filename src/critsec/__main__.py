"""
Entry point for module execution (``python -m critsec``).

This module delegates execution to the CLI handler in ``critsec.cli.__main__``.
"""

import sys
from critsec.cli.__main__ import main

if __name__ == "__main__":
  sys.exit(main())
