"""
CLI Command Handlers Facade.

Re-exports handlers from `critsec.cli.handlers` so callers and test patches
have one stable import location.
"""

from critsec.cli.handlers.check import handle_check
from critsec.cli.handlers.graph import handle_graph

# Re-export dependent classes to satisfy test patches that target this module
from critsec.engine import CheckEngine

__all__ = ["CheckEngine", "handle_check", "handle_graph"]
