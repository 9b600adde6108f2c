from .check import handle_check
from .graph import handle_graph

__all__ = ["handle_check", "handle_graph"]
