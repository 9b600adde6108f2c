"""
Guarded-Section Marker.

Derive a class from `Section` (as its first base) to declare that its
attributes may only be touched inside a callback passed to `Section.lease`.
The checker in `critsec.analysis` enforces this statically; this module only
provides the runtime lock backing the lease.

.. code-block:: python

    from critsec import Section

    class Counter(Section):
      def __init__(self):
        super().__init__()
        self.value = 0

    counter = Counter()

    def bump():
      counter.value += 1

    counter.lease(bump)
"""

import threading
from typing import Callable, TypeVar

T = TypeVar("T")


class Section:
  """
  Marker base class for guarded-section types.

  Each instance owns one non-reentrant lock. A nested `lease` on the same
  instance from inside its own callback deadlocks.
  """

  def __init__(self) -> None:
    """Creates the lock guarding this section."""
    self._lock = threading.Lock()

  def lease(self, callback: Callable[[], T]) -> T:
    """
    Runs `callback` while holding the section's lock.

    The lock is released on every exit path, including when the callback
    raises. The callback's result is returned and its exceptions propagate.

    Args:
        callback: Zero-argument callable touching the guarded attributes.

    Returns:
        Whatever the callback returns.
    """
    with self._lock:
      return callback()
