"""
Enumerations for critsec.

This module defines the violation categories reported by the checker and the
policy switches that select between analysis strategies.
"""

from enum import Enum


class ViolationKind(str, Enum):
  """
  Category of a reported finding.
  """

  ARG_PASS = "arg-pass"
  UNGUARDED_READ = "unguarded-read"
  UNGUARDED_WRITE = "unguarded-write"
  MULTIPLE_INSTANCE = "multiple-instance"


class AccessKind(str, Enum):
  """
  Direction of an attribute access on a guarded instance.
  """

  READ = "read"
  WRITE = "write"


class ReachabilityMode(str, Enum):
  """
  Strategy used to search caller edges for the lease invocation.
  """

  FULL = "full"  # every incoming edge, memoised
  SINGLE_PREDECESSOR = "single-predecessor"  # first incoming edge only


class LivenessMode(str, Enum):
  """
  Strategy used to decide whether a callable unit can execute.
  """

  ENTRY_REACHABLE = "entry-reachable"  # forward reachability from entry points
  HAS_CALLER = "has-caller"  # entry point, or any incoming edge
