"""
Runtime Configuration Store.

Settings are read from the ``[tool.critsec]`` table of the nearest
``pyproject.toml`` and overridden by command-line arguments.

.. code-block:: toml

    [tool.critsec]
    entry_points = ["main", "run_server"]
    reachability = "full"
    liveness = "entry-reachable"
    context_lines = 2
    exclude = ["tests/*"]
"""

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from critsec.enums import LivenessMode, ReachabilityMode

if sys.version_info >= (3, 11):
  import tomllib
else:
  import tomli as tomllib

DEFAULT_MARKER_PATHS = ["critsec.Section", "critsec.crit.Section"]


class RuntimeConfig(BaseModel):
  """
  Global configuration container for the checker.
  """

  marker_paths: List[str] = Field(
    default_factory=lambda: list(DEFAULT_MARKER_PATHS),
    description="Fully qualified names that denote the guarded-section marker class.",
  )
  lease_method: str = Field("lease", description="Name of the marker's exclusive-access method.")
  entry_points: List[str] = Field(
    default_factory=lambda: ["main"],
    description="Function names treated as program entry points.",
  )
  module_entry: bool = Field(True, description="Treat each module's top-level body as an entry point.")
  reachability: ReachabilityMode = Field(ReachabilityMode.FULL, description="Caller-edge search strategy.")
  liveness: LivenessMode = Field(LivenessMode.ENTRY_REACHABLE, description="Dead-code filter strategy.")
  context_lines: int = Field(0, ge=0, description="Source lines printed around each diagnostic.")
  exclude: List[str] = Field(default_factory=list, description="Glob patterns of files to skip.")

  @field_validator("reachability", mode="before")
  @classmethod
  def normalize_reachability(cls, v: Any) -> Any:
    """
    Accepts mode names case-insensitively and with underscores.

    Args:
        v: Raw value from TOML or CLI.

    Returns:
        The normalised value for enum coercion.
    """
    if isinstance(v, str):
      return v.strip().lower().replace("_", "-")
    return v

  @field_validator("liveness", mode="before")
  @classmethod
  def normalize_liveness(cls, v: Any) -> Any:
    """Same normalisation as `normalize_reachability`."""
    if isinstance(v, str):
      return v.strip().lower().replace("_", "-")
    return v

  @field_validator("lease_method")
  @classmethod
  def validate_lease_method(cls, v: str) -> str:
    """
    Ensures the lease method is a plain identifier.

    Raises:
        ValueError: If the name is not a valid Python identifier.
    """
    v_clean = v.strip()
    if not v_clean.isidentifier():
      raise ValueError(f"Lease method must be an identifier, got '{v}'")
    return v_clean

  @classmethod
  def load(
    cls,
    entry_points: Optional[List[str]] = None,
    reachability: Optional[str] = None,
    liveness: Optional[str] = None,
    context_lines: Optional[int] = None,
    module_entry: Optional[bool] = None,
    search_path: Optional[Path] = None,
  ) -> "RuntimeConfig":
    """
    Loads configuration from pyproject.toml and overrides with CLI arguments.

    Args:
        entry_points: Override for entry point names.
        reachability: Override for the reachability mode.
        liveness: Override for the liveness mode.
        context_lines: Override for the number of context lines.
        module_entry: Override for treating module bodies as entry points.
        search_path: Directory to start searching for TOML config.

    Returns:
        RuntimeConfig: The fully resolved configuration object.
    """
    start_dir = search_path or Path.cwd()
    toml_config, _ = _load_toml_settings(start_dir)

    overrides: Dict[str, Any] = {
      "entry_points": entry_points,
      "reachability": reachability,
      "liveness": liveness,
      "context_lines": context_lines,
      "module_entry": module_entry,
    }
    merged = dict(toml_config)
    merged.update({k: v for k, v in overrides.items() if v is not None})
    return cls.model_validate(merged)


def _load_toml_settings(start_path: Path) -> Tuple[Dict[str, Any], Optional[Path]]:
  """
  Searches the start directory and its parents for 'pyproject.toml'.

  Args:
      start_path (Path): Directory to start search from.

  Returns:
      Tuple[Dict, Optional[Path]]: The ``[tool.critsec]`` table and the directory it was found in.
  """
  current = start_path.resolve()
  if current.is_file():
    current = current.parent

  for parent in [current, *current.parents]:
    toml_path = parent / "pyproject.toml"
    if toml_path.is_file():
      try:
        with open(toml_path, "rb") as f:
          data = tomllib.load(f)
      except (OSError, tomllib.TOMLDecodeError):
        return {}, None

      return data.get("tool", {}).get("critsec", {}), parent

  return {}, None
