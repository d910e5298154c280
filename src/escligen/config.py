"""Configuration resolution and XDG-aware directories.

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.escligen/`` on macOS and Windows. The cache directory holds schema
  downloads (see :mod:`escligen.cache`); the data directory holds crash logs.
* **Project config** -- an optional ``./escligen.json`` pinning the branch,
  output directory or exclusion patterns for a repository.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, project config and defaults into one
  :class:`~escligen.models.GeneratorConfig`.
"""

from __future__ import annotations

import json
import os
import platform
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from escligen.exceptions import ConfigError
from escligen.models import GeneratorConfig

_APP_NAME = "escligen"
_PROJECT_CONFIG_FILENAME = "escligen.json"

_ENV_VARS: dict[str, str] = {
    "spec": "ESCLIGEN_SPEC",
    "branch": "ESCLIGEN_BRANCH",
    "output": "ESCLIGEN_OUTPUT",
    "package": "ESCLIGEN_PACKAGE",
    "cli_name": "ESCLIGEN_CLI_NAME",
}
"""Scalar settings that can be supplied through the environment."""

_ENV_EXCLUDE = "ESCLIGEN_EXCLUDE"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform follows the XDG Base Directory spec (Linux/BSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from *env_var*, falling back under ``$HOME``."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    Holds downloaded ``schema.json`` snapshots. Safe to delete at any time.

    On Linux/BSD: ``$XDG_CACHE_HOME/escligen/`` (default ``~/.cache/escligen/``).
    On macOS/Windows: ``~/.escligen/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/escligen/`` (default ``~/.local/share/escligen/``).
    On macOS/Windows: ``~/.escligen/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``./escligen.json``.

    Returns:
        The parsed JSON object, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


# --- Precedence resolution ---


def resolve_config(**cli_values: Any) -> GeneratorConfig:
    """Resolve the effective generator configuration.

    Precedence (high to low):
        1. CLI flags (keyword arguments; ``None`` means "not given")
        2. Environment variables (``ESCLIGEN_SPEC``, ``ESCLIGEN_BRANCH``,
           ``ESCLIGEN_OUTPUT``, ``ESCLIGEN_PACKAGE``, ``ESCLIGEN_CLI_NAME``,
           and ``ESCLIGEN_EXCLUDE`` as a comma-separated list)
        3. Project config (``./escligen.json``)
        4. Defaults declared on :class:`~escligen.models.GeneratorConfig`

    Raises:
        ConfigError: If the merged values fail validation (unknown keys in
            the project file, wrong types).
    """
    values: dict[str, Any] = {}

    # 3. Project-local config
    project = load_project_config()
    if project is not None:
        values.update(project)

    # 2. Environment variables
    for field, var in _ENV_VARS.items():
        env_value = os.environ.get(var)
        if env_value:
            values[field] = env_value
    env_exclude = os.environ.get(_ENV_EXCLUDE)
    if env_exclude:
        values["exclude"] = [p.strip() for p in env_exclude.split(",") if p.strip()]

    # 1. CLI flags
    for field, value in cli_values.items():
        if value is not None:
            values[field] = value

    try:
        return GeneratorConfig.model_validate(values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
