"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for templex:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.templex/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Global config** -- a single :class:`~templex.models.GlobalConfig`
  JSON file storing defaults (feature separator, output encoding, default
  features file, action allow/deny lists).
* **Feature files** -- JSON files holding the feature and plugin tables
  (:class:`~templex.models.FeatureSet`), read by :func:`load_feature_set`.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, project-local config, and global config into the
  final effective configuration.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from templex.exceptions import ConfigError
from templex.models import FeatureSet, GlobalConfig

_APP_NAME = "templex"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "templex.json"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/templex/`` (default ``~/.config/templex/``).
    On macOS/Windows: ``~/.templex/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/templex/`` (default ``~/.local/share/templex/``).
    On macOS/Windows: ``~/.templex/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    On success the temp file is renamed over *path*; on any failure the temp
    file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close in finally
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


def _read_json(path: Path, what: str) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Cannot read {what} at {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid {what} at {path}: {exc}") from exc


# --- Global config ---


def _global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~templex.models.GlobalConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    data = _read_json(path, "global config")
    try:
        return GlobalConfig.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    _atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Feature files ---


def load_feature_set(path: str | Path) -> FeatureSet:
    """Load the feature and plugin tables from a JSON file.

    Expected shape::

        {
          "features": {"dita.xsl.strings": ["strings.xml"]},
          "plugins": {
            "org.example.pdf": {
              "id": "org.example.pdf",
              "dir": "/opt/plugins/org.example.pdf",
              "features": {"dita.conductor.target": ["build_pdf.xml"]}
            }
          }
        }

    Raises:
        ConfigError: If the file is missing, is not valid JSON, or does not
            match :class:`~templex.models.FeatureSet`.
    """
    path = Path(path).expanduser()
    if not path.is_file():
        raise ConfigError(f"Features file not found: {path}")
    data = _read_json(path, "features file")
    try:
        return FeatureSet.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid features file at {path}: {exc}") from exc


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``./templex.json``.

    Project-local config sits between global config and environment
    variables in the precedence chain. Keys mirror
    :class:`~templex.models.GlobalConfig`.

    Returns:
        The parsed JSON as a dict, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    data = _read_json(path, "project config")
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


# --- Precedence resolution ---


def resolve_config(
    cli_features: Optional[str] = None,
    cli_separator: Optional[str] = None,
) -> tuple[GlobalConfig, FeatureSet]:
    """Resolve config with full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_features``, ``cli_separator``)
        2. Environment variables (``TEMPLEX_FEATURES``, ``TEMPLEX_SEPARATOR``)
        3. Project config (``./templex.json``)
        4. User config (``~/.config/templex/config.json``)
        5. Defaults

    Returns:
        A tuple of ``(effective_config, feature_set)``. The feature set is
        empty when no features file is configured anywhere.
    """
    # 5 + 4
    global_cfg = load_global_config()

    # 3
    project = load_project_config()
    if project is not None:
        try:
            global_cfg = GlobalConfig.model_validate(
                {**global_cfg.model_dump(), **project}
            )
        except ValueError as exc:
            raise ConfigError(f"Invalid project config: {exc}") from exc

    # 2
    env_features = os.environ.get("TEMPLEX_FEATURES")
    if env_features:
        global_cfg.features_file = env_features
    env_separator = os.environ.get("TEMPLEX_SEPARATOR")
    if env_separator:
        global_cfg.separator = env_separator

    # 1
    if cli_features is not None:
        global_cfg.features_file = cli_features
    if cli_separator is not None:
        if not cli_separator:
            raise ConfigError("Feature separator must not be empty")
        global_cfg.separator = cli_separator

    feature_set = FeatureSet()
    if global_cfg.features_file:
        feature_set = load_feature_set(global_cfg.features_file)

    return global_cfg, feature_set
