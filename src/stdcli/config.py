"""Configuration management with XDG paths, atomic writes, and precedence resolution.

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.stdcli/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Global config** -- a single :class:`~stdcli.models.GlobalConfig` JSON
  file holding the settings directory name, telemetry credentials and
  output defaults.
* **Precedence resolution** -- :func:`resolve_config` layers environment
  variables over the global config file over built-in defaults.

Per-project settings (the active app and friends) are not configuration;
they live in :mod:`stdcli.settings`.

Config writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) so a crash never leaves a truncated file behind.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
import uuid
from pathlib import Path
from typing import Optional

from stdcli.exceptions import ConfigError
from stdcli.models import GlobalConfig

_APP_NAME = "stdcli"
_CONFIG_FILENAME = "config.json"

ENV_SETTINGS_DIR = "STDCLI_SETTINGS_DIR"
ENV_SEGMENT_WRITE_KEY = "STDCLI_SEGMENT_WRITE_KEY"
ENV_ROLLBAR_TOKEN = "STDCLI_ROLLBAR_TOKEN"
ENV_TELEMETRY = "STDCLI_TELEMETRY"

_FALSE_VALUES = ("0", "false", "no", "off")


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform uses XDG Base Directory paths (Linux/FreeBSD)."""
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

    On Linux/BSD: ``$XDG_CONFIG_HOME/stdcli/`` (default ``~/.config/stdcli/``).
    On macOS/Windows: ``~/.stdcli/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/stdcli/`` (default ``~/.local/share/stdcli/``).
    On macOS/Windows: ``~/.stdcli/logs/``.
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
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is cleaned up.
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
        fd = None  # prevent double-close below
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


# --- Global config ---


def global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration.

    Returns:
        The deserialised :class:`~stdcli.models.GlobalConfig`, or a default
        instance when the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            validation.
    """
    path = global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    _atomic_write(global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_config() -> GlobalConfig:
    """Resolve the effective configuration.

    Precedence (high to low):
        1. Environment variables (``STDCLI_SETTINGS_DIR``,
           ``STDCLI_SEGMENT_WRITE_KEY``, ``STDCLI_ROLLBAR_TOKEN``,
           ``STDCLI_TELEMETRY``)
        2. User config (``~/.config/stdcli/config.json``)
        3. Defaults
    """
    config = load_global_config()

    settings_dir = os.environ.get(ENV_SETTINGS_DIR)
    if settings_dir:
        config.settings_dir = settings_dir

    write_key = os.environ.get(ENV_SEGMENT_WRITE_KEY)
    if write_key:
        config.telemetry.segment_write_key = write_key

    token = os.environ.get(ENV_ROLLBAR_TOKEN)
    if token:
        config.telemetry.rollbar_token = token

    switch = os.environ.get(ENV_TELEMETRY)
    if switch is not None and switch.strip().lower() in _FALSE_VALUES:
        config.telemetry.enabled = False

    return config


def ensure_client_id(config: GlobalConfig) -> str:
    """Return the telemetry client id, generating and saving one if missing.

    The id is a random UUID with no relation to the user or machine; it only
    groups events from the same installation.
    """
    if not config.telemetry.client_id:
        config.telemetry.client_id = uuid.uuid4().hex
        stored = load_global_config()
        stored.telemetry.client_id = config.telemetry.client_id
        save_global_config(stored)
    return config.telemetry.client_id
