"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for etagcache:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.etagcache/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`.
* **Global config** -- A single :class:`~etagcache.models.GlobalConfig`
  JSON file storing the cache namespace, default TTL and policy, HTTP
  request settings, and output preferences.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, and the global config into the effective cache
  root.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from etagcache.exceptions import ConfigError
from etagcache.models import GlobalConfig

_APP_NAME = "etagcache"
_CONFIG_FILENAME = "config.json"

ENV_CACHE_DIR = "ETAGCACHE_CACHE_DIR"
ENV_NAMESPACE = "ETAGCACHE_NAMESPACE"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform follows the XDG Base Directory layout (Linux/FreeBSD)."""
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

    On Linux/BSD: ``$XDG_CONFIG_HOME/etagcache/`` (default ``~/.config/etagcache/``).
    On macOS/Windows: ``~/.etagcache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache base directory, creating it if necessary.

    Cache namespaces live in subdirectories of this directory. Cached data
    can be safely deleted at any time.

    On Linux/BSD: ``$XDG_CACHE_HOME/etagcache/`` (default ``~/.cache/etagcache/``).
    On macOS/Windows: ``~/.etagcache/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/etagcache/`` (default ``~/.local/share/etagcache/``).
    On macOS/Windows: ``~/.etagcache/logs/``.
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
    On any failure the temp file is cleaned up.
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
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Global config ---


def _global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the config directory.

    Returns:
        The deserialised :class:`~etagcache.models.GlobalConfig`, or a
        default instance when the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    _atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_config(
    cli_cache_dir: Optional[str] = None,
    cli_namespace: Optional[str] = None,
) -> tuple[GlobalConfig, Path]:
    """Resolve the effective configuration and cache root.

    Precedence (high to low):
        1. CLI flags (``cli_cache_dir``, ``cli_namespace``)
        2. Environment variables (``ETAGCACHE_CACHE_DIR``, ``ETAGCACHE_NAMESPACE``)
        3. User config (``~/.config/etagcache/config.json``)
        4. Defaults (XDG cache dir, namespace ``default``)

    The returned config has ``cache.directory`` and ``cache.namespace``
    updated to the resolved values.

    Returns:
        A tuple of ``(global_config, cache_root)``.

    Raises:
        ConfigError: If the resolved namespace is not a plain directory name.
    """
    global_cfg = load_global_config()

    directory = global_cfg.cache.directory
    env_dir = os.environ.get(ENV_CACHE_DIR)
    if env_dir:
        directory = env_dir
    if cli_cache_dir is not None:
        directory = cli_cache_dir

    namespace = global_cfg.cache.namespace
    env_namespace = os.environ.get(ENV_NAMESPACE)
    if env_namespace:
        namespace = env_namespace
    if cli_namespace is not None:
        namespace = cli_namespace

    if not namespace or namespace in (".", "..") or "/" in namespace or "\\" in namespace:
        raise ConfigError(f"Invalid cache namespace: {namespace!r}")

    global_cfg.cache.directory = directory
    global_cfg.cache.namespace = namespace

    base = Path(directory).expanduser() if directory else get_cache_dir()
    return global_cfg, base / namespace
