"""Configuration file loading.

Handles:
- YAML file parsing
- Environment variable overrides
- Conversion from dict to typed Config dataclass
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from lspbridge.config.schema import (
    Config,
    DocumentFilterConfig,
    DocumentsConfig,
    LoggingConfig,
    ServerConfig,
    ShutdownConfig,
    WatchConfig,
)

# Module logger (may not be configured yet at import time)
_log = logging.getLogger("lspbridge.config")

DEFAULT_CONFIG_NAMES = ("lspbridge.yaml", ".lspbridge.yaml", "lspbridge.yml", ".lspbridge.yml")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file, returning empty dict if not found or invalid.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML as dict, or empty dict on error.
    """
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except yaml.YAMLError as e:
        _log.warning("Invalid YAML in %s: %s", path, e)
        return {}
    except OSError as e:
        _log.warning("Error reading %s: %s", path, e)
        return {}


def env_overrides() -> dict[str, Any]:
    """Build config dict from environment variables.

    Returns:
        Config dict with values from environment.
    """
    overrides: dict[str, Any] = {}

    log_path = os.environ.get("LSPBRIDGE_LOG")
    if log_path:
        overrides.setdefault("logging", {})["file"] = log_path

    server_path = os.environ.get("LSPBRIDGE_SERVER_PATH")
    if server_path:
        overrides.setdefault("server", {})["path"] = server_path

    return overrides


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``.

    Nested dicts merge recursively, lists are replaced and None never
    overrides a value.
    """
    result = base.copy()
    for key, value in override.items():
        if value is None:
            continue
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = _deep_merge(current, value)
        else:
            result[key] = value
    return result


def dict_to_config(data: dict[str, Any]) -> Config:
    """Convert merged dict to typed Config dataclass.

    Args:
        data: Merged configuration dictionary.

    Returns:
        Typed Config object.
    """
    server_data = data.get("server", {})
    server_defaults = ServerConfig()
    diagnostic_env = server_data.get("diagnostic_env", server_defaults.diagnostic_env)
    server = ServerConfig(
        path=str(server_data.get("path", server_defaults.path)),
        diagnostic_env={str(k): str(v) for k, v in (diagnostic_env or {}).items()},
        client_id=server_data.get("client_id", server_defaults.client_id),
        client_name=server_data.get("client_name", server_defaults.client_name),
    )

    documents_data = data.get("documents", {})
    selector_data = documents_data.get("selector")
    if selector_data is None:
        documents = DocumentsConfig()
    else:
        documents = DocumentsConfig(
            selector=[
                DocumentFilterConfig(
                    scheme=entry.get("scheme", "file"),
                    language=entry["language"],
                )
                for entry in selector_data
                if isinstance(entry, dict) and entry.get("language")
            ]
        )

    watch_data = data.get("watch", {})
    watch_defaults = WatchConfig()
    watch = WatchConfig(
        patterns=list(watch_data.get("patterns", watch_defaults.patterns)),
        poll_interval=float(watch_data.get("poll_interval", watch_defaults.poll_interval)),
    )

    shutdown_data = data.get("shutdown", {})
    shutdown_defaults = ShutdownConfig()
    shutdown = ShutdownConfig(
        shutdown_timeout=float(
            shutdown_data.get("shutdown_timeout", shutdown_defaults.shutdown_timeout)
        ),
        exit_timeout=float(shutdown_data.get("exit_timeout", shutdown_defaults.exit_timeout)),
        interrupt_timeout=float(
            shutdown_data.get("interrupt_timeout", shutdown_defaults.interrupt_timeout)
        ),
        terminate_timeout=float(
            shutdown_data.get("terminate_timeout", shutdown_defaults.terminate_timeout)
        ),
    )

    logging_data = data.get("logging", {})
    logging_config = LoggingConfig(
        level=logging_data.get("level"),
        verbose=logging_data.get("verbose"),
        file=logging_data.get("file"),
    )

    return Config(
        server=server,
        documents=documents,
        watch=watch,
        shutdown=shutdown,
        logging=logging_config,
        handshake_timeout=float(data.get("handshake_timeout", Config().handshake_timeout)),
    )


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from a YAML file plus environment overrides.

    Priority order (highest to lowest):
    1. Environment variables (LSPBRIDGE_LOG, LSPBRIDGE_SERVER_PATH)
    2. The explicit ``config_path``, or the first default file found in cwd
    3. Built-in defaults

    Args:
        config_path: Optional explicit config file.

    Returns:
        Typed Config object.
    """
    if config_path is None:
        for name in DEFAULT_CONFIG_NAMES:
            if Path(name).exists():
                config_path = Path(name)
                break

    merged: dict[str, Any] = {}
    if config_path is not None:
        file_data = load_yaml_file(config_path)
        if file_data:
            _log.debug("Loaded config from %s", config_path)
        merged = _deep_merge(merged, file_data)

    merged = _deep_merge(merged, env_overrides())
    return dict_to_config(merged)
