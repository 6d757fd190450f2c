"""Configuration management for lspbridge.

YAML-based configuration with environment variable overrides.

Example usage:
    from lspbridge.config import load_config

    config = load_config()
    print(config.server.path)
    print(config.watch.patterns)
"""

from lspbridge.config.loader import dict_to_config, load_config, load_yaml_file
from lspbridge.config.schema import (
    Config,
    DocumentFilterConfig,
    DocumentsConfig,
    LoggingConfig,
    ServerConfig,
    ShutdownConfig,
    WatchConfig,
)

__all__ = [
    "Config",
    "DocumentFilterConfig",
    "DocumentsConfig",
    "LoggingConfig",
    "ServerConfig",
    "ShutdownConfig",
    "WatchConfig",
    "dict_to_config",
    "load_config",
    "load_yaml_file",
]
