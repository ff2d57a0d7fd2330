"""Startup configuration resolution for network services."""

from server_kit.config import (
    ConfigBuilder,
    ConfigError,
    Env,
    Environment,
    Flatten,
    ServerConfig,
    project,
    provides,
)

__all__ = [
    "ConfigBuilder",
    "ConfigError",
    "Env",
    "Environment",
    "Flatten",
    "ServerConfig",
    "project",
    "provides",
]
