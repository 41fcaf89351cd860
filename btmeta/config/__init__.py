"""Configuration for btmeta."""

from __future__ import annotations

from btmeta.config.config import (
    ConfigManager,
    get_config,
    get_network_config,
    get_observability_config,
    init_config,
    reset_config,
)

__all__ = [
    "ConfigManager",
    "get_config",
    "get_network_config",
    "get_observability_config",
    "init_config",
    "reset_config",
]
