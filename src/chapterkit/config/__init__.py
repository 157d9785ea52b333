"""Configuration package for chapterkit."""

from chapterkit.config.app_config import (
    DEFAULT_CONFIG,
    DiscoveryConfig,
    load_config,
    reset_config_cache,
)

__all__ = [
    "DEFAULT_CONFIG",
    "DiscoveryConfig",
    "load_config",
    "reset_config_cache",
]
