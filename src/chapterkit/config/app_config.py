"""Discovery configuration loader.

Loads tuning knobs for chapter discovery from a YAML file, merged over the
built-in defaults.

Lookup order:
1. Explicit path passed to load_config()
2. CHAPTERKIT_CONFIG environment variable
3. ./chapterkit.yaml
4. Defaults

Usage:
    from chapterkit.config.app_config import load_config

    config = load_config()
    config.toc_scan_pages  # 20
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import structlog
import yaml

from chapterkit.core.errors import ConfigError

logger = structlog.get_logger(__name__)

CONFIG_FILE = Path("chapterkit.yaml")
CONFIG_ENV_VAR = "CHAPTERKIT_CONFIG"


@dataclass(frozen=True)
class DiscoveryConfig:
    """Tuning parameters for chapter discovery and text extraction."""

    # TOC page search
    toc_scan_pages: int = 20
    line_tolerance: float = 3.0
    min_main_toc_entries: int = 3
    # Printed -> physical page offset sampling
    offset_sample_size: int = 3
    offset_search_before: int = 10
    offset_search_after: int = 30
    offset_leading_chars: int = 400
    # Content heuristics
    heading_fragment_count: int = 5
    # Titles
    title_max_length: int = 60
    # Language detection
    language_sample_chars: int = 10000


DEFAULT_CONFIG = DiscoveryConfig()

# Module-level cache
_cached_config: DiscoveryConfig | None = None


def _resolve_config_path(path: Path | None) -> Path | None:
    if path is not None:
        return path
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    if CONFIG_FILE.exists():
        return CONFIG_FILE
    return None


def _coerce(key: str, value: Any, default: Any) -> Any:
    """Check a YAML value against the type of its default."""
    # bool is an int subclass; YAML true/false never counts as a number
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"Valor inválido para '{key}': {value!r}")
    if isinstance(default, int) and not isinstance(value, int):
        raise ConfigError(f"Valor inválido para '{key}': {value!r} (se esperaba un entero)")
    return type(default)(value)


def _parse_config(data: dict[str, Any]) -> DiscoveryConfig:
    """Merge a parsed YAML mapping over the defaults."""
    known = {f.name for f in fields(DiscoveryConfig)}
    values = {}
    for key, value in data.items():
        if key not in known:
            logger.warning("config.unknown_key", key=key)
            continue
        values[key] = _coerce(key, value, getattr(DEFAULT_CONFIG, key))
    return replace(DEFAULT_CONFIG, **values)


def load_config(path: Path | None = None, force_reload: bool = False) -> DiscoveryConfig:
    """Load discovery config, falling back to defaults.

    Args:
        path: Explicit YAML file (bypasses the cache)
        force_reload: If True, ignore cached config and reload from file.

    Returns:
        DiscoveryConfig with all settings.

    Raises:
        ConfigError: If the file is not valid YAML or holds invalid values
    """
    global _cached_config

    if path is None and _cached_config is not None and not force_reload:
        return _cached_config

    config_path = _resolve_config_path(path)

    if config_path is None:
        logger.debug("config.using_defaults")
        config = DEFAULT_CONFIG
    else:
        logger.debug("config.loading", source=str(config_path))
        try:
            data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"No se pudo leer la configuración: {config_path}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"La configuración debe ser un mapa YAML: {config_path}")
        config = _parse_config(data)

    if path is None:
        _cached_config = config
    return config


def reset_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing or when config is modified at runtime.
    """
    global _cached_config
    _cached_config = None
