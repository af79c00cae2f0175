"""High-level configuration management for subtitle-translator."""
from __future__ import annotations

from .constants import (
    CONF_DIR,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CONFIG_PATH,
    DEFAULT_LOCAL_CONFIG_PATH,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MODEL,
    DEFAULT_RETRY_DELAY_SECONDS,
    DEFAULT_TRANSLATION_WORKERS,
    SENSITIVE_CONFIG_KEYS,
)
from .loader import get_settings, load_configuration, redacted_settings, set_settings
from .settings import EnvironmentOverrides, SubtitleTranslatorSettings


def get_thread_count() -> int:
    """Return the configured size of the shared translation worker pool."""

    return get_settings().translation_workers


__all__ = [
    "CONF_DIR",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_LOCAL_CONFIG_PATH",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_MODEL",
    "DEFAULT_RETRY_DELAY_SECONDS",
    "DEFAULT_TRANSLATION_WORKERS",
    "SENSITIVE_CONFIG_KEYS",
    "EnvironmentOverrides",
    "SubtitleTranslatorSettings",
    "get_settings",
    "get_thread_count",
    "load_configuration",
    "redacted_settings",
    "set_settings",
]
