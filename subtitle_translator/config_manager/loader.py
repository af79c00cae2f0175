"""Configuration loading utilities."""
from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from subtitle_translator import logging_manager

from .constants import DEFAULT_CONFIG_PATH, DEFAULT_LOCAL_CONFIG_PATH, SENSITIVE_CONFIG_KEYS
from .settings import (
    SubtitleTranslatorSettings,
    apply_settings_updates,
    load_environment_overrides,
)

logger = logging_manager.get_logger()

_ACTIVE_SETTINGS: Optional[SubtitleTranslatorSettings] = None
_SETTINGS_LOCK = threading.Lock()


def _read_config_json(path: Optional[Path], label: str = "configuration") -> Dict[str, Any]:
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError:
        logger.debug("No %s found at %s.", label, path)
        return {}
    except json.JSONDecodeError as exc:
        logger.warning(
            "Error loading %s from %s: %s. Proceeding without it.",
            label,
            path,
            exc,
            extra={"event": "config.file.invalid"},
        )
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring %s at %s: top-level value is not an object.", label, path)
        return {}
    logger.debug("Loaded %s from %s", label, path)
    return data


def _deep_merge_dict(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge_dict(result[key], value)
        else:
            result[key] = value
    return result


def load_configuration(config_file: Optional[str | Path] = None) -> SubtitleTranslatorSettings:
    """Load the layered configuration, activate it and return it.

    Layers, lowest precedence first: ``conf/config.json``, the override file
    (``config_file`` or ``conf/config.local.json``), environment variables.
    """

    global _ACTIVE_SETTINGS

    payload = _read_config_json(DEFAULT_CONFIG_PATH, label="default configuration")

    if config_file:
        override_path = Path(config_file).expanduser()
        if not override_path.is_absolute():
            override_path = (Path.cwd() / override_path).resolve()
    else:
        override_path = DEFAULT_LOCAL_CONFIG_PATH
    payload = _deep_merge_dict(
        payload, _read_config_json(override_path, label="local configuration")
    )

    try:
        settings = SubtitleTranslatorSettings.model_validate(payload)
    except ValidationError as exc:
        logger.warning(
            "Invalid configuration file values; falling back to defaults.",
            extra={"event": "config.file.validation_error", "error": str(exc)},
        )
        settings = SubtitleTranslatorSettings()

    settings = apply_settings_updates(settings, load_environment_overrides())
    logging_manager.configure_logging_level(debug_enabled=settings.debug)

    with _SETTINGS_LOCK:
        _ACTIVE_SETTINGS = settings
    return settings


def get_settings() -> SubtitleTranslatorSettings:
    """Return the active settings, loading them on first access."""

    with _SETTINGS_LOCK:
        settings = _ACTIVE_SETTINGS
    if settings is None:
        settings = load_configuration()
    return settings


def set_settings(settings: Optional[SubtitleTranslatorSettings]) -> None:
    """Replace (or clear, with ``None``) the active settings."""

    global _ACTIVE_SETTINGS
    with _SETTINGS_LOCK:
        _ACTIVE_SETTINGS = settings


def redacted_settings(settings: SubtitleTranslatorSettings) -> Dict[str, Any]:
    """Return a JSON-friendly dump of ``settings`` with secrets masked."""

    payload = settings.model_dump(mode="json")
    for key in SENSITIVE_CONFIG_KEYS:
        if payload.get(key):
            payload[key] = "***"
    return payload


__all__ = [
    "get_settings",
    "load_configuration",
    "redacted_settings",
    "set_settings",
]
