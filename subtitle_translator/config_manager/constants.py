"""Shared constants for the configuration manager package."""
from __future__ import annotations

import os
import shutil
from decimal import Decimal
from pathlib import Path

MODULE_DIR = Path(__file__).resolve().parent
SCRIPT_DIR = MODULE_DIR.parent.parent.resolve()
CONF_DIR = SCRIPT_DIR / "conf"
DEFAULT_CONFIG_PATH = CONF_DIR / "config.json"
DEFAULT_LOCAL_CONFIG_PATH = CONF_DIR / "config.local.json"

DEFAULT_WORKING_RELATIVE = Path("output")
DEFAULT_UPLOAD_RELATIVE = DEFAULT_WORKING_RELATIVE / "uploads"
DEFAULT_AUDIO_RELATIVE = DEFAULT_WORKING_RELATIVE / "tmp" / "audio"
DEFAULT_ORIGINAL_SRT_RELATIVE = DEFAULT_WORKING_RELATIVE / "srt" / "original"
DEFAULT_TRANSLATED_SRT_RELATIVE = DEFAULT_WORKING_RELATIVE / "srt" / "translated"
DEFAULT_SUBTITLED_VIDEO_RELATIVE = DEFAULT_WORKING_RELATIVE / "subtitled"

SENSITIVE_CONFIG_KEYS = {"llm_api_key", "database_url"}

DEFAULT_LLM_API_BASE = os.environ.get(
    "LLM_API_BASE", "https://ark.cn-beijing.volces.com/api/v3"
)
DEFAULT_MODEL = "doubao-1-5-pro-32k-250115"
DEFAULT_TARGET_LANGUAGE = "Simplified Chinese"
DEFAULT_FFMPEG_PATH = os.environ.get("FFMPEG_PATH") or shutil.which("ffmpeg") or "ffmpeg"
DEFAULT_FFPROBE_PATH = os.environ.get("FFPROBE_PATH") or shutil.which("ffprobe") or "ffprobe"
DEFAULT_WHISPER_EXECUTABLE = "faster-whisper-xxl"
DEFAULT_DATABASE_URL = "sqlite:///storage/subtitle_translator.db"

DEFAULT_CHUNK_SIZE = 15
DEFAULT_MAX_RETRIES = 1
DEFAULT_RETRY_DELAY_SECONDS = 1.0
DEFAULT_TRANSLATION_WORKERS = 5
DEFAULT_JOB_MAX_WORKERS = 10
DEFAULT_TIMEOUT_BASE_SECONDS = 60
DEFAULT_UNIT_PRICE = Decimal("0.1")
DEFAULT_MIN_UPLOAD_BALANCE = Decimal("10")

__all__ = [
    "MODULE_DIR",
    "SCRIPT_DIR",
    "CONF_DIR",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_LOCAL_CONFIG_PATH",
    "DEFAULT_WORKING_RELATIVE",
    "DEFAULT_UPLOAD_RELATIVE",
    "DEFAULT_AUDIO_RELATIVE",
    "DEFAULT_ORIGINAL_SRT_RELATIVE",
    "DEFAULT_TRANSLATED_SRT_RELATIVE",
    "DEFAULT_SUBTITLED_VIDEO_RELATIVE",
    "SENSITIVE_CONFIG_KEYS",
    "DEFAULT_LLM_API_BASE",
    "DEFAULT_MODEL",
    "DEFAULT_TARGET_LANGUAGE",
    "DEFAULT_FFMPEG_PATH",
    "DEFAULT_FFPROBE_PATH",
    "DEFAULT_WHISPER_EXECUTABLE",
    "DEFAULT_DATABASE_URL",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_RETRY_DELAY_SECONDS",
    "DEFAULT_TRANSLATION_WORKERS",
    "DEFAULT_JOB_MAX_WORKERS",
    "DEFAULT_TIMEOUT_BASE_SECONDS",
    "DEFAULT_UNIT_PRICE",
    "DEFAULT_MIN_UPLOAD_BALANCE",
]
