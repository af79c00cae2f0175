"""Pydantic models and helper utilities for configuration values."""
from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    ValidationError,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from subtitle_translator import logging_manager

from .constants import (
    DEFAULT_AUDIO_RELATIVE,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_FFMPEG_PATH,
    DEFAULT_FFPROBE_PATH,
    DEFAULT_JOB_MAX_WORKERS,
    DEFAULT_LLM_API_BASE,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MIN_UPLOAD_BALANCE,
    DEFAULT_MODEL,
    DEFAULT_ORIGINAL_SRT_RELATIVE,
    DEFAULT_RETRY_DELAY_SECONDS,
    DEFAULT_SUBTITLED_VIDEO_RELATIVE,
    DEFAULT_TARGET_LANGUAGE,
    DEFAULT_TIMEOUT_BASE_SECONDS,
    DEFAULT_TRANSLATED_SRT_RELATIVE,
    DEFAULT_TRANSLATION_WORKERS,
    DEFAULT_UNIT_PRICE,
    DEFAULT_UPLOAD_RELATIVE,
    DEFAULT_WHISPER_EXECUTABLE,
    DEFAULT_WORKING_RELATIVE,
)

logger = logging_manager.get_logger()


class SubtitleTranslatorSettings(BaseModel):
    """Typed representation of the application configuration."""

    model_config = ConfigDict(extra="ignore")

    working_dir: str = str(DEFAULT_WORKING_RELATIVE)
    upload_dir: str = str(DEFAULT_UPLOAD_RELATIVE)
    temp_audio_dir: str = str(DEFAULT_AUDIO_RELATIVE)
    whisper_output_dir: str = str(DEFAULT_ORIGINAL_SRT_RELATIVE)
    translated_srt_dir: str = str(DEFAULT_TRANSLATED_SRT_RELATIVE)
    subtitled_video_dir: str = str(DEFAULT_SUBTITLED_VIDEO_RELATIVE)

    llm_api_base: str = DEFAULT_LLM_API_BASE
    llm_api_key: Optional[SecretStr] = None
    llm_model: str = DEFAULT_MODEL
    llm_temperature: Optional[float] = 0.3
    llm_timeout_seconds: Optional[float] = None
    llm_disable_thinking: bool = False
    target_language: str = DEFAULT_TARGET_LANGUAGE

    translation_chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, ge=1)
    translation_max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)
    translation_retry_delay_seconds: float = Field(default=DEFAULT_RETRY_DELAY_SECONDS, ge=0)
    translation_workers: int = Field(default=DEFAULT_TRANSLATION_WORKERS, ge=1)
    job_max_workers: int = Field(default=DEFAULT_JOB_MAX_WORKERS, ge=1)

    ffmpeg_path: str = DEFAULT_FFMPEG_PATH
    ffprobe_path: str = DEFAULT_FFPROBE_PATH
    whisper_executable: str = DEFAULT_WHISPER_EXECUTABLE
    whisper_model: str = "large-v2"
    whisper_device: str = "cuda"
    whisper_vad_filter: bool = True
    whisper_timeout_multiplier: int = Field(default=10, ge=1)
    whisper_timeout_base_seconds: int = Field(default=DEFAULT_TIMEOUT_BASE_SECONDS, ge=1)
    measure_audio_duration: bool = True

    burn_video_codec: str = "libx264"
    burn_hwaccel: Optional[str] = None
    burn_timeout_seconds: float = 30 * 60

    unit_price_per_100_chars: Decimal = DEFAULT_UNIT_PRICE
    min_upload_balance: Decimal = DEFAULT_MIN_UPLOAD_BALANCE
    summary_enabled: bool = True

    database_url: Optional[SecretStr] = None
    debug: bool = False

    @field_validator("unit_price_per_100_chars", "min_upload_balance", mode="before")
    @classmethod
    def _coerce_decimal(cls, value: Any) -> Any:
        # JSON numbers arrive as floats; go through str to keep the literal value.
        if isinstance(value, float):
            return Decimal(str(value))
        return value

    def resolve_path(self, field_name: str) -> Path:
        """Return ``field_name`` as an absolute path; relative values resolve against the process cwd."""

        candidate = Path(str(getattr(self, field_name))).expanduser()
        if not candidate.is_absolute():
            candidate = Path.cwd() / candidate
        return candidate

    def api_key_value(self) -> Optional[str]:
        return self.llm_api_key.get_secret_value() if self.llm_api_key else None


class EnvironmentOverrides(BaseSettings):
    """Configuration overrides sourced from environment variables."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore")

    working_dir: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("SUBTITLE_WORKING_DIR")
    )
    upload_dir: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("SUBTITLE_UPLOAD_DIR")
    )
    temp_audio_dir: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("SUBTITLE_TEMP_AUDIO_DIR")
    )
    whisper_output_dir: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("SUBTITLE_WHISPER_OUTPUT_DIR")
    )
    translated_srt_dir: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("SUBTITLE_TRANSLATED_SRT_DIR")
    )
    subtitled_video_dir: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("SUBTITLE_SUBTITLED_VIDEO_DIR")
    )
    llm_api_base: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("LLM_API_BASE", "SUBTITLE_LLM_API_BASE")
    )
    llm_api_key: Optional[SecretStr] = Field(
        default=None, validation_alias=AliasChoices("LLM_API_KEY", "SUBTITLE_LLM_API_KEY")
    )
    llm_model: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("LLM_MODEL", "SUBTITLE_LLM_MODEL")
    )
    target_language: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("SUBTITLE_TARGET_LANGUAGE")
    )
    translation_workers: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("SUBTITLE_TRANSLATION_WORKERS")
    )
    job_max_workers: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("SUBTITLE_JOB_MAX_WORKERS")
    )
    ffmpeg_path: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("FFMPEG_PATH", "SUBTITLE_FFMPEG_PATH")
    )
    ffprobe_path: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("FFPROBE_PATH", "SUBTITLE_FFPROBE_PATH")
    )
    whisper_executable: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("WHISPER_EXECUTABLE", "SUBTITLE_WHISPER_EXECUTABLE"),
    )
    whisper_model: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("SUBTITLE_WHISPER_MODEL")
    )
    whisper_device: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("SUBTITLE_WHISPER_DEVICE")
    )
    whisper_timeout_multiplier: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("SUBTITLE_WHISPER_TIMEOUT_MULTIPLIER")
    )
    database_url: Optional[SecretStr] = Field(
        default=None, validation_alias=AliasChoices("DATABASE_URL", "SUBTITLE_DATABASE_URL")
    )
    debug: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("SUBTITLE_DEBUG")
    )


def load_environment_overrides() -> Dict[str, Any]:
    """Return configuration overrides sourced from environment variables."""

    try:
        overrides = EnvironmentOverrides()
    except ValidationError as exc:
        logger.warning(
            "Invalid environment configuration detected; using defaults.",
            extra={"event": "config.env.validation_error", "error": str(exc)},
        )
        return {}
    return overrides.model_dump(exclude_none=True)


def apply_settings_updates(
    settings: SubtitleTranslatorSettings, updates: Dict[str, Any]
) -> SubtitleTranslatorSettings:
    """Return a copy of ``settings`` validated with ``updates`` applied."""

    if not updates:
        return settings
    payload = settings.model_dump()
    payload.update(updates)
    return SubtitleTranslatorSettings.model_validate(payload)


__all__ = [
    "EnvironmentOverrides",
    "SubtitleTranslatorSettings",
    "apply_settings_updates",
    "load_environment_overrides",
]
