from __future__ import annotations

import json
import os
from decimal import Decimal
from pathlib import Path

import pytest

from subtitle_translator import config_manager as cfg
from subtitle_translator import environment
from subtitle_translator.config_manager.settings import load_environment_overrides

pytestmark = pytest.mark.config

ENV_NAMES = (
    "LLM_API_BASE",
    "LLM_API_KEY",
    "LLM_MODEL",
    "DATABASE_URL",
    "SUBTITLE_TARGET_LANGUAGE",
    "SUBTITLE_TRANSLATION_WORKERS",
    "SUBTITLE_DATABASE_URL",
    "SUBTITLE_LLM_API_KEY",
    "SUBTITLE_DEBUG",
)


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def write_config(tmp_path: Path, payload) -> Path:
    path = tmp_path / "config.override.json"
    path.write_text(payload if isinstance(payload, str) else json.dumps(payload), encoding="utf-8")
    return path


def test_override_file_is_merged_over_defaults(tmp_path):
    path = write_config(tmp_path, {"translation_chunk_size": 7, "target_language": "Korean"})

    settings = cfg.load_configuration(path)

    assert settings.translation_chunk_size == 7
    assert settings.target_language == "Korean"
    assert settings.translation_max_retries == cfg.DEFAULT_MAX_RETRIES
    assert cfg.get_settings() is settings


def test_prices_are_decimals_even_from_json_floats(tmp_path):
    path = write_config(tmp_path, {"unit_price_per_100_chars": 0.15, "min_upload_balance": 2.5})

    settings = cfg.load_configuration(path)

    assert settings.unit_price_per_100_chars == Decimal("0.15")
    assert settings.min_upload_balance == Decimal("2.5")


def test_environment_takes_precedence_over_files(tmp_path, monkeypatch):
    path = write_config(tmp_path, {"target_language": "Korean", "translation_workers": 2})
    monkeypatch.setenv("SUBTITLE_TARGET_LANGUAGE", "Portuguese")
    monkeypatch.setenv("LLM_API_KEY", "sk-test")

    settings = cfg.load_configuration(path)

    assert settings.target_language == "Portuguese"
    assert settings.translation_workers == 2
    assert settings.api_key_value() == "sk-test"
    assert cfg.get_thread_count() == 2


def test_invalid_environment_values_are_ignored(monkeypatch):
    monkeypatch.setenv("SUBTITLE_TRANSLATION_WORKERS", "many")

    assert load_environment_overrides() == {}


def test_invalid_file_values_fall_back_to_defaults(tmp_path):
    path = write_config(tmp_path, {"translation_chunk_size": 0})

    settings = cfg.load_configuration(path)

    assert settings.translation_chunk_size == cfg.DEFAULT_CHUNK_SIZE


def test_malformed_json_is_skipped(tmp_path):
    path = write_config(tmp_path, "{not json")

    settings = cfg.load_configuration(path)

    assert settings.translation_chunk_size == cfg.DEFAULT_CHUNK_SIZE


def test_redacted_settings_masks_secrets(monkeypatch):
    monkeypatch.setenv("LLM_API_KEY", "sk-secret")
    monkeypatch.setenv("DATABASE_URL", "postgresql://user:pw@db/subtitles")

    payload = cfg.redacted_settings(cfg.load_configuration())

    assert payload["llm_api_key"] == "***"
    assert payload["database_url"] == "***"
    assert "sk-secret" not in json.dumps(payload)


def test_resolve_path_anchors_relative_paths(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    settings = cfg.SubtitleTranslatorSettings(upload_dir="media/uploads", temp_audio_dir=str(tmp_path / "abs"))

    assert settings.resolve_path("upload_dir") == tmp_path / "media" / "uploads"
    assert settings.resolve_path("temp_audio_dir") == tmp_path / "abs"


def test_dotenv_file_is_loaded_without_overriding(tmp_path, monkeypatch):
    env_file = tmp_path / "custom.env"
    env_file.write_text("SUBTITLE_DOTENV_PROBE=from-file\nSUBTITLE_TARGET_LANGUAGE=Dutch\n", encoding="utf-8")
    monkeypatch.setenv("SUBTITLE_DOTENV_PROBE", "placeholder")
    monkeypatch.delenv("SUBTITLE_DOTENV_PROBE")
    monkeypatch.setenv("SUBTITLE_TARGET_LANGUAGE", "Swedish")
    monkeypatch.setenv("SUBTITLE_ENV_FILE", str(env_file))
    monkeypatch.setattr(environment, "_LOADED_FILES", None)

    loaded = environment.load_environment()

    assert env_file.resolve() in loaded
    assert environment.load_environment() is loaded
    assert os.environ["SUBTITLE_DOTENV_PROBE"] == "from-file"
    assert os.environ["SUBTITLE_TARGET_LANGUAGE"] == "Swedish"
