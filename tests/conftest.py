from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterator

import pytest

from subtitle_translator import config_manager as cfg
from subtitle_translator import logging_manager as log_mgr
from subtitle_translator.database import configure_engine, init_schema
from subtitle_translator.translation_workers import reset_shared_pool
from tests.helpers.subtitles import build_srt


@pytest.fixture(autouse=True)
def _reset_runtime_state():
    yield
    reset_shared_pool()
    cfg.set_settings(None)
    log_mgr.clear_log_context()


@pytest.fixture
def settings(tmp_path: Path) -> cfg.SubtitleTranslatorSettings:
    work = tmp_path / "work"
    active = cfg.SubtitleTranslatorSettings(
        working_dir=str(work),
        upload_dir=str(work / "uploads"),
        temp_audio_dir=str(work / "audio"),
        whisper_output_dir=str(work / "srt" / "original"),
        translated_srt_dir=str(work / "srt" / "translated"),
        subtitled_video_dir=str(work / "subtitled"),
        llm_api_base="http://llm.invalid/api/v3",
        translation_retry_delay_seconds=0,
        translation_workers=4,
        summary_enabled=False,
    )
    cfg.set_settings(active)
    return active


@pytest.fixture
def srt_factory(tmp_path: Path) -> Callable[..., Path]:
    def _factory(count: int, *, name: str = "sample.srt", text: str = "Line") -> Path:
        path = tmp_path / name
        path.write_text(build_srt(count, text=text), encoding="utf-8")
        return path

    return _factory


@pytest.fixture
def sqlite_database(tmp_path: Path, settings: cfg.SubtitleTranslatorSettings) -> Iterator[str]:
    url = f"sqlite:///{tmp_path / 'db' / 'subtitles.sqlite3'}"
    configure_engine(url)
    init_schema()
    yield url
    configure_engine(None)
