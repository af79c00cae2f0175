"""Generate a short summary of a video from its transcribed subtitles."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from subtitle_translator import logging_manager as log_mgr
from subtitle_translator import prompt_templates
from subtitle_translator.errors import InputMissingError
from subtitle_translator.llm_client import LLMClient

logger = log_mgr.get_logger().getChild("services.summary")


class SummaryService:
    """Ask the LLM for a summary of a subtitle file."""

    def __init__(
        self,
        client: LLMClient,
        *,
        language: str,
        logger_obj: Optional[logging.Logger] = None,
    ) -> None:
        self._client = client
        self._language = language
        self._logger = logger_obj or logger

    def summarize(self, subtitle_path: Path) -> str:
        source = Path(subtitle_path)
        if not source.is_file():
            raise InputMissingError(f"Subtitle file not found: {source}")
        content = source.read_text(encoding="utf-8-sig")
        summary = self._client.complete(
            prompt_templates.make_summary_prompt(content, self._language)
        ).strip()
        self._logger.info(
            "Generated summary for %s",
            source.name,
            extra={"event": "summary.generated", "length": len(summary)},
        )
        return summary


__all__ = ["SummaryService"]
