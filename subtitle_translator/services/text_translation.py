"""One-shot translation of free text outside the subtitle pipeline."""

from __future__ import annotations

from subtitle_translator import prompt_templates
from subtitle_translator.llm_client import LLMClient


class TextTranslationService:
    def __init__(self, client: LLMClient, *, target_language: str) -> None:
        self._client = client
        self._target_language = target_language

    def translate(self, text: str) -> str:
        """Return ``text`` translated into the configured target language."""

        if not text or not text.strip():
            raise ValueError("Text to translate must not be empty")
        prompt = prompt_templates.make_text_translation_prompt(text, self._target_language)
        return self._client.complete(prompt).strip()


__all__ = ["TextTranslationService"]
