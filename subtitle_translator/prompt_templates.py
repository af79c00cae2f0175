"""Prompt templates used for communicating with the LLM."""

from __future__ import annotations

from typing import Iterable

from subtitle_translator.subtitles.models import SubtitleEntry

SUBTITLE_RULES = (
    "Keep every sequence number (such as '1') exactly as given.",
    "Keep every timestamp (such as '00:00:03,760 --> 00:00:10,220') exactly as given.",
    "Translate only the third part of each block, the caption text, so that it reads as if it "
    "had been written in {target_language} originally. Use the surrounding captions for context "
    "but never add explanations or extra information.",
    "Keep the block structure: sequence, timestamp and caption text, with one blank line "
    "between blocks. Return exactly as many blocks as you were given.",
)


def make_subtitle_translation_prompt(
    entries: Iterable[SubtitleEntry], target_language: str
) -> str:
    """Build the instruction prompt for one chunk of subtitle entries."""

    lines = [
        "You are a professional subtitle translator. Translate the SRT blocks below "
        "following these rules strictly:"
    ]
    lines.extend(f"- {rule.format(target_language=target_language)}" for rule in SUBTITLE_RULES)
    lines.append("The original SRT blocks are:")
    blocks = "\n\n".join(f"{entry.sequence}\n{entry.timecode}\n{entry.content}" for entry in entries)
    return ("\n".join(lines) + "\n" + blocks).strip()


def make_summary_prompt(srt_content: str, language: str) -> str:
    """Ask for a summary of a video, written in ``language``, from its subtitles."""

    return (
        f"Summarize the main content of the video in {language}, based on the following "
        f"subtitles:\n\n{srt_content}"
    )


def make_text_translation_prompt(text: str, target_language: str) -> str:
    return "\n".join(
        [
            f"You are an expert translator. Translate the text below into {target_language}.",
            "The translation must read naturally to a native speaker while preserving the "
            "meaning, tone and style of the original.",
            "Return only the translated text as plain text, without greetings, comments or "
            "any other content.",
            "",
            "Text to translate:",
            text,
        ]
    )


__all__ = [
    "make_subtitle_translation_prompt",
    "make_summary_prompt",
    "make_text_translation_prompt",
]
