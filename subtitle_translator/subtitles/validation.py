"""Integrity checks applied to subtitle entries before they are written."""

from __future__ import annotations

import re
from typing import Iterable

from subtitle_translator.errors import SubtitleValidationError

from .models import SubtitleEntry

SEQUENCE_PATTERN = re.compile(r"[0-9]+")
TIMECODE_PATTERN = re.compile(
    r"[0-9]{2}:[0-9]{2}:[0-9]{2},[0-9]{3} --> [0-9]{2}:[0-9]{2}:[0-9]{2},[0-9]{3}"
)


def validate_entry(entry: SubtitleEntry) -> None:
    if not SEQUENCE_PATTERN.fullmatch(entry.sequence):
        raise SubtitleValidationError(f"Invalid subtitle sequence: {entry.sequence!r}")
    if not TIMECODE_PATTERN.fullmatch(entry.timecode):
        raise SubtitleValidationError(
            f"Invalid timecode for entry {entry.sequence}: {entry.timecode!r}"
        )
    if not entry.content.strip():
        raise SubtitleValidationError(f"Empty subtitle content for entry {entry.sequence}")


def validate_entries(entries: Iterable[SubtitleEntry]) -> None:
    """Raise :class:`SubtitleValidationError` on the first malformed entry."""

    for entry in entries:
        validate_entry(entry)


__all__ = ["SEQUENCE_PATTERN", "TIMECODE_PATTERN", "validate_entries", "validate_entry"]
