"""Subtitle parsing, serialization and validation utilities."""

from .io import (
    chunk_entries,
    load_subtitle_entries,
    parse_srt,
    serialize_entries,
    write_srt,
)
from .models import SubtitleChunk, SubtitleEntry
from .validation import validate_entries

__all__ = [
    "SubtitleChunk",
    "SubtitleEntry",
    "chunk_entries",
    "load_subtitle_entries",
    "parse_srt",
    "serialize_entries",
    "validate_entries",
    "write_srt",
]
