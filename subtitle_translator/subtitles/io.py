"""SRT parsing, chunking and serialization helpers."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from subtitle_translator import logging_manager as log_mgr
from subtitle_translator.errors import InputMissingError

from .models import SubtitleChunk, SubtitleEntry

logger = log_mgr.get_logger().getChild("subtitles.io")

BLOCK_SEPARATOR = re.compile(r"\n[ \t]*\n")
_MAX_BLOCK_PARTS = 3


def normalize_newlines(payload: str) -> str:
    return payload.replace("\r\n", "\n").replace("\r", "\n")


def split_blocks(payload: str) -> List[str]:
    """Split ``payload`` on blank lines, discarding empty blocks."""

    normalized = normalize_newlines(payload).lstrip("\ufeff")
    return [block.strip() for block in BLOCK_SEPARATOR.split(normalized) if block.strip()]


def split_block(block: str) -> List[str]:
    """Split one block into at most sequence, timecode and content."""

    return [part.strip() for part in block.split("\n", _MAX_BLOCK_PARTS - 1)]


def parse_srt(payload: str, *, logger_obj: Optional[logging.Logger] = None) -> List[SubtitleEntry]:
    """Parse ``payload`` into ordered entries.

    Blocks with fewer than three components are skipped with a warning; one bad
    block never fails the whole file.
    """

    log = logger_obj or logger
    entries: List[SubtitleEntry] = []
    for position, block in enumerate(split_blocks(payload), start=1):
        parts = split_block(block)
        if len(parts) < _MAX_BLOCK_PARTS or not parts[2]:
            log.warning(
                "Skipping malformed SRT block %s",
                position,
                extra={"event": "subtitles.parse.malformed_block", "block": block[:200]},
            )
            continue
        entries.append(SubtitleEntry(sequence=parts[0], timecode=parts[1], content=parts[2]))
    return entries


def load_subtitle_entries(path: Path, *, logger_obj: Optional[logging.Logger] = None) -> List[SubtitleEntry]:
    """Read ``path`` as UTF-8 and parse it into entries."""

    source = Path(path)
    if not source.is_file():
        raise InputMissingError(f"Subtitle file not found: {source}")
    return parse_srt(source.read_text(encoding="utf-8-sig"), logger_obj=logger_obj)


def serialize_entries(entries: Iterable[SubtitleEntry]) -> str:
    """Render ``entries`` as SRT text, blocks separated by one blank line."""

    blocks = [entry.to_block() for entry in entries]
    if not blocks:
        return ""
    return "\n\n".join(blocks) + "\n"


def write_srt(path: Path, entries: Sequence[SubtitleEntry]) -> Path:
    """Serialize ``entries`` to ``path`` using UTF-8."""

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(serialize_entries(entries), encoding="utf-8")
    return target


def chunk_entries(entries: Sequence[SubtitleEntry], chunk_size: int) -> List[SubtitleChunk]:
    """Partition ``entries`` into order-preserving chunks of ``chunk_size``."""

    if chunk_size < 1:
        raise ValueError("chunk_size must be at least 1")
    return [
        tuple(entries[start : start + chunk_size])
        for start in range(0, len(entries), chunk_size)
    ]


__all__ = [
    "chunk_entries",
    "load_subtitle_entries",
    "normalize_newlines",
    "parse_srt",
    "serialize_entries",
    "split_block",
    "split_blocks",
    "write_srt",
]
