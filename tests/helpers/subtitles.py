"""Builders for SRT fixtures shared across test modules."""

from __future__ import annotations

from typing import List

from subtitle_translator.subtitles import SubtitleEntry


def timecode_for(index: int) -> str:
    start = index * 2
    end = start + 1
    return (
        f"00:{start // 60:02d}:{start % 60:02d},000 --> "
        f"00:{end // 60:02d}:{end % 60:02d},500"
    )


def build_entries(count: int, *, text: str = "Line") -> List[SubtitleEntry]:
    return [
        SubtitleEntry(sequence=str(index), timecode=timecode_for(index), content=f"{text} {index}")
        for index in range(1, count + 1)
    ]


def build_srt(count: int, *, text: str = "Line") -> str:
    return "\n\n".join(entry.to_block() for entry in build_entries(count, text=text)) + "\n"


def translate_blocks(raw_chunk_text: str, *, prefix: str = "T") -> str:
    """Return ``raw_chunk_text`` with every caption prefixed, keeping the structure."""

    blocks = []
    for block in raw_chunk_text.strip().split("\n\n"):
        sequence, timecode, content = block.split("\n", 2)
        blocks.append(f"{sequence}\n{timecode}\n{prefix}:{content}")
    return "\n\n".join(blocks)
