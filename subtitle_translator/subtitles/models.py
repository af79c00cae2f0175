"""Typed containers for subtitle processing."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True, slots=True)
class SubtitleEntry:
    """One SRT caption block, kept as the raw text of its three components."""

    sequence: str
    timecode: str
    content: str

    def with_content(self, content: str) -> "SubtitleEntry":
        return SubtitleEntry(self.sequence, self.timecode, content)

    def to_block(self) -> str:
        return f"{self.sequence}\n{self.timecode}\n{self.content}"


SubtitleChunk = Tuple[SubtitleEntry, ...]


__all__ = ["SubtitleChunk", "SubtitleEntry"]
