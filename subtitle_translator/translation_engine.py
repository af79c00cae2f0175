"""Concurrent, chunked translation of SRT subtitle files.

Entries are split into fixed-size chunks which are translated in parallel on
the shared worker pool. Each chunk reply is checked block by block against its
source chunk and retried a bounded number of times. Results are reassembled
in submission order, so completion order never affects the output.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from subtitle_translator import logging_manager as log_mgr
from subtitle_translator import observability, prompt_templates
from subtitle_translator.billing import count_characters
from subtitle_translator.config_manager import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY_SECONDS,
)
from subtitle_translator.errors import (
    StructuralMismatchError,
    SubtitleValidationError,
    TranslationChunkError,
)
from subtitle_translator.llm_client import LLMClient
from subtitle_translator.subtitles import (
    SubtitleChunk,
    SubtitleEntry,
    chunk_entries,
    load_subtitle_entries,
    validate_entries,
    write_srt,
)
from subtitle_translator.subtitles.io import split_block, split_blocks
from subtitle_translator.translation_workers import TranslationWorkerPool, get_shared_pool

logger = log_mgr.get_logger().getChild("translation")

TRANSLATED_FILENAME_PREFIX = "translated_"

ChunkTranslator = Callable[[SubtitleChunk], str]


@dataclass(frozen=True, slots=True)
class ChunkOk:
    index: int
    entries: SubtitleChunk
    attempts: int


@dataclass(frozen=True, slots=True)
class ChunkErr:
    index: int
    kind: str
    detail: str
    attempts: int


ChunkResult = Union[ChunkOk, ChunkErr]


@dataclass(slots=True)
class TranslationOutcome:
    """Result of translating one subtitle file."""

    output_path: Path
    entries: List[SubtitleEntry]
    character_count: int


def make_llm_chunk_translator(client: LLMClient, target_language: str) -> ChunkTranslator:
    """Return a chunk translator that sends one prompt per chunk to ``client``."""

    def _translate(chunk: SubtitleChunk) -> str:
        prompt = prompt_templates.make_subtitle_translation_prompt(chunk, target_language)
        return client.complete(prompt)

    return _translate


def translated_filename(source_name: str) -> str:
    return f"{TRANSLATED_FILENAME_PREFIX}{source_name}"


def parse_translated_chunk(
    raw_text: str,
    chunk: Sequence[SubtitleEntry],
    *,
    logger_obj: Optional[logging.Logger] = None,
) -> SubtitleChunk:
    """Map a chunk reply back onto the source entries of ``chunk``.

    The reply must contain exactly one block per source entry. A block with
    fewer than three lines keeps the source content. Sequence and timecode
    always come from the source; differences are only logged.
    """

    log = logger_obj or logger
    blocks = split_blocks(raw_text or "")
    if len(blocks) != len(chunk):
        raise StructuralMismatchError(len(chunk), len(blocks))

    translated: List[SubtitleEntry] = []
    for original, block in zip(chunk, blocks):
        parts = split_block(block)
        if len(parts) < 3 or not parts[2]:
            log.warning(
                "Translated block for entry %s is incomplete; keeping original content",
                original.sequence,
                extra={"event": "translation.chunk.short_block", "block": block[:200]},
            )
            translated.append(original)
            continue
        if parts[0] != original.sequence:
            log.warning(
                "Sequence mismatch: expected %s, got %s",
                original.sequence,
                parts[0],
                extra={"event": "translation.chunk.sequence_mismatch"},
            )
        if parts[1] != original.timecode:
            log.warning(
                "Timecode mismatch for entry %s: expected %s, got %s",
                original.sequence,
                original.timecode,
                parts[1],
                extra={"event": "translation.chunk.timecode_mismatch"},
            )
        translated.append(original.with_content(parts[2]))
    return tuple(translated)


class ChunkedTranslationEngine:
    """Translate subtitle entries chunk by chunk on a bounded worker pool."""

    def __init__(
        self,
        chunk_translator: ChunkTranslator,
        *,
        pool: Optional[TranslationWorkerPool] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        logger_obj: Optional[logging.Logger] = None,
    ) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        if max_retries < 0:
            raise ValueError("max_retries must not be negative")
        self._translator = chunk_translator
        self._pool = pool
        self.chunk_size = chunk_size
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._sleep = sleep
        self._logger = logger_obj or logger

    @property
    def pool(self) -> TranslationWorkerPool:
        return self._pool or get_shared_pool()

    def translate_chunk(self, index: int, chunk: SubtitleChunk) -> ChunkResult:
        """Translate one chunk, retrying on any failure until the budget is spent."""

        max_attempts = self.max_retries + 1
        last_kind = "error"
        last_detail = ""
        for attempt in range(1, max_attempts + 1):
            try:
                raw_text = self._translator(chunk)
                entries = parse_translated_chunk(raw_text, chunk, logger_obj=self._logger)
            except Exception as exc:
                last_kind = getattr(exc, "kind", exc.__class__.__name__)
                last_detail = str(exc) or exc.__class__.__name__
                self._logger.warning(
                    "Chunk %s attempt %s/%s failed: %s",
                    index,
                    attempt,
                    max_attempts,
                    last_detail,
                    extra={"event": "translation.chunk.attempt_failed", "kind": last_kind},
                )
            else:
                observability.record_metric(
                    "translation.chunk.attempts", float(attempt), {"chunk": index}
                )
                return ChunkOk(index=index, entries=entries, attempts=attempt)
            if attempt < max_attempts and self.retry_delay > 0:
                self._sleep(self.retry_delay)

        return ChunkErr(
            index=index,
            kind=last_kind,
            detail=(
                f"chunk {index} failed after {max_attempts - 1} retries "
                f"(attempts={max_attempts}; last error: {last_detail})"
            ),
            attempts=max_attempts,
        )

    def translate_entries(self, entries: Sequence[SubtitleEntry]) -> List[SubtitleEntry]:
        """Translate ``entries`` and return them in their original order.

        Raises :class:`TranslationChunkError` when any chunk exhausts its
        retries; no partial result is returned.
        """

        chunks = chunk_entries(entries, self.chunk_size)
        if not chunks:
            return []
        pool = self.pool
        futures = [pool.submit(self.translate_chunk, index, chunk) for index, chunk in enumerate(chunks)]
        self._logger.info(
            "Submitted %s chunk(s) for %s entries",
            len(futures),
            len(entries),
            extra={"event": "translation.chunks.submitted"},
        )

        translated: List[SubtitleEntry] = []
        for position, future in enumerate(futures):
            result = future.result()
            if isinstance(result, ChunkErr):
                for pending in futures[position + 1 :]:
                    pending.cancel()
                self._logger.error(
                    "Chunk %s failed after %s attempt(s)",
                    result.index,
                    result.attempts,
                    extra={"event": "translation.chunk.failed", "kind": result.kind},
                )
                raise TranslationChunkError(
                    result.detail, chunk_index=result.index, cause_kind=result.kind
                )
            translated.extend(result.entries)
        return translated

    def translate_file(
        self,
        source_path: Path,
        output_dir: Path,
        *,
        output_filename: Optional[str] = None,
    ) -> TranslationOutcome:
        """Translate the SRT at ``source_path`` into ``output_dir``.

        The file is written only after every translated entry passed format
        validation.
        """

        source = Path(source_path)
        entries = load_subtitle_entries(source, logger_obj=self._logger)
        if not entries:
            raise SubtitleValidationError(f"Subtitle file {source.name} contains no entries")

        translated = self.translate_entries(entries)
        validate_entries(translated)

        target = Path(output_dir) / (output_filename or translated_filename(source.name))
        write_srt(target, translated)
        characters = count_characters(translated)
        self._logger.info(
            "Wrote %s translated entries to %s",
            len(translated),
            target,
            extra={"event": "translation.file.written", "characters": characters},
        )
        return TranslationOutcome(output_path=target, entries=translated, character_count=characters)


__all__ = [
    "ChunkErr",
    "ChunkOk",
    "ChunkResult",
    "ChunkedTranslationEngine",
    "TranslationOutcome",
    "make_llm_chunk_translator",
    "parse_translated_chunk",
    "translated_filename",
]
