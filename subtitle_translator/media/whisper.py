"""Wrapper around the faster-whisper command line transcriber."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from subtitle_translator import logging_manager as log_mgr
from subtitle_translator.errors import ExternalToolError, InputMissingError

from .command_runner import CommandResult, run_command

logger = log_mgr.get_logger().getChild("media.whisper")

DETECTED_LANGUAGE_PATTERN = re.compile(
    r"Detected language[:\s]+'?(?P<language>[\w-]+)'?\s+with probability\s+(?P<probability>[\d.]+)",
    re.IGNORECASE,
)

CommandRunner = Callable[..., CommandResult]


@dataclass(slots=True)
class TranscriptionResult:
    """Outcome of a successful transcription run."""

    subtitle_filename: str
    subtitle_path: Path
    detected_language: Optional[str] = None
    language_probability: Optional[float] = None


def compute_timeout(
    duration_seconds: Optional[float], *, base_seconds: int, multiplier: int
) -> float:
    """Return the transcription timeout for audio of ``duration_seconds``."""

    effective = float(base_seconds)
    if duration_seconds is not None and duration_seconds > effective:
        effective = float(duration_seconds)
    return effective * max(1, multiplier)


def parse_detected_language(output: str) -> tuple[Optional[str], Optional[float]]:
    match = DETECTED_LANGUAGE_PATTERN.search(output or "")
    if not match:
        return None, None
    try:
        probability: Optional[float] = float(match.group("probability").rstrip("."))
    except ValueError:
        probability = None
    return match.group("language"), probability


class WhisperTranscriber:
    """Produce an SRT file for an audio track by invoking the whisper CLI."""

    def __init__(
        self,
        *,
        executable: str,
        output_dir: Path,
        model: str = "large-v2",
        device: str = "cuda",
        vad_filter: bool = True,
        timeout_multiplier: int = 10,
        timeout_base_seconds: int = 60,
        command_runner: CommandRunner = run_command,
        logger_obj: Optional[logging.Logger] = None,
    ) -> None:
        self._executable = executable
        self._output_dir = Path(output_dir)
        self._model = model
        self._device = device
        self._vad_filter = vad_filter
        self._timeout_multiplier = timeout_multiplier
        self._timeout_base_seconds = timeout_base_seconds
        self._run_external = command_runner
        self._logger = logger_obj or logger

    def build_command(self, audio_path: Path) -> List[str]:
        return [
            self._executable,
            "--model",
            self._model,
            "--device",
            self._device,
            "--output_dir",
            str(self._output_dir),
            "--output_format",
            "srt",
            "--vad_filter",
            "true" if self._vad_filter else "false",
            str(audio_path),
        ]

    def transcribe(
        self, audio_path: Path, duration_seconds: Optional[float] = None
    ) -> TranscriptionResult:
        """Transcribe ``audio_path`` into ``<output_dir>/<stem>.srt``.

        Raises :class:`InputMissingError` for a missing input and
        :class:`ExternalToolError` when the process fails, times out or leaves
        no usable subtitle file behind.
        """

        audio = Path(audio_path)
        if not audio.is_file():
            raise InputMissingError(f"Audio file not found: {audio}")
        try:
            self._output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ExternalToolError(
                f"Unable to create transcription output directory {self._output_dir}: {exc}"
            ) from exc

        timeout = compute_timeout(
            duration_seconds,
            base_seconds=self._timeout_base_seconds,
            multiplier=self._timeout_multiplier,
        )
        self._logger.info(
            "Transcribing %s (timeout %.0fs)",
            audio.name,
            timeout,
            extra={"event": "media.whisper.start", "duration_seconds": duration_seconds},
        )
        result = self._run_external(
            self.build_command(audio), timeout=timeout, logger_obj=self._logger
        )

        subtitle_filename = f"{audio.stem}.srt"
        subtitle_path = self._output_dir / subtitle_filename
        if not subtitle_path.is_file():
            raise ExternalToolError(f"Transcriber produced no subtitle file at {subtitle_path}")
        if subtitle_path.stat().st_size == 0:
            raise ExternalToolError(f"Transcriber produced an empty subtitle file at {subtitle_path}")

        language, probability = parse_detected_language(result.output)
        self._logger.info(
            "Transcription finished for %s",
            audio.name,
            extra={
                "event": "media.whisper.complete",
                "detected_language": language,
                "language_probability": probability,
            },
        )
        return TranscriptionResult(
            subtitle_filename=subtitle_filename,
            subtitle_path=subtitle_path,
            detected_language=language,
            language_probability=probability,
        )


__all__ = ["TranscriptionResult", "WhisperTranscriber", "compute_timeout", "parse_detected_language"]
