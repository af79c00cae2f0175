"""FFmpeg-backed audio extraction, duration probing and subtitle burn-in."""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Callable, Optional, Sequence

from subtitle_translator import logging_manager as log_mgr
from subtitle_translator.errors import (
    CommandExecutionError,
    ExternalToolError,
    InputMissingError,
)

from .command_runner import CommandResult, run_command

logger = log_mgr.get_logger().getChild("media.ffmpeg")

AUDIO_EXTRACT_PRESET: Sequence[str] = ("-vn", "-acodec", "libmp3lame", "-ac", "1", "-ab", "192k")
DURATION_PROBE_ARGS: Sequence[str] = (
    "-v",
    "error",
    "-show_entries",
    "format=duration",
    "-of",
    "default=noprint_wrappers=1:nokey=1",
)
DEFAULT_BURN_TIMEOUT_SECONDS = 30 * 60

CommandRunner = Callable[..., CommandResult]


def escape_filter_path(path: Path) -> str:
    """Quote ``path`` for use inside an ffmpeg filter argument."""

    value = path.as_posix()
    return value.replace("\\", "\\\\").replace(":", "\\:").replace("'", "\\'")


def _ensure_directory(directory: Path) -> None:
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ExternalToolError(f"Unable to create output directory {directory}: {exc}") from exc


class FFmpegService:
    """Run ffmpeg/ffprobe for the media stages of the pipeline."""

    def __init__(
        self,
        *,
        executable: str = "ffmpeg",
        probe_executable: str = "ffprobe",
        audio_dir: Optional[Path] = None,
        video_codec: str = "libx264",
        hwaccel: Optional[str] = None,
        burn_timeout_seconds: float = DEFAULT_BURN_TIMEOUT_SECONDS,
        command_runner: CommandRunner = run_command,
        logger_obj: Optional[logging.Logger] = None,
    ) -> None:
        self._executable = executable
        self._probe_executable = probe_executable
        self._audio_dir = Path(audio_dir) if audio_dir else Path.cwd()
        self._video_codec = video_codec
        self._hwaccel = hwaccel
        self._burn_timeout = burn_timeout_seconds
        self._run_external = command_runner
        self._logger = logger_obj or logger

    def extract_audio(self, video_path: Path, output_path: Optional[Path] = None) -> Path:
        """Extract a mono MP3 track from ``video_path``.

        The default destination is a UUID-named ``.mp3`` inside the configured
        audio directory. No timeout is applied.
        """

        source = Path(video_path)
        if not source.is_file():
            raise InputMissingError(f"Video file not found: {source}")
        target = Path(output_path) if output_path else self._audio_dir / f"{uuid.uuid4()}.mp3"
        _ensure_directory(target.parent)

        command = [self._executable, "-i", str(source), *AUDIO_EXTRACT_PRESET, "-y", str(target)]
        self._logger.info(
            "Extracting audio from %s",
            source.name,
            extra={"event": "media.ffmpeg.extract.start", "output": str(target)},
        )
        self._run_external(command, logger_obj=self._logger)
        if not target.is_file():
            raise ExternalToolError(f"ffmpeg reported success but produced no audio at {target}")
        return target

    def probe_duration(self, media_path: Path) -> Optional[float]:
        """Return the duration of ``media_path`` in seconds, or ``None`` if unknown."""

        command = [self._probe_executable, *DURATION_PROBE_ARGS, str(media_path)]
        try:
            result = self._run_external(command, logger_obj=self._logger)
        except CommandExecutionError as exc:
            self._logger.warning(
                "Unable to probe media duration: %s",
                exc,
                extra={"event": "media.ffprobe.failed", "path": str(media_path)},
            )
            return None
        for line in result.output.splitlines():
            try:
                duration = float(line.strip())
            except ValueError:
                continue
            if duration >= 0:
                return duration
        return None

    def burn_subtitles(self, video_path: Path, subtitle_path: Path, output_path: Path) -> Path:
        """Render ``subtitle_path`` onto ``video_path`` and write ``output_path``."""

        video = Path(video_path)
        subtitles = Path(subtitle_path)
        for required in (video, subtitles):
            if not required.is_file():
                raise InputMissingError(f"Burn-in input not found: {required}")
        target = Path(output_path)
        _ensure_directory(target.parent)

        command = [self._executable]
        if self._hwaccel:
            command.extend(["-hwaccel", self._hwaccel])
        command.extend(
            [
                "-i",
                str(video),
                "-vf",
                f"subtitles=filename='{escape_filter_path(subtitles.resolve())}'",
                "-c:v",
                self._video_codec,
                "-c:a",
                "copy",
                "-y",
                str(target),
            ]
        )
        self._logger.info(
            "Burning subtitles into %s",
            video.name,
            extra={"event": "media.ffmpeg.burn.start", "output": str(target)},
        )
        self._run_external(command, timeout=self._burn_timeout, logger_obj=self._logger)
        if not target.is_file():
            raise ExternalToolError(f"ffmpeg reported success but produced no video at {target}")
        return target


__all__ = ["AUDIO_EXTRACT_PRESET", "FFmpegService", "escape_filter_path"]
