"""Adapters for the external media tools used by the pipeline."""

from subtitle_translator.errors import CommandExecutionError

from .command_runner import CommandResult, run_command
from .ffmpeg import FFmpegService
from .whisper import TranscriptionResult, WhisperTranscriber

__all__ = [
    "CommandExecutionError",
    "CommandResult",
    "FFmpegService",
    "TranscriptionResult",
    "WhisperTranscriber",
    "run_command",
]
