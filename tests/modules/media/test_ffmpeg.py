from __future__ import annotations

from pathlib import Path
from typing import Any, List

import pytest

from subtitle_translator.errors import ExternalToolError, InputMissingError
from subtitle_translator.media import CommandExecutionError, CommandResult, FFmpegService
from subtitle_translator.media.ffmpeg import AUDIO_EXTRACT_PRESET, escape_filter_path

pytestmark = pytest.mark.media


class RecordingRunner:
    """Capture commands and create the file named by the last argument."""

    def __init__(self, *, output: str = "", create_output: bool = True, error: Exception | None = None):
        self.calls: List[dict[str, Any]] = []
        self.output = output
        self.create_output = create_output
        self.error = error

    def __call__(self, command, **kwargs) -> CommandResult:
        self.calls.append({"command": list(command), **kwargs})
        if self.error is not None:
            raise self.error
        if self.create_output:
            Path(command[-1]).write_bytes(b"media")
        return CommandResult(command=tuple(command), returncode=0, output=self.output, duration=0.0)


@pytest.fixture
def video(tmp_path: Path) -> Path:
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"\x00" * 16)
    return path


def test_extract_audio_uses_mono_mp3_preset(tmp_path: Path, video: Path):
    runner = RecordingRunner()
    service = FFmpegService(executable="ffmpeg-bin", audio_dir=tmp_path / "audio", command_runner=runner)

    audio = service.extract_audio(video)

    assert audio.parent == tmp_path / "audio"
    assert audio.suffix == ".mp3"
    assert audio.is_file()
    command = runner.calls[0]["command"]
    assert command[:3] == ["ffmpeg-bin", "-i", str(video)]
    assert command[3:-2] == list(AUDIO_EXTRACT_PRESET)
    assert command[-2:] == ["-y", str(audio)]
    assert "timeout" not in runner.calls[0]


def test_extract_audio_names_are_unique(tmp_path: Path, video: Path):
    service = FFmpegService(audio_dir=tmp_path, command_runner=RecordingRunner())

    assert service.extract_audio(video) != service.extract_audio(video)


def test_extract_audio_requires_existing_video(tmp_path: Path):
    runner = RecordingRunner()
    service = FFmpegService(audio_dir=tmp_path, command_runner=runner)

    with pytest.raises(InputMissingError):
        service.extract_audio(tmp_path / "missing.mp4")

    assert runner.calls == []


def test_extract_audio_without_output_file_fails(tmp_path: Path, video: Path):
    service = FFmpegService(audio_dir=tmp_path, command_runner=RecordingRunner(create_output=False))

    with pytest.raises(ExternalToolError):
        service.extract_audio(video)


def test_extract_audio_propagates_command_failure(tmp_path: Path, video: Path):
    error = CommandExecutionError(["ffmpeg"], returncode=1, output="Invalid data")
    service = FFmpegService(audio_dir=tmp_path, command_runner=RecordingRunner(error=error))

    with pytest.raises(ExternalToolError) as excinfo:
        service.extract_audio(video)

    assert excinfo.value is error


def test_probe_duration_parses_first_number(tmp_path: Path):
    runner = RecordingRunner(output="N/A\n125.480000\n", create_output=False)
    service = FFmpegService(probe_executable="ffprobe-bin", command_runner=runner)

    assert service.probe_duration(tmp_path / "a.mp3") == pytest.approx(125.48)
    assert runner.calls[0]["command"][0] == "ffprobe-bin"


def test_probe_duration_returns_none_on_failure(tmp_path: Path):
    runner = RecordingRunner(error=CommandExecutionError(["ffprobe"], returncode=1))
    service = FFmpegService(command_runner=runner)

    assert service.probe_duration(tmp_path / "a.mp3") is None


def test_burn_subtitles_builds_filter_command(tmp_path: Path, video: Path):
    subtitles = tmp_path / "translated_clip.srt"
    subtitles.write_text("1\n00:00:01,000 --> 00:00:02,000\nHi\n", encoding="utf-8")
    runner = RecordingRunner()
    service = FFmpegService(
        video_codec="h264_nvenc", hwaccel="cuda", burn_timeout_seconds=90, command_runner=runner
    )

    output = service.burn_subtitles(video, subtitles, tmp_path / "out" / "subtitled_clip.mp4")

    assert output.is_file()
    call = runner.calls[0]
    command = call["command"]
    assert command[:3] == ["ffmpeg", "-hwaccel", "cuda"]
    assert command[command.index("-vf") + 1] == (
        f"subtitles=filename='{escape_filter_path(subtitles.resolve())}'"
    )
    assert command[command.index("-c:v") + 1] == "h264_nvenc"
    assert command[command.index("-c:a") + 1] == "copy"
    assert call["timeout"] == 90


def test_burn_subtitles_requires_subtitle_file(tmp_path: Path, video: Path):
    service = FFmpegService(command_runner=RecordingRunner())

    with pytest.raises(InputMissingError):
        service.burn_subtitles(video, tmp_path / "missing.srt", tmp_path / "out.mp4")


def test_escape_filter_path_quotes_special_characters():
    assert escape_filter_path(Path("/media/it's:here.srt")) == "/media/it\\'s\\:here.srt"
