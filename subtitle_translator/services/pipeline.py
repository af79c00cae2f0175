"""Stage-by-stage processing of one subtitle task.

Each stage persists its running status, runs its action and then persists
either the done status with the action's outputs, or ``FAILED`` with a
readable message. The first failure stops the remaining stages.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

from subtitle_translator import logging_manager as log_mgr
from subtitle_translator import observability
from subtitle_translator.billing import BillingService, compute_cost
from subtitle_translator.config_manager import SubtitleTranslatorSettings
from subtitle_translator.errors import (
    InputMissingError,
    InsufficientFundsError,
    NotFoundError,
    StageFailedError,
    TaskTransitionError,
)
from subtitle_translator.llm_client import LLMClient, create_client
from subtitle_translator.media import FFmpegService, WhisperTranscriber
from subtitle_translator.tasks.models import Task, TaskStatus
from subtitle_translator.tasks.stores import TaskStore, UserStore
from subtitle_translator.translation_engine import (
    ChunkedTranslationEngine,
    make_llm_chunk_translator,
)

from .summary import SummaryService

logger = log_mgr.get_logger().getChild("pipeline")

StageAction = Callable[[Task], Mapping[str, Any]]
EngineFactory = Callable[[str], ChunkedTranslationEngine]
CancelCheck = Callable[[str], bool]

SUBTITLED_FILENAME_PREFIX = "subtitled_"


@dataclass(frozen=True)
class PipelineStage:
    """One step of the pipeline and the statuses that bracket it."""

    name: str
    running_status: TaskStatus
    done_status: TaskStatus
    action: StageAction


def _require_path(value: Optional[str], label: str) -> Path:
    if not value:
        raise InputMissingError(f"Task has no {label}")
    return Path(value)


class TaskPipeline:
    """Drive a task from ``UPLOADED`` through extraction, transcription and translation."""

    def __init__(
        self,
        *,
        task_store: TaskStore,
        user_store: UserStore,
        ffmpeg: FFmpegService,
        transcriber: WhisperTranscriber,
        engine_factory: EngineFactory,
        settings: SubtitleTranslatorSettings,
        billing: Optional[BillingService] = None,
        summary_service: Optional[SummaryService] = None,
        logger_obj: Optional[logging.Logger] = None,
    ) -> None:
        self._tasks = task_store
        self._users = user_store
        self._ffmpeg = ffmpeg
        self._transcriber = transcriber
        self._engine_factory = engine_factory
        self._settings = settings
        self._billing = billing or BillingService(user_store)
        self._summary = summary_service
        self._logger = logger_obj or logger

    @property
    def task_store(self) -> TaskStore:
        return self._tasks

    # ------------------------------------------------------------------
    # Stage execution
    # ------------------------------------------------------------------
    def run_stage(self, task: Task, stage: PipelineStage) -> Task:
        """Run ``stage`` for ``task`` and persist the outcome.

        Any error, including one raised while saving a status, marks the task
        ``FAILED`` and surfaces as :class:`StageFailedError`.
        """

        with observability.timed_stage(stage.name, task_id=task.task_id):
            try:
                task.transition_to(stage.running_status)
                self._tasks.update(task)
                updates = dict(stage.action(task) or {})
                task.apply_updates(updates)
                task.transition_to(stage.done_status)
                self._tasks.update(task)
            except Exception as exc:
                message = f"{stage.name} failed: {exc}"
                self._logger.error(
                    "Stage %s failed for task %s",
                    stage.name,
                    task.task_id,
                    exc_info=True,
                    extra={"event": "pipeline.stage.failed", "kind": getattr(exc, "kind", None)},
                )
                self._mark_failed(task, message)
                raise StageFailedError(stage.name, message) from exc
        return task

    def _mark_failed(self, task: Task, message: str) -> None:
        """Persist ``FAILED`` on the stored record; a store error here is only logged."""

        try:
            stored = self._tasks.find_by_id(task.task_id) or task
            if not stored.status.is_terminal:
                stored.transition_to(TaskStatus.FAILED, error_message=message)
                self._tasks.update(stored)
        except Exception:
            self._logger.exception(
                "Could not record failure for task %s",
                task.task_id,
                extra={"event": "pipeline.task.failure_not_saved"},
            )
        if not task.status.is_terminal:
            task.transition_to(TaskStatus.FAILED, error_message=message)

    def stages_for(self, task: Task) -> List[PipelineStage]:
        stages = [
            PipelineStage(
                "audio_extraction",
                TaskStatus.AUDIO_EXTRACTING,
                TaskStatus.AUDIO_EXTRACTED,
                self._extract_audio,
            ),
            PipelineStage(
                "transcription",
                TaskStatus.TRANSCRIBING,
                TaskStatus.TRANSCRIBED,
                self._transcribe,
            ),
            PipelineStage(
                "translation",
                TaskStatus.TRANSLATING,
                TaskStatus.TRANSLATED,
                self._translate,
            ),
        ]
        if task.burn_subtitles:
            stages.append(
                PipelineStage(
                    "subtitle_burn_in",
                    TaskStatus.SUBTITLE_BURNING,
                    TaskStatus.COMPLETED,
                    self._burn_subtitles,
                )
            )
        return stages

    def process(self, task_id: str, *, should_cancel: Optional[CancelCheck] = None) -> Task:
        """Run every stage for ``task_id`` and return the final task record."""

        task = self._tasks.find_by_id(task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")
        if task.status is not TaskStatus.UPLOADED:
            raise TaskTransitionError(
                f"Task {task_id} is {task.status.value}; only UPLOADED tasks can be processed"
            )

        with log_mgr.log_context(task_id=task.task_id, user_id=task.user_id):
            self._logger.info("Processing task", extra={"event": "pipeline.task.start"})
            for stage in self.stages_for(task):
                if should_cancel is not None and should_cancel(task.task_id):
                    return self._cancel(task)
                self.run_stage(task, stage)
                if stage.done_status is TaskStatus.TRANSCRIBED:
                    if should_cancel is not None and should_cancel(task.task_id):
                        return self._cancel(task)
                    self._run_summary(task)
            self._logger.info(
                "Task finished with status %s",
                task.status.value,
                extra={"event": "pipeline.task.complete", "status": task.status.value},
            )
        return task

    def _cancel(self, task: Task) -> Task:
        task.transition_to(TaskStatus.CANCELLED)
        self._tasks.update(task)
        self._logger.info("Task cancelled", extra={"event": "pipeline.task.cancelled"})
        return task

    # ------------------------------------------------------------------
    # Stage actions
    # ------------------------------------------------------------------
    def _extract_audio(self, task: Task) -> Dict[str, Any]:
        video = _require_path(task.video_file_path, "video file")
        audio = self._ffmpeg.extract_audio(video)
        return {
            "extracted_audio_filename": audio.name,
            "extracted_audio_file_path": str(audio),
        }

    def _transcribe(self, task: Task) -> Dict[str, Any]:
        audio = _require_path(task.extracted_audio_file_path, "extracted audio")
        duration = (
            self._ffmpeg.probe_duration(audio) if self._settings.measure_audio_duration else None
        )
        result = self._transcriber.transcribe(audio, duration_seconds=duration)
        return {
            "original_srt_filename": result.subtitle_filename,
            "original_srt_file_path": str(result.subtitle_path),
            "detected_language": result.detected_language,
            "language_probability": result.language_probability,
        }

    def _run_summary(self, task: Task) -> None:
        if self._summary is None or not self._settings.summary_enabled:
            return
        with observability.timed_stage("summary", task_id=task.task_id):
            try:
                summary = self._summary.summarize(
                    _require_path(task.original_srt_file_path, "transcribed subtitles")
                )
            except Exception as exc:
                self._logger.warning(
                    "Summary generation failed: %s",
                    exc,
                    extra={"event": "pipeline.summary.failed"},
                )
                return
            task.apply_updates({"summary": summary})
            self._tasks.update(task)

    def _translate(self, task: Task) -> Dict[str, Any]:
        source = _require_path(task.original_srt_file_path, "transcribed subtitles")
        language = task.target_language or self._settings.target_language
        engine = self._engine_factory(language)
        outcome = engine.translate_file(source, self._settings.resolve_path("translated_srt_dir"))

        cost = compute_cost(outcome.character_count, self._settings.unit_price_per_100_chars)
        if cost > 0:
            try:
                self._billing.debit(task.user_id, cost)
            except (InsufficientFundsError, NotFoundError):
                self._logger.warning(
                    "Billing failed; translated subtitles remain at %s",
                    outcome.output_path,
                    extra={"event": "pipeline.billing.failed", "amount": str(cost)},
                )
                raise
        return {
            "translated_srt_filename": outcome.output_path.name,
            "translated_srt_file_path": str(outcome.output_path),
            "translated_characters": outcome.character_count,
            "charged_amount": cost,
        }

    def _burn_subtitles(self, task: Task) -> Dict[str, Any]:
        video = _require_path(task.video_file_path, "video file")
        subtitles = _require_path(task.translated_srt_file_path, "translated subtitles")
        output = self._settings.resolve_path("subtitled_video_dir") / (
            f"{SUBTITLED_FILENAME_PREFIX}{video.stem}.mp4"
        )
        rendered = self._ffmpeg.burn_subtitles(video, subtitles, output)
        return {
            "subtitled_video_filename": rendered.name,
            "subtitled_video_file_path": str(rendered),
        }


def build_pipeline(
    settings: SubtitleTranslatorSettings,
    *,
    task_store: TaskStore,
    user_store: UserStore,
    client: Optional[LLMClient] = None,
) -> TaskPipeline:
    """Wire a :class:`TaskPipeline` with collaborators derived from ``settings``."""

    llm = client or create_client(settings)
    ffmpeg = FFmpegService(
        executable=settings.ffmpeg_path,
        probe_executable=settings.ffprobe_path,
        audio_dir=settings.resolve_path("temp_audio_dir"),
        video_codec=settings.burn_video_codec,
        hwaccel=settings.burn_hwaccel,
        burn_timeout_seconds=settings.burn_timeout_seconds,
    )
    transcriber = WhisperTranscriber(
        executable=settings.whisper_executable,
        output_dir=settings.resolve_path("whisper_output_dir"),
        model=settings.whisper_model,
        device=settings.whisper_device,
        vad_filter=settings.whisper_vad_filter,
        timeout_multiplier=settings.whisper_timeout_multiplier,
        timeout_base_seconds=settings.whisper_timeout_base_seconds,
    )

    def _engine_factory(target_language: str) -> ChunkedTranslationEngine:
        return ChunkedTranslationEngine(
            make_llm_chunk_translator(llm, target_language),
            chunk_size=settings.translation_chunk_size,
            max_retries=settings.translation_max_retries,
            retry_delay=settings.translation_retry_delay_seconds,
        )

    summary = (
        SummaryService(llm, language=settings.target_language)
        if settings.summary_enabled
        else None
    )
    return TaskPipeline(
        task_store=task_store,
        user_store=user_store,
        ffmpeg=ffmpeg,
        transcriber=transcriber,
        engine_factory=_engine_factory,
        settings=settings,
        summary_service=summary,
    )


__all__ = ["PipelineStage", "TaskPipeline", "build_pipeline"]
