"""Service layer: the task pipeline, its dispatcher and auxiliary LLM services."""

from .dispatcher import TaskDispatcher
from .pipeline import PipelineStage, TaskPipeline, build_pipeline
from .summary import SummaryService
from .task_service import TaskService
from .text_translation import TextTranslationService

__all__ = [
    "PipelineStage",
    "SummaryService",
    "TaskDispatcher",
    "TaskPipeline",
    "TaskService",
    "TextTranslationService",
    "build_pipeline",
]
