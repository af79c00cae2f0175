"""Entry points for creating, inspecting and cancelling subtitle tasks."""

from __future__ import annotations

import logging
import shutil
import uuid
from decimal import Decimal
from pathlib import Path
from typing import List, Optional

from subtitle_translator import logging_manager as log_mgr
from subtitle_translator.config_manager import SubtitleTranslatorSettings
from subtitle_translator.errors import (
    InputMissingError,
    InsufficientFundsError,
    NotFoundError,
    TaskTransitionError,
)
from subtitle_translator.tasks.models import Task, TaskStatus, User
from subtitle_translator.tasks.stores import TaskStore, UserStore

from .dispatcher import TaskDispatcher

logger = log_mgr.get_logger().getChild("services.tasks")


class TaskService:
    """Coordinate task records, uploaded files and the dispatcher."""

    def __init__(
        self,
        *,
        task_store: TaskStore,
        user_store: UserStore,
        settings: SubtitleTranslatorSettings,
        dispatcher: Optional[TaskDispatcher] = None,
        logger_obj: Optional[logging.Logger] = None,
    ) -> None:
        self._tasks = task_store
        self._users = user_store
        self._settings = settings
        self._dispatcher = dispatcher
        self._logger = logger_obj or logger

    @property
    def dispatcher(self) -> Optional[TaskDispatcher]:
        return self._dispatcher

    def create_user(self, username: str, *, balance: Decimal = Decimal("0")) -> User:
        if not username or not username.strip():
            raise ValueError("username must not be empty")
        user = User(user_id=uuid.uuid4().hex, username=username.strip(), balance=Decimal(balance))
        self._users.insert(user)
        self._logger.info(
            "Created user %s", user.username, extra={"event": "users.created", "user_id": user.user_id}
        )
        return user

    def store_upload(self, video_path: Path) -> Path:
        """Copy ``video_path`` into the upload directory under a unique name."""

        source = Path(video_path)
        if not source.is_file():
            raise InputMissingError(f"Video file not found: {source}")
        if source.stat().st_size == 0:
            raise ValueError(f"Cannot store empty file: {source.name}")
        upload_dir = self._settings.resolve_path("upload_dir")
        upload_dir.mkdir(parents=True, exist_ok=True)
        target = upload_dir / f"{uuid.uuid4()}{source.suffix}"
        shutil.copy2(source, target)
        return target

    def create_task(
        self,
        user_id: str,
        video_path: Path,
        *,
        burn_subtitles: bool = False,
        target_language: Optional[str] = None,
        dispatch: bool = True,
    ) -> Task:
        """Register an uploaded video for ``user_id`` and queue it for processing.

        The user must exist and hold at least the configured minimum balance.
        """

        user = self._users.find_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        minimum = self._settings.min_upload_balance
        if user.balance < minimum:
            raise InsufficientFundsError(
                f"A balance of at least {minimum} is required to upload; current balance is {user.balance}"
            )

        stored = self.store_upload(video_path)
        task = Task(
            task_id=uuid.uuid4().hex,
            user_id=user_id,
            original_video_filename=Path(video_path).name,
            video_file_path=str(stored),
            burn_subtitles=burn_subtitles,
            target_language=target_language or self._settings.target_language,
        )
        task.transition_to(TaskStatus.UPLOADED)
        self._tasks.insert(task)
        self._logger.info(
            "Created task",
            extra={"event": "tasks.created", "task_id": task.task_id, "user_id": user_id},
        )
        if dispatch and self._dispatcher is not None:
            self._dispatcher.dispatch(task.task_id)
        return task

    def get_task(self, task_id: str, *, user_id: Optional[str] = None) -> Task:
        """Return ``task_id``; with ``user_id`` set, only that user's task is visible."""

        task = self._tasks.find_by_id(task_id)
        if task is None or (user_id is not None and task.user_id != user_id):
            raise NotFoundError(f"Task {task_id} not found")
        return task

    def list_tasks(self, user_id: str) -> List[Task]:
        return self._tasks.find_by_user_id(user_id)

    def cancel_task(self, task_id: str, *, user_id: Optional[str] = None) -> Task:
        task = self.get_task(task_id, user_id=user_id)
        if task.is_finished:
            raise TaskTransitionError(
                f"Task {task_id} is already {task.status.value} and cannot be cancelled"
            )
        if self._dispatcher is not None and self._dispatcher.cancel(task_id):
            return self.get_task(task_id)
        task.transition_to(TaskStatus.CANCELLED)
        self._tasks.update(task)
        return task

    def translated_subtitle_path(self, task_id: str, *, user_id: Optional[str] = None) -> Path:
        """Return the translated SRT of a task once it exists on disk."""

        task = self.get_task(task_id, user_id=user_id)
        if not task.translated_srt_file_path:
            raise NotFoundError(f"Task {task_id} has no translated subtitles yet")
        path = Path(task.translated_srt_file_path)
        if not path.is_file():
            raise InputMissingError(f"Translated subtitles missing on disk: {path}")
        return path


__all__ = ["TaskService"]
