from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest

from subtitle_translator.errors import (
    InputMissingError,
    InsufficientFundsError,
    NotFoundError,
    TaskTransitionError,
)
from subtitle_translator.services import TaskDispatcher, TaskService
from subtitle_translator.tasks import InMemoryTaskStore, InMemoryUserStore, TaskStatus
from tests.helpers.pipeline import PipelineHarness

pytestmark = pytest.mark.services


@pytest.fixture
def video(tmp_path: Path) -> Path:
    path = tmp_path / "incoming" / "holiday.mkv"
    path.parent.mkdir()
    path.write_bytes(b"\x1a\x45\xdf\xa3" * 8)
    return path


@pytest.fixture
def service(settings) -> TaskService:
    return TaskService(
        task_store=InMemoryTaskStore(), user_store=InMemoryUserStore(), settings=settings
    )


def test_create_user_strips_name(service):
    user = service.create_user("  alice ", balance=Decimal("12.50"))

    assert user.username == "alice"
    assert user.balance == Decimal("12.50")
    assert len(user.user_id) == 32


def test_create_user_rejects_blank_name(service):
    with pytest.raises(ValueError):
        service.create_user("   ")


def test_create_task_stores_upload_and_marks_uploaded(service, settings, video):
    user = service.create_user("alice", balance=Decimal("10"))

    task = service.create_task(user.user_id, video, burn_subtitles=True)

    assert task.status is TaskStatus.UPLOADED
    assert task.original_video_filename == "holiday.mkv"
    assert task.burn_subtitles is True
    assert task.target_language == settings.target_language
    stored_video = Path(task.video_file_path)
    assert stored_video.parent == settings.resolve_path("upload_dir")
    assert stored_video.suffix == ".mkv"
    assert stored_video.read_bytes() == video.read_bytes()
    assert service.get_task(task.task_id) == task


def test_create_task_requires_minimum_balance(service, video):
    user = service.create_user("bob", balance=Decimal("9.99"))

    with pytest.raises(InsufficientFundsError):
        service.create_task(user.user_id, video)

    assert service.list_tasks(user.user_id) == []


def test_create_task_for_unknown_user(service, video):
    with pytest.raises(NotFoundError):
        service.create_task("ghost", video)


def test_store_upload_rejects_missing_and_empty_files(service, tmp_path):
    empty = tmp_path / "empty.mp4"
    empty.write_bytes(b"")

    with pytest.raises(InputMissingError):
        service.store_upload(tmp_path / "absent.mp4")
    with pytest.raises(ValueError):
        service.store_upload(empty)


def test_get_task_is_scoped_to_owner(service, video):
    owner = service.create_user("alice", balance=Decimal("20"))
    other = service.create_user("eve", balance=Decimal("20"))
    task = service.create_task(owner.user_id, video, target_language="French")

    assert service.get_task(task.task_id, user_id=owner.user_id).target_language == "French"
    with pytest.raises(NotFoundError):
        service.get_task(task.task_id, user_id=other.user_id)
    assert service.list_tasks(other.user_id) == []


def test_cancel_task_without_dispatcher(service, video):
    user = service.create_user("alice", balance=Decimal("20"))
    task = service.create_task(user.user_id, video)

    cancelled = service.cancel_task(task.task_id)

    assert cancelled.status is TaskStatus.CANCELLED
    assert service.get_task(task.task_id).status is TaskStatus.CANCELLED
    with pytest.raises(TaskTransitionError):
        service.cancel_task(task.task_id)


def test_translated_subtitle_path_requires_translation(service, video):
    user = service.create_user("alice", balance=Decimal("20"))
    task = service.create_task(user.user_id, video)

    with pytest.raises(NotFoundError):
        service.translated_subtitle_path(task.task_id)


def test_create_task_dispatches_to_pipeline(settings, video):
    harness = PipelineHarness(settings)
    dispatcher = TaskDispatcher(harness.pipeline, max_workers=1)
    service = TaskService(
        task_store=harness.tasks,
        user_store=harness.users,
        settings=settings,
        dispatcher=dispatcher,
    )
    try:
        task = service.create_task(harness.user.user_id, video)
        final = dispatcher.wait(task.task_id, timeout=10)
    finally:
        dispatcher.shutdown()

    assert final.status is TaskStatus.TRANSLATED
    path = service.translated_subtitle_path(task.task_id, user_id=harness.user.user_id)
    assert path.read_text(encoding="utf-8").startswith("1\n")
    with pytest.raises(TaskTransitionError):
        service.cancel_task(task.task_id)
