"""In-memory representations of subtitle tasks and users."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional

from subtitle_translator.errors import TaskTransitionError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TaskStatus(str, Enum):
    """Enumeration of possible task states."""

    PENDING_UPLOAD = "PENDING_UPLOAD"
    UPLOADED = "UPLOADED"
    AUDIO_EXTRACTING = "AUDIO_EXTRACTING"
    AUDIO_EXTRACTED = "AUDIO_EXTRACTED"
    TRANSCRIBING = "TRANSCRIBING"
    TRANSCRIBED = "TRANSCRIBED"
    TRANSLATING = "TRANSLATING"
    TRANSLATED = "TRANSLATED"
    SUBTITLE_BURNING = "SUBTITLE_BURNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES: FrozenSet[TaskStatus] = frozenset(
    {TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED}
)

_FORWARD_TRANSITIONS: Dict[TaskStatus, TaskStatus] = {
    TaskStatus.PENDING_UPLOAD: TaskStatus.UPLOADED,
    TaskStatus.UPLOADED: TaskStatus.AUDIO_EXTRACTING,
    TaskStatus.AUDIO_EXTRACTING: TaskStatus.AUDIO_EXTRACTED,
    TaskStatus.AUDIO_EXTRACTED: TaskStatus.TRANSCRIBING,
    TaskStatus.TRANSCRIBING: TaskStatus.TRANSCRIBED,
    TaskStatus.TRANSCRIBED: TaskStatus.TRANSLATING,
    TaskStatus.TRANSLATING: TaskStatus.TRANSLATED,
    TaskStatus.TRANSLATED: TaskStatus.SUBTITLE_BURNING,
    TaskStatus.SUBTITLE_BURNING: TaskStatus.COMPLETED,
}


def can_transition(current: TaskStatus, target: TaskStatus) -> bool:
    if current.is_terminal:
        return False
    if target in (TaskStatus.FAILED, TaskStatus.CANCELLED):
        return True
    return _FORWARD_TRANSITIONS.get(current) is target


@dataclass
class Task:
    """State of one video processing request."""

    task_id: str
    user_id: str
    status: TaskStatus = TaskStatus.PENDING_UPLOAD
    original_video_filename: Optional[str] = None
    video_file_path: Optional[str] = None
    burn_subtitles: bool = False
    target_language: Optional[str] = None
    extracted_audio_filename: Optional[str] = None
    extracted_audio_file_path: Optional[str] = None
    original_srt_filename: Optional[str] = None
    original_srt_file_path: Optional[str] = None
    translated_srt_filename: Optional[str] = None
    translated_srt_file_path: Optional[str] = None
    subtitled_video_filename: Optional[str] = None
    subtitled_video_file_path: Optional[str] = None
    summary: Optional[str] = None
    translated_characters: Optional[int] = None
    charged_amount: Optional[Decimal] = None
    error_message: Optional[str] = None
    detected_language: Optional[str] = None
    language_probability: Optional[float] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def is_finished(self) -> bool:
        """Whether the task will not move any further on its own."""

        if self.status.is_terminal:
            return True
        return self.status is TaskStatus.TRANSLATED and not self.burn_subtitles

    def transition_to(self, status: TaskStatus, *, error_message: Optional[str] = None) -> None:
        """Move the task to ``status``.

        ``error_message`` is kept only for ``FAILED`` and cleared otherwise.
        """

        target = TaskStatus(status)
        if not can_transition(self.status, target):
            raise TaskTransitionError(
                f"Task {self.task_id} cannot move from {self.status.value} to {target.value}"
            )
        if target is TaskStatus.FAILED:
            self.error_message = error_message or "Task failed"
        else:
            self.error_message = None
        self.status = target
        self.touch()

    def apply_updates(self, updates: Mapping[str, Any]) -> None:
        known = {item.name for item in fields(self)}
        for key, value in updates.items():
            if key not in known or key in {"task_id", "status", "created_at"}:
                raise AttributeError(f"Task field {key!r} cannot be updated")
            setattr(self, key, value)
        self.touch()

    def touch(self) -> None:
        self.updated_at = utc_now()

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["status"] = self.status.value
        payload["charged_amount"] = (
            str(self.charged_amount) if self.charged_amount is not None else None
        )
        payload["created_at"] = self.created_at.isoformat()
        payload["updated_at"] = self.updated_at.isoformat()
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Task":
        data = dict(payload)
        data["status"] = TaskStatus(data.get("status", TaskStatus.PENDING_UPLOAD))
        if data.get("charged_amount") is not None:
            data["charged_amount"] = Decimal(str(data["charged_amount"]))
        for key in ("created_at", "updated_at"):
            value = data.get(key)
            if isinstance(value, str):
                data[key] = datetime.fromisoformat(value)
            elif value is None:
                data.pop(key, None)
        known = {item.name for item in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})


@dataclass
class User:
    """Account holding the balance that translations are charged against."""

    user_id: str
    username: str
    balance: Decimal = Decimal("0")
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if isinstance(self.balance, float):
            raise TypeError("User balance must be a Decimal, not a float")
        self.balance = Decimal(self.balance)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "username": self.username,
            "balance": str(self.balance),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


__all__ = [
    "TERMINAL_STATUSES",
    "Task",
    "TaskStatus",
    "User",
    "can_transition",
    "utc_now",
]
