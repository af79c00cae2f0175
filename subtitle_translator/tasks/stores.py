"""Persistence backends for task and user records."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import fields, replace
from typing import Any, Callable, ContextManager, Dict, Iterator, List, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from subtitle_translator.database.engine import get_db_session
from subtitle_translator.database.models import TaskModel, UserModel
from subtitle_translator.errors import NotFoundError

from .models import Task, TaskStatus, User, utc_now

SessionScope = Callable[[], ContextManager[Session]]

_TASK_COLUMNS = tuple(item.name for item in fields(Task) if item.name != "status")


class TaskStore(Protocol):
    """Persistence backend for task records."""

    def insert(self, task: Task) -> None:
        ...

    def find_by_id(self, task_id: str) -> Optional[Task]:
        ...

    def update(self, task: Task) -> None:
        ...

    def find_by_user_id(self, user_id: str) -> List[Task]:
        ...


class UserStore(Protocol):
    """Persistence backend for user records and balances."""

    def insert(self, user: User) -> None:
        ...

    def find_by_id(self, user_id: str) -> Optional[User]:
        ...

    def update(self, user: User) -> None:
        ...

    def locked(self, user_id: str) -> ContextManager[Optional[User]]:
        """Yield ``user_id`` under an exclusive lock; persist it on clean exit."""
        ...


class KeyedLocks:
    """Hand out one re-entrant lock per key.

    A key's lock is dropped once no caller holds or waits for it.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, List[Any]] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.setdefault(key, [threading.RLock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]


class InMemoryTaskStore(TaskStore):
    """Simple process-local store used by tests and single-process runs."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._records: Dict[str, Task] = {}

    def insert(self, task: Task) -> None:
        with self._lock:
            if task.task_id in self._records:
                raise ValueError(f"Task {task.task_id} already exists")
            self._records[task.task_id] = replace(task)

    def find_by_id(self, task_id: str) -> Optional[Task]:
        with self._lock:
            record = self._records.get(task_id)
            return replace(record) if record is not None else None

    def update(self, task: Task) -> None:
        with self._lock:
            if task.task_id not in self._records:
                raise NotFoundError(f"Task {task.task_id} not found")
            self._records[task.task_id] = replace(task)

    def find_by_user_id(self, user_id: str) -> List[Task]:
        with self._lock:
            records = [replace(task) for task in self._records.values() if task.user_id == user_id]
        return sorted(records, key=lambda task: task.created_at, reverse=True)


class InMemoryUserStore(UserStore):
    """Process-local user store guarding balance updates with per-user locks."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._records: Dict[str, User] = {}
        self._user_locks = KeyedLocks()

    def insert(self, user: User) -> None:
        with self._lock:
            if user.user_id in self._records:
                raise ValueError(f"User {user.user_id} already exists")
            if any(existing.username == user.username for existing in self._records.values()):
                raise ValueError(f"Username {user.username!r} is already taken")
            self._records[user.user_id] = replace(user)

    def find_by_id(self, user_id: str) -> Optional[User]:
        with self._lock:
            record = self._records.get(user_id)
            return replace(record) if record is not None else None

    def update(self, user: User) -> None:
        with self._lock:
            if user.user_id not in self._records:
                raise NotFoundError(f"User {user.user_id} not found")
            user.updated_at = utc_now()
            self._records[user.user_id] = replace(user)

    @contextmanager
    def locked(self, user_id: str) -> Iterator[Optional[User]]:
        with self._user_locks.hold(user_id):
            user = self.find_by_id(user_id)
            yield user
            if user is not None:
                self.update(user)


def _task_from_row(row: TaskModel) -> Task:
    values = {name: getattr(row, name) for name in _TASK_COLUMNS}
    return Task(status=TaskStatus(row.status), **values)


def _copy_task_to_row(task: Task, row: TaskModel) -> None:
    for name in _TASK_COLUMNS:
        setattr(row, name, getattr(task, name))
    row.status = task.status.value


def _user_from_row(row: UserModel) -> User:
    return User(
        user_id=row.user_id,
        username=row.username,
        balance=row.balance,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlTaskStore(TaskStore):
    """SQLAlchemy-backed implementation of :class:`TaskStore`."""

    def __init__(self, session_scope: SessionScope = get_db_session) -> None:
        self._session_scope = session_scope

    def insert(self, task: Task) -> None:
        with self._session_scope() as session:
            row = TaskModel(task_id=task.task_id)
            _copy_task_to_row(task, row)
            session.add(row)

    def find_by_id(self, task_id: str) -> Optional[Task]:
        with self._session_scope() as session:
            row = session.get(TaskModel, task_id)
            return _task_from_row(row) if row is not None else None

    def update(self, task: Task) -> None:
        with self._session_scope() as session:
            row = session.get(TaskModel, task.task_id)
            if row is None:
                raise NotFoundError(f"Task {task.task_id} not found")
            _copy_task_to_row(task, row)

    def find_by_user_id(self, user_id: str) -> List[Task]:
        with self._session_scope() as session:
            rows = session.scalars(
                select(TaskModel)
                .where(TaskModel.user_id == user_id)
                .order_by(TaskModel.created_at.desc())
            ).all()
            return [_task_from_row(row) for row in rows]


class SqlUserStore(UserStore):
    """SQLAlchemy-backed implementation of :class:`UserStore`.

    ``locked`` reads the row with ``SELECT ... FOR UPDATE`` inside one
    transaction. Backends that ignore row locks (SQLite) are still serialized
    per user within the process.
    """

    def __init__(self, session_scope: SessionScope = get_db_session) -> None:
        self._session_scope = session_scope
        self._user_locks = KeyedLocks()

    def insert(self, user: User) -> None:
        with self._session_scope() as session:
            session.add(
                UserModel(
                    user_id=user.user_id,
                    username=user.username,
                    balance=user.balance,
                    created_at=user.created_at,
                    updated_at=user.updated_at,
                )
            )

    def find_by_id(self, user_id: str) -> Optional[User]:
        with self._session_scope() as session:
            row = session.get(UserModel, user_id)
            return _user_from_row(row) if row is not None else None

    def update(self, user: User) -> None:
        with self._session_scope() as session:
            row = session.get(UserModel, user.user_id)
            if row is None:
                raise NotFoundError(f"User {user.user_id} not found")
            row.username = user.username
            row.balance = user.balance
            row.updated_at = utc_now()

    @contextmanager
    def locked(self, user_id: str) -> Iterator[Optional[User]]:
        with self._user_locks.hold(user_id), self._session_scope() as session:
            row = session.execute(
                select(UserModel).where(UserModel.user_id == user_id).with_for_update()
            ).scalar_one_or_none()
            if row is None:
                yield None
                return
            user = _user_from_row(row)
            yield user
            row.balance = user.balance
            row.updated_at = utc_now()


__all__ = [
    "InMemoryTaskStore",
    "InMemoryUserStore",
    "KeyedLocks",
    "SqlTaskStore",
    "SqlUserStore",
    "TaskStore",
    "UserStore",
]
