"""Task and user records together with their persistence backends."""

from .models import TERMINAL_STATUSES, Task, TaskStatus, User, can_transition
from .stores import (
    InMemoryTaskStore,
    InMemoryUserStore,
    SqlTaskStore,
    SqlUserStore,
    TaskStore,
    UserStore,
)

__all__ = [
    "InMemoryTaskStore",
    "InMemoryUserStore",
    "SqlTaskStore",
    "SqlUserStore",
    "TERMINAL_STATUSES",
    "Task",
    "TaskStatus",
    "TaskStore",
    "User",
    "UserStore",
    "can_transition",
]
