"""SQLAlchemy database layer for subtitle-translator.

Provides the shared engine, session factory, and declarative base used by
the SQL-backed task and user stores.
"""

from .models import Base
from .engine import configure_engine, dispose_engine, get_db_session, get_engine, init_schema

__all__ = [
    "Base",
    "configure_engine",
    "dispose_engine",
    "get_db_session",
    "get_engine",
    "init_schema",
]
