"""SQLAlchemy engine singleton and session helpers."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker

from subtitle_translator import config_manager as cfg
from subtitle_translator.config_manager.constants import DEFAULT_DATABASE_URL

from .models import Base

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None
_url_override: Optional[str] = None
_engine_lock = threading.Lock()


def get_database_url() -> str:
    if _url_override:
        return _url_override
    configured = cfg.get_settings().database_url
    return configured.get_secret_value() if configured else DEFAULT_DATABASE_URL


def _create_engine(url: str) -> Engine:
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        database = parsed.database
        if database and database != ":memory:":
            Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)
        return create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": 30},
            echo=False,
        )
    return create_engine(
        url,
        pool_size=10,
        max_overflow=5,
        pool_pre_ping=True,
        pool_recycle=3600,
        echo=False,
    )


def get_engine() -> Engine:
    global _engine
    with _engine_lock:
        if _engine is None:
            _engine = _create_engine(get_database_url())
        return _engine


def get_session_factory() -> sessionmaker[Session]:
    global _session_factory
    engine = get_engine()
    with _engine_lock:
        if _session_factory is None:
            _session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        return _session_factory


@contextmanager
def get_db_session() -> Iterator[Session]:
    """Yield a session that commits on success and rolls back on any error."""

    factory = get_session_factory()
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_schema() -> None:
    """Create the task and user tables when they do not exist yet."""

    Base.metadata.create_all(get_engine())


def configure_engine(url: Optional[str]) -> None:
    """Point the engine at ``url`` (``None`` restores the configured URL)."""

    global _url_override
    dispose_engine()
    _url_override = url


def dispose_engine() -> None:
    """Close pooled connections; the next session reconnects with the current URL."""

    global _engine, _session_factory
    with _engine_lock:
        if _engine is not None:
            _engine.dispose()
        _engine = None
        _session_factory = None
