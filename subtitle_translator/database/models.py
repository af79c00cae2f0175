"""SQLAlchemy models for tasks and users."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

MONEY = Numeric(12, 2, asdecimal=True)


class Base(DeclarativeBase):
    pass


class _Audited:
    # Stores write both columns; the server defaults cover rows inserted elsewhere.
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class UserModel(Base, _Audited):
    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    username: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    balance: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))


class TaskModel(Base, _Audited):
    __tablename__ = "tasks"

    task_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    original_video_filename: Mapped[Optional[str]] = mapped_column(String(512))
    video_file_path: Mapped[Optional[str]] = mapped_column(Text)
    burn_subtitles: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    target_language: Mapped[Optional[str]] = mapped_column(String(64))
    extracted_audio_filename: Mapped[Optional[str]] = mapped_column(String(512))
    extracted_audio_file_path: Mapped[Optional[str]] = mapped_column(Text)
    original_srt_filename: Mapped[Optional[str]] = mapped_column(String(512))
    original_srt_file_path: Mapped[Optional[str]] = mapped_column(Text)
    translated_srt_filename: Mapped[Optional[str]] = mapped_column(String(512))
    translated_srt_file_path: Mapped[Optional[str]] = mapped_column(Text)
    subtitled_video_filename: Mapped[Optional[str]] = mapped_column(String(512))
    subtitled_video_file_path: Mapped[Optional[str]] = mapped_column(Text)
    summary: Mapped[Optional[str]] = mapped_column(Text)
    translated_characters: Mapped[Optional[int]] = mapped_column(Integer)
    charged_amount: Mapped[Optional[Decimal]] = mapped_column(MONEY)
    error_message: Mapped[Optional[str]] = mapped_column(Text)
    detected_language: Mapped[Optional[str]] = mapped_column(String(32))
    language_probability: Mapped[Optional[float]] = mapped_column(Float)

    __table_args__ = (
        Index("idx_tasks_user_id", "user_id"),
        Index("idx_tasks_status", "status"),
    )


__all__ = ["TaskModel", "UserModel"]
