"""Transcript SQLAlchemy model for the Session Transcription Service."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from . import Base, JsonType

if TYPE_CHECKING:
    from .recording import Recording


class Transcript(Base):
    """Model representing the reconciled transcript of one processing attempt.

    A recording may own several transcripts: every successful retry writes a
    new row instead of editing the earlier one.
    """

    __tablename__ = "transcripts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    recording_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("recordings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="Session Transcript")
    content: Mapped[str] = mapped_column(Text, nullable=False)
    segments: Mapped[list[dict[str, Any]]] = mapped_column(JsonType, nullable=False, default=list)
    language: Mapped[str | None] = mapped_column(String(10), nullable=True)
    transcript_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JsonType, nullable=False, default=dict
    )
    is_retry: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    original_recording_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )

    recording: Mapped[Recording] = relationship("Recording", back_populates="transcripts")
