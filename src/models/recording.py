"""Recording and AudioFile models for capture sessions and their artifacts."""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from . import Base, JsonType

if TYPE_CHECKING:
    from .transcript import Transcript


class RecordingStatus(str, Enum):
    """Enum representing the processing status of a recording."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Channel(str, Enum):
    """Audio source a file or segment was captured from."""

    INPUT = "input"  # microphone
    OUTPUT = "output"  # system audio


class RecordingType(str, Enum):
    """Shape of a recording's audio."""

    SINGLE = "single"
    DUAL = "dual"
    SEGMENTED = "segmented"


class Recording(Base):
    """SQLAlchemy model for a recording attempt or one chunk of a session.

    Parent sessions list their chunks in ``chunk_recording_ids`` and chunks
    point back through ``parent_session_id`` / ``parent_recording_id``. Both
    directions are plain id columns resolved through queries, never ORM
    relationships.
    """

    __tablename__ = "recordings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    session_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    parent_session_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    is_parent_session: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    parent_recording_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    chunk_recording_ids: Mapped[list[str]] = mapped_column(JsonType, nullable=False, default=list)
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="Untitled Recording")
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=RecordingStatus.PENDING.value, index=True
    )
    transcript_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    # "metadata" is reserved on declarative classes
    recording_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JsonType, nullable=False, default=dict
    )
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_retry_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    audio_deleted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True, onupdate=func.now()
    )

    # Relationships
    audio_files: Mapped[list["AudioFile"]] = relationship(
        "AudioFile",
        back_populates="recording",
        cascade="all, delete-orphan",
        order_by="AudioFile.segment_index",
    )
    transcripts: Mapped[list["Transcript"]] = relationship(
        "Transcript",
        back_populates="recording",
        cascade="all, delete-orphan",
    )

    def files_for(self, channel: Channel) -> list["AudioFile"]:
        """Return this recording's audio files captured on ``channel``."""
        return [f for f in self.audio_files if f.channel == channel.value]

    def __repr__(self) -> str:
        """Return string representation of the Recording."""
        return (
            f"<Recording(id={self.id!r}, session_id={self.session_id!r}, "
            f"status={self.status!r})>"
        )


class AudioFile(Base):
    """An uploaded audio artifact belonging to a recording.

    Rows are never edited after upload; they are only removed when the
    artifact itself is deleted.
    """

    __tablename__ = "audio_files"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    recording_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("recordings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    path: Mapped[str] = mapped_column(String(500), nullable=False)
    original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    channel: Mapped[str] = mapped_column(String(10), nullable=False)
    segment_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )

    recording: Mapped["Recording"] = relationship("Recording", back_populates="audio_files")

    def __repr__(self) -> str:
        """Return string representation of the AudioFile."""
        return (
            f"<AudioFile(id={self.id!r}, recording_id={self.recording_id!r}, "
            f"channel={self.channel!r})>"
        )
