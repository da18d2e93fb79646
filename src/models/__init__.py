"""SQLAlchemy models for the Session Transcription Service."""

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase

# Use JSONB on PostgreSQL, JSON on other databases (SQLite for tests)
JsonType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


from .recording import AudioFile, Channel, Recording, RecordingStatus, RecordingType  # noqa: E402
from .transcript import Transcript  # noqa: E402

__all__ = [
    "Base",
    "JsonType",
    "AudioFile",
    "Channel",
    "Recording",
    "RecordingStatus",
    "RecordingType",
    "Transcript",
]
