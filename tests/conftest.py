"""Pytest fixtures for Session Transcription Service tests.

This module provides shared fixtures for testing database models,
speech engine interactions, and sample data creation.
"""

from collections.abc import Callable, Generator
from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from src.config import Settings
from src.models import AudioFile, Base, Channel, Recording, RecordingStatus
from src.services.audio import AudioUpload
from src.services.segments import Segment, TranscriptionResult


@pytest.fixture(scope="session", autouse=True)
def test_settings() -> Generator[Settings, None, None]:
    """Create a Settings object with test environment variables.

    Yields:
        Settings: A Settings instance configured for testing with
        mock database credentials and engine endpoint.
    """
    with patch.dict(
        "os.environ",
        {
            "POSTGRES_HOST": "localhost",
            "POSTGRES_USER": "test_user",
            "POSTGRES_PASSWORD": "test_password",
            "POSTGRES_DB": "test_session_transcripts",
            "POSTGRES_PORT": "5432",
            "TRANSCRIPTION_ENDPOINT": "test-transcription-endpoint",
            "TRANSCRIPTION_LANGUAGE": "en",
            "DEBUG": "true",
        },
    ):
        # Clear the lru_cache to ensure fresh settings are created
        from src.config import get_settings

        get_settings.cache_clear()
        settings = Settings()
        yield settings
        # Clear cache again after test session
        get_settings.cache_clear()


@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Enable foreign key support for SQLite connections.

    SQLite does not enforce foreign keys by default. This event listener
    enables foreign key constraints for all SQLite connections.
    """
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture(scope="function")
def sqlite_engine() -> Generator[Engine, None, None]:
    """Create an in-memory SQLite engine with all tables."""
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def db_session(sqlite_engine: Engine) -> Generator[Session, None, None]:
    """Create an in-memory SQLite database session for testing.

    Yields:
        Session: A SQLAlchemy session connected to an in-memory SQLite database.
    """
    TestSessionLocal = sessionmaker(bind=sqlite_engine, autoflush=False, autocommit=False)
    session = TestSessionLocal()

    try:
        yield session
    finally:
        # Cleanup: rollback any uncommitted changes
        session.rollback()
        session.close()


@pytest.fixture
def make_upload(tmp_path: Path) -> Callable[..., AudioUpload]:
    """Factory creating a real audio file on disk and its AudioUpload.

    Returns:
        Callable taking (channel, name, content) and returning an AudioUpload.
    """

    def _make(
        channel: Channel = Channel.INPUT,
        name: str | None = None,
        content: bytes = b"RIFF....WAVEfmt ",
        segment_index: int = 0,
    ) -> AudioUpload:
        filename = name or f"{channel.value}-{uuid4().hex[:8]}.wav"
        path = tmp_path / filename
        path.write_bytes(content)
        return AudioUpload(
            path=str(path),
            original_name=filename,
            size=len(content),
            mime_type="audio/wav",
            channel=channel,
            segment_index=segment_index,
        )

    return _make


@pytest.fixture
def make_engine() -> Callable[..., MagicMock]:
    """Factory for a fake speech engine answering per audio path.

    The factory takes a dict mapping an audio path to the result to return
    or the exception to raise, and returns a MagicMock whose ``transcribe``
    is an AsyncMock.
    """

    def _make(results_by_path: dict[str, TranscriptionResult | Exception]) -> MagicMock:
        def _transcribe(audio_path, language=None):
            outcome = results_by_path[str(audio_path)]
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        engine = MagicMock()
        engine.transcribe = AsyncMock(side_effect=_transcribe)
        return engine

    return _make


@pytest.fixture
def make_result() -> Callable[..., TranscriptionResult]:
    """Factory for a TranscriptionResult built from (start, end, text) tuples."""

    def _make(*segments: tuple[float, float, str], language: str = "en") -> TranscriptionResult:
        segs = [Segment(start=s, end=e, text=t) for s, e, t in segments]
        return TranscriptionResult(
            text=" ".join(s.text for s in segs),
            segments=segs,
            duration=max((s.end for s in segs), default=0.0),
            language=language,
        )

    return _make


@pytest.fixture
def failed_recording(db_session: Session, make_upload) -> Recording:
    """Create a FAILED single-channel recording whose audio is still stored."""
    upload = make_upload(Channel.INPUT, name="interview.wav")
    recording = Recording(
        id=str(uuid4()),
        user_id="user-1",
        session_id=str(uuid4()),
        title="Failed Interview",
        status=RecordingStatus.FAILED.value,
        error="Speech engine unreachable: connection reset",
        recording_metadata={"recordingType": "single", "language": "en"},
        chunk_recording_ids=[],
        created_at=datetime.now(UTC),
    )
    recording.audio_files.append(
        AudioFile(
            path=upload.path,
            original_name=upload.original_name,
            size=upload.size,
            mime_type=upload.mime_type,
            channel=Channel.INPUT.value,
        )
    )
    db_session.add(recording)
    db_session.commit()
    db_session.refresh(recording)
    return recording
