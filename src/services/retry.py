"""Retry of failed recordings for the Session Transcription Service.

A retry re-runs the processing pipeline on the audio artifacts already
stored for the recording. A successful retry writes a new transcript tagged
as a retry; transcripts from earlier attempts are never edited.
"""

import logging
from datetime import UTC, datetime
from pathlib import Path

from sqlalchemy.orm import Session

from src.models import Recording, RecordingStatus
from src.services.engine import SpeechEngineClient
from src.services.errors import RetryPreconditionError
from src.services.recording import get_recording, run_processing, transition_status

logger = logging.getLogger(__name__)


def check_retryable(recording: Recording | None, recording_id: str) -> Recording:
    """Verify that a recording can be retried.

    Args:
        recording: The loaded recording, or None if it does not exist.
        recording_id: UUID used for error messages.

    Returns:
        The recording, unchanged.

    Raises:
        RetryPreconditionError: If the recording is missing, not FAILED, or
            its audio artifacts are gone.
    """
    if recording is None:
        raise RetryPreconditionError(f"Recording not found: {recording_id}")

    if recording.status != RecordingStatus.FAILED.value:
        raise RetryPreconditionError(
            f"Only failed recordings can be retried (recording {recording_id} "
            f"is {recording.status})"
        )

    if recording.audio_deleted_at is not None or not recording.audio_files:
        raise RetryPreconditionError(
            f"No audio files available for retry of recording {recording_id}"
        )

    missing = [f.original_name for f in recording.audio_files if not Path(f.path).is_file()]
    if missing:
        raise RetryPreconditionError(
            f"Audio files missing from storage for recording {recording_id}: "
            f"{', '.join(missing)}"
        )

    return recording


async def retry_recording(
    session: Session,
    recording_id: str,
    engine: SpeechEngineClient | None = None,
) -> Recording:
    """Re-run transcription for a failed recording.

    The FAILED -> PROCESSING move, the retry counter and the retry timestamp
    are written in one conditional update, so concurrent retries of the same
    recording cannot both start.

    Args:
        session: SQLAlchemy database session.
        recording_id: UUID of the failed recording.
        engine: Speech engine client. Defaults to the shared client.

    Returns:
        Recording: The recording in COMPLETED status, or back in FAILED with
            the new error.

    Raises:
        RetryPreconditionError: If the recording cannot be retried. Its
            state is left untouched.
    """
    recording = check_retryable(get_recording(session, recording_id), recording_id)

    started = transition_status(
        session,
        recording,
        RecordingStatus.FAILED,
        RecordingStatus.PROCESSING,
        values={
            Recording.retry_count: Recording.retry_count + 1,
            Recording.last_retry_at: datetime.now(UTC),
        },
    )
    if not started:
        raise RetryPreconditionError(
            f"Recording {recording_id} is already being retried ({recording.status})"
        )

    logger.info(f"Retrying recording {recording_id} (attempt {recording.retry_count})")

    result = await run_processing(session, recording, engine, is_retry=True)

    if result.status == RecordingStatus.COMPLETED.value:
        logger.info(
            f"Recording retry successful: {recording_id}, transcript {result.transcript_id}"
        )
    else:
        logger.warning(f"Recording retry failed: {recording_id}: {result.error}")
    return result
