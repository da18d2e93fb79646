"""Transcript queries for the Session Transcription Service.

Transcripts are written by the recording pipeline; this module only reads
them back.
"""

from sqlalchemy.orm import Session

from src.models.transcript import Transcript
from src.services.segments import Segment


def get_transcript(session: Session, transcript_id: str) -> Transcript | None:
    """Fetch a transcript by its ID.

    Args:
        session: SQLAlchemy database session.
        transcript_id: UUID of the transcript.

    Returns:
        The Transcript instance if found, None otherwise.
    """
    return session.query(Transcript).filter_by(id=transcript_id).first()


def list_recording_transcripts(session: Session, recording_id: str) -> list[Transcript]:
    """List every transcript a recording produced, oldest first.

    A recording that was retried after a failure may own several
    transcripts; the one linked through ``Recording.transcript_id`` is the
    current one.

    Args:
        session: SQLAlchemy database session.
        recording_id: UUID of the recording.

    Returns:
        Transcripts ordered by creation time.
    """
    return (
        session.query(Transcript)
        .filter_by(recording_id=recording_id)
        .order_by(Transcript.created_at.asc())
        .all()
    )


def transcript_segments(transcript: Transcript) -> list[Segment]:
    """Rebuild the ordered Segments stored on a transcript."""
    return [Segment.from_dict(data) for data in transcript.segments or []]
