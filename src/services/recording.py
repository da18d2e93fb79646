"""Recording service for the Session Transcription Service.

This module owns the lifecycle of Recording entities: creation of single,
dual and segmented recordings, chunk aggregation under a parent session,
the processing pipeline that turns stored audio into a reconciled
transcript, and deletion of recordings and their artifacts.

Status transitions are written as conditional updates so that a recording
only moves from the state the caller observed.
"""

import asyncio
import logging
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from sqlalchemy.orm import Session

from src.models import AudioFile, Channel, Recording, RecordingStatus, RecordingType, Transcript
from src.services.audio import AudioUpload, delete_audio_file
from src.services.engine import SpeechEngineClient, get_speech_engine
from src.services.errors import (
    AudioValidationError,
    ReconciliationError,
    RecordingStateError,
    SessionIncompleteError,
    TranscriptionError,
)
from src.services.reconciler import merge_segments
from src.services.segments import Segment, TranscriptionResult, tag_segments

logger = logging.getLogger(__name__)

CHANNEL_LABELS = {
    Channel.INPUT: "MIC",
    Channel.OUTPUT: "SYS",
}


def _now() -> datetime:
    return datetime.now(UTC)


def _channel_summary(audio_files: list[AudioFile] | list[AudioUpload]) -> dict[str, Any]:
    """Describe which channels a set of artifacts covers and their total size."""
    channels = {Channel(f.channel) for f in audio_files}
    return {
        "hasInputAudio": Channel.INPUT in channels,
        "hasOutputAudio": Channel.OUTPUT in channels,
        "sources": [c.value for c in (Channel.INPUT, Channel.OUTPUT) if c in channels],
        "totalFileSize": sum(f.size for f in audio_files),
    }


def _chunks_summary(chunks: list[Recording]) -> dict[str, Any]:
    """Channel coverage and total size of a session, from its chunks' metadata."""
    sources = {s for c in chunks for s in c.recording_metadata.get("sources") or []}
    return {
        "hasInputAudio": Channel.INPUT.value in sources,
        "hasOutputAudio": Channel.OUTPUT.value in sources,
        "sources": [c.value for c in (Channel.INPUT, Channel.OUTPUT) if c.value in sources],
        "totalFileSize": sum(c.recording_metadata.get("totalFileSize") or 0 for c in chunks),
    }


def _attach_audio_files(
    recording: Recording,
    uploads: list[AudioUpload],
    segment_index: int | None = None,
) -> None:
    for upload in uploads:
        recording.audio_files.append(
            AudioFile(
                path=upload.path,
                original_name=upload.original_name,
                size=upload.size,
                mime_type=upload.mime_type,
                channel=Channel(upload.channel).value,
                segment_index=upload.segment_index if segment_index is None else segment_index,
            )
        )


def create_recording(
    session: Session,
    user_id: str,
    audio_files: list[AudioUpload] | None = None,
    title: str | None = None,
    segmented: bool = False,
    session_id: str | None = None,
    language: str | None = None,
) -> Recording:
    """Create and persist a new pending Recording.

    Args:
        session: SQLAlchemy database session.
        user_id: Owner of the recording.
        audio_files: Accepted artifacts for this recording. Parent sessions
            usually have none; their audio arrives through add_chunk().
        title: Title of the recording. Defaults to "Untitled Recording".
        segmented: Create a parent session that aggregates chunks.
        session_id: Logical session id. Generated when omitted.
        language: Language hint for transcription.

    Returns:
        Recording: The persisted Recording in PENDING status.
    """
    uploads = audio_files or []
    summary = _channel_summary(uploads)

    if segmented:
        recording_type = RecordingType.SEGMENTED
    elif summary["hasInputAudio"] and summary["hasOutputAudio"]:
        recording_type = RecordingType.DUAL
    else:
        recording_type = RecordingType.SINGLE

    metadata = {
        **summary,
        "duration": None,
        "segmentCount": 0,
        "totalSegments": 0 if segmented else 1,
        "currentSegment": 0 if segmented else 1,
        "recordingType": recording_type.value,
        "language": language,
        "sessionStartTime": _now().isoformat(),
        "sessionEndTime": None,
    }

    recording = Recording(
        user_id=user_id,
        session_id=session_id or str(uuid4()),
        is_parent_session=segmented,
        chunk_recording_ids=[],
        title=title or "Untitled Recording",
        status=RecordingStatus.PENDING.value,
        recording_metadata=metadata,
    )
    _attach_audio_files(recording, uploads)

    session.add(recording)
    session.commit()
    session.refresh(recording)

    logger.info(
        f"Created {recording_type.value} recording {recording.id} "
        f"for session {recording.session_id} with {len(uploads)} audio files"
    )
    return recording


def add_chunk(
    session: Session,
    parent_session_id: str,
    audio_files: list[AudioUpload],
    segment_index: int | None = None,
    title: str | None = None,
) -> Recording:
    """Create a chunk recording under an existing parent session.

    Args:
        session: SQLAlchemy database session.
        parent_session_id: session_id of the parent Recording.
        audio_files: Artifacts captured for this chunk.
        segment_index: Position of the chunk. Defaults to the current chunk
            count.
        title: Chunk title. Defaults to "<parent title> (part N)".

    Returns:
        Recording: The persisted chunk in PENDING status.

    Raises:
        ValueError: If no parent session exists with the given id.
    """
    parent = (
        session.query(Recording)
        .filter_by(session_id=parent_session_id, is_parent_session=True)
        .with_for_update()
        .first()
    )
    if parent is None:
        raise ValueError(f"Parent session not found: {parent_session_id}")

    index = len(parent.chunk_recording_ids) if segment_index is None else segment_index
    summary = _channel_summary(audio_files)

    chunk = Recording(
        user_id=parent.user_id,
        session_id=parent.session_id,
        parent_session_id=parent.session_id,
        parent_recording_id=parent.id,
        is_parent_session=False,
        chunk_recording_ids=[],
        title=title or f"{parent.title} (part {index + 1})",
        status=RecordingStatus.PENDING.value,
        recording_metadata={
            **summary,
            "duration": None,
            "segmentCount": 0,
            "segmentIndex": index,
            "recordingType": (
                RecordingType.DUAL.value
                if summary["hasInputAudio"] and summary["hasOutputAudio"]
                else RecordingType.SINGLE.value
            ),
            "language": parent.recording_metadata.get("language"),
            "sessionStartTime": _now().isoformat(),
        },
    )
    _attach_audio_files(chunk, audio_files, segment_index=index)
    session.add(chunk)
    session.flush()

    # JSON columns are replaced, not mutated in place, so the change is tracked
    chunk_ids = [*parent.chunk_recording_ids, chunk.id]
    parent_meta = dict(parent.recording_metadata)
    sources = set(parent_meta.get("sources") or []) | set(summary["sources"])
    parent_meta.update(
        {
            "totalSegments": len(chunk_ids),
            "currentSegment": len(chunk_ids),
            "totalFileSize": (parent_meta.get("totalFileSize") or 0) + summary["totalFileSize"],
            "hasInputAudio": bool(parent_meta.get("hasInputAudio")) or summary["hasInputAudio"],
            "hasOutputAudio": bool(parent_meta.get("hasOutputAudio"))
            or summary["hasOutputAudio"],
            "sources": [c.value for c in (Channel.INPUT, Channel.OUTPUT) if c.value in sources],
        }
    )
    parent.chunk_recording_ids = chunk_ids
    parent.recording_metadata = parent_meta
    parent.updated_at = _now()

    session.commit()
    session.refresh(chunk)

    logger.info(
        f"Added chunk {chunk.id} (index {index}) to session {parent.session_id}, "
        f"{len(chunk_ids)} chunks total"
    )
    return chunk


def get_recording(session: Session, recording_id: str) -> Recording | None:
    """Retrieve a recording by its ID.

    Args:
        session: SQLAlchemy database session.
        recording_id: UUID of the recording to retrieve.

    Returns:
        Recording | None: The Recording instance if found, None otherwise.
    """
    return session.query(Recording).filter_by(id=recording_id).first()


def get_chunks(session: Session, chunk_ids: list[str]) -> list[Recording]:
    """Resolve chunk ids to Recordings, keeping the order of ``chunk_ids``.

    Ids that no longer resolve are skipped.
    """
    if not chunk_ids:
        return []

    found = session.query(Recording).filter(Recording.id.in_(chunk_ids)).all()
    by_id = {r.id: r for r in found}
    return [by_id[cid] for cid in chunk_ids if cid in by_id]


def list_parent_sessions(session: Session, user_id: str) -> list[Recording]:
    """List a user's parent sessions, newest first."""
    return (
        session.query(Recording)
        .filter_by(user_id=user_id, is_parent_session=True)
        .order_by(Recording.created_at.desc())
        .all()
    )


def get_complete_session(
    session: Session,
    user_id: str,
    session_id: str,
) -> tuple[Recording, list[Recording]] | None:
    """Fetch a parent session together with its chunks.

    Returns:
        (parent, chunks) with chunks in session order, or None if the user
        has no parent session with that id.
    """
    parent = (
        session.query(Recording)
        .filter_by(user_id=user_id, session_id=session_id, is_parent_session=True)
        .first()
    )
    if parent is None:
        return None
    return parent, get_chunks(session, parent.chunk_recording_ids)


def list_recordings(
    session: Session,
    user_id: str,
    status: RecordingStatus | None = None,
    limit: int = 20,
    offset: int = 0,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> list[Recording]:
    """List a user's recordings with filtering, pagination and sorting.

    Args:
        session: SQLAlchemy database session.
        user_id: Owner whose recordings are listed.
        status: Only return recordings in this status. Defaults to all.
        limit: Maximum number of recordings to return. Defaults to 20.
        offset: Number of recordings to skip for pagination. Defaults to 0.
        sort_by: Column name to sort by. Valid values are "created_at",
            "updated_at" or "title". Defaults to "created_at".
        sort_order: Sort direction, "asc" or "desc". Defaults to "desc".

    Returns:
        list[Recording]: Matching recordings in the requested order.

    Raises:
        ValueError: If sort_by is not a valid column name or sort_order is
            not "asc" or "desc".
    """
    valid_sort_columns = {"created_at", "updated_at", "title"}
    valid_sort_orders = {"asc", "desc"}

    if sort_by not in valid_sort_columns:
        raise ValueError(
            f"Invalid sort_by value: {sort_by}. "
            f"Must be one of: {', '.join(sorted(valid_sort_columns))}"
        )

    if sort_order not in valid_sort_orders:
        raise ValueError(
            f"Invalid sort_order value: {sort_order}. "
            f"Must be one of: {', '.join(sorted(valid_sort_orders))}"
        )

    query = session.query(Recording).filter_by(user_id=user_id)
    if status is not None:
        query = query.filter_by(status=RecordingStatus(status).value)

    column = getattr(Recording, sort_by)
    order_func = column.asc() if sort_order == "asc" else column.desc()

    return query.order_by(order_func).offset(offset).limit(limit).all()


def list_failed_recordings(session: Session, user_id: str) -> list[Recording]:
    """List a user's failed recordings, newest first."""
    return (
        session.query(Recording)
        .filter_by(user_id=user_id, status=RecordingStatus.FAILED.value)
        .order_by(Recording.created_at.desc())
        .all()
    )


def transition_status(
    session: Session,
    recording: Recording,
    expected: RecordingStatus,
    new_status: RecordingStatus,
    values: dict[Any, Any] | None = None,
) -> bool:
    """Move a recording to ``new_status`` only if it is still in ``expected``.

    Args:
        session: SQLAlchemy database session.
        recording: The recording to transition.
        expected: Status the recording must currently have.
        new_status: Status to set.
        values: Extra column values written in the same UPDATE.

    Returns:
        True if this call performed the transition, False if the stored
        status no longer matched.
    """
    updated = (
        session.query(Recording)
        .filter(Recording.id == recording.id, Recording.status == expected.value)
        .update(
            {Recording.status: new_status.value, Recording.updated_at: _now(), **(values or {})},
            synchronize_session=False,
        )
    )
    session.commit()
    session.refresh(recording)
    return updated == 1


def render_transcript(segments: list[Segment]) -> str:
    """Render segments as "<LABEL> [<start>s]: <text>" lines."""
    lines = []
    for segment in segments:
        label = CHANNEL_LABELS.get(segment.source, "AUDIO")
        lines.append(f"{label} [{segment.start:.1f}s]: {segment.text}")
    return "\n".join(lines)


def _update_recording_with_error(
    session: Session,
    recording: Recording,
    error_message: str,
) -> Recording:
    """Update a recording with FAILED status and error message."""
    recording.status = RecordingStatus.FAILED.value
    recording.error = error_message
    recording.transcript_id = None
    recording.updated_at = _now()
    session.commit()
    session.refresh(recording)
    return recording


def _create_transcript(
    session: Session,
    recording: Recording,
    segments: list[Segment],
    duration: float,
    language: str | None,
    channel_summary: dict[str, Any],
    is_retry: bool = False,
) -> Transcript:
    transcript = Transcript(
        recording_id=recording.id,
        user_id=recording.user_id,
        title=recording.title,
        content=render_transcript(segments),
        segments=[s.to_dict() for s in segments],
        language=language,
        transcript_metadata={
            **channel_summary,
            "duration": duration,
            "segmentCount": len(segments),
            "language": language,
            "originalFilename": ", ".join(f.original_name for f in recording.audio_files),
        },
        is_retry=is_retry,
        original_recording_id=recording.id if is_retry else None,
    )
    session.add(transcript)
    session.flush()
    return transcript


def _mark_completed(
    session: Session,
    recording: Recording,
    transcript: Transcript,
    duration: float,
    segment_count: int,
    language: str | None,
    **metadata: Any,
) -> Recording:
    recording_meta = dict(recording.recording_metadata)
    recording_meta.update(
        {
            "duration": duration,
            "segmentCount": segment_count,
            "language": language,
            **metadata,
        }
    )
    recording.recording_metadata = recording_meta
    recording.status = RecordingStatus.COMPLETED.value
    recording.transcript_id = transcript.id
    recording.error = None  # Clear any previous error
    recording.completed_at = _now()
    recording.updated_at = _now()
    session.commit()
    session.refresh(recording)
    return recording


async def transcribe_recording_audio(
    recording: Recording,
    engine: SpeechEngineClient,
) -> tuple[list[Segment], float, str | None]:
    """Transcribe a recording's channels and reconcile them.

    Input and output artifacts are transcribed concurrently; when both are
    present the results are merged and deduplicated.

    Args:
        recording: Recording whose first artifact per channel is transcribed.
        engine: Speech engine client.

    Returns:
        (segments, duration, language) for the transcript.

    Raises:
        AudioValidationError: If the recording has no input artifact.
        ReconciliationError: If one of two channels failed.
        TranscriptionError: If the single channel failed.
    """
    input_files = recording.files_for(Channel.INPUT)
    output_files = recording.files_for(Channel.OUTPUT)

    if not input_files:
        raise AudioValidationError("Microphone (input) audio file is required")

    channels = [(Channel.INPUT, input_files[0])]
    if output_files:
        channels.append((Channel.OUTPUT, output_files[0]))

    language = recording.recording_metadata.get("language")
    logger.info(
        f"Recording {recording.id}: transcribing "
        f"{', '.join(channel.value for channel, _ in channels)}"
    )

    results = await asyncio.gather(
        *(engine.transcribe(audio.path, language=language) for _, audio in channels),
        return_exceptions=True,
    )

    failures: list[tuple[Channel, BaseException]] = []
    for (channel, _), result in zip(channels, results, strict=True):
        if isinstance(result, BaseException):
            if not isinstance(result, TranscriptionError):
                raise result
            failures.append((channel, result))

    if failures:
        channel, error = failures[0]
        if len(channels) == 1:
            raise error
        raise ReconciliationError(
            f"Failed to transcribe {channel.value} channel: {error}"
        ) from error

    transcriptions: dict[Channel, TranscriptionResult] = {
        channel: result for (channel, _), result in zip(channels, results, strict=True)
    }
    input_segments = tag_segments(transcriptions[Channel.INPUT].segments, Channel.INPUT)

    if Channel.OUTPUT in transcriptions:
        output_segments = tag_segments(transcriptions[Channel.OUTPUT].segments, Channel.OUTPUT)
        segments = merge_segments(input_segments, output_segments)
    else:
        segments = input_segments

    duration = max(t.duration for t in transcriptions.values())
    return segments, duration, transcriptions[Channel.INPUT].language


async def run_processing(
    session: Session,
    recording: Recording,
    engine: SpeechEngineClient | None = None,
    is_retry: bool = False,
) -> Recording:
    """Run the transcription pipeline for a recording already in PROCESSING.

    Pipeline errors are stored on the recording instead of being raised.

    Args:
        session: SQLAlchemy database session.
        recording: Recording in PROCESSING status.
        engine: Speech engine client. Defaults to the shared client.
        is_retry: Tag the resulting transcript as produced by a retry.

    Returns:
        Recording: The recording in COMPLETED or FAILED status.

    Raises:
        Exception: Errors outside the transcription taxonomy (storage,
            programming errors). The recording is marked FAILED first.
    """
    engine = engine or get_speech_engine()
    recording_id = recording.id

    try:
        segments, duration, language = await transcribe_recording_audio(recording, engine)

        transcript = _create_transcript(
            session,
            recording,
            segments,
            duration,
            language,
            _channel_summary(recording.audio_files),
            is_retry=is_retry,
        )
        _mark_completed(session, recording, transcript, duration, len(segments), language)

        logger.info(
            f"Recording {recording_id}: completed with transcript {transcript.id} "
            f"({len(segments)} segments, {duration:.1f}s)"
        )
        return recording

    except TranscriptionError as e:
        logger.error(f"Recording {recording_id}: processing failed: {e}")
        session.rollback()
        return _update_recording_with_error(session, recording, str(e))

    except Exception as e:
        logger.error(
            f"Recording {recording_id}: processing failed with error: {e}",
            exc_info=True,
        )
        session.rollback()
        _update_recording_with_error(session, recording, str(e))
        raise


async def process_recording(
    session: Session,
    recording_id: str,
    engine: SpeechEngineClient | None = None,
) -> Recording:
    """Transcribe a pending recording and persist its transcript.

    Args:
        session: SQLAlchemy database session.
        recording_id: UUID of the recording to process.
        engine: Speech engine client. Defaults to the shared client.

    Returns:
        Recording: The recording in COMPLETED or FAILED status.

    Raises:
        ValueError: If no recording is found with the given ID.
        RecordingStateError: If the recording is not PENDING.
    """
    recording = get_recording(session, recording_id)
    if recording is None:
        raise ValueError(f"Recording not found: {recording_id}")

    if recording.is_parent_session:
        raise RecordingStateError(
            f"Recording {recording_id} is a parent session; process its chunks instead"
        )

    if not transition_status(
        session, recording, RecordingStatus.PENDING, RecordingStatus.PROCESSING
    ):
        raise RecordingStateError(
            f"Recording {recording_id} is {recording.status}, expected pending"
        )

    logger.info(f"Starting processing pipeline for recording {recording_id}")
    return await run_processing(session, recording, engine)


def finalize_session(session: Session, parent_recording_id: str) -> Recording:
    """Combine the transcripts of a parent session's chunks.

    Chunk segments are shifted by the accumulated duration of the chunks
    before them, so the combined transcript runs on one session timeline.

    Args:
        session: SQLAlchemy database session.
        parent_recording_id: UUID of the parent Recording.

    Returns:
        Recording: The parent in COMPLETED status.

    Raises:
        ValueError: If the recording does not exist or is not a parent.
        RecordingStateError: If the parent is not PENDING.
        SessionIncompleteError: If the session has no chunks or a chunk is
            not completed yet.
        Exception: Failures while writing the combined transcript. The
            parent is returned to PENDING with the error stored first.
    """
    parent = get_recording(session, parent_recording_id)
    if parent is None or not parent.is_parent_session:
        raise ValueError(f"Parent session not found: {parent_recording_id}")

    if parent.status != RecordingStatus.PENDING.value:
        raise RecordingStateError(
            f"Session {parent.session_id} is {parent.status}, expected pending"
        )

    chunks = get_chunks(session, parent.chunk_recording_ids)
    if not chunks:
        raise SessionIncompleteError(f"Session {parent.session_id} has no chunks")

    incomplete = [c for c in chunks if c.status != RecordingStatus.COMPLETED.value]
    if incomplete:
        raise SessionIncompleteError(
            f"Session {parent.session_id}: {len(incomplete)} of {len(chunks)} "
            f"chunks not completed"
        )

    chunk_transcripts = [session.get(Transcript, c.transcript_id) for c in chunks]
    if any(t is None for t in chunk_transcripts):
        raise SessionIncompleteError(
            f"Session {parent.session_id}: a completed chunk has lost its transcript"
        )

    if not transition_status(
        session, parent, RecordingStatus.PENDING, RecordingStatus.PROCESSING
    ):
        raise RecordingStateError(f"Session {parent.session_id} is already being finalized")

    combined: list[Segment] = []
    offset = 0.0
    language = None
    audio_files: list[AudioFile] = []

    try:
        for chunk, transcript in zip(chunks, chunk_transcripts, strict=True):
            chunk_segments = [Segment.from_dict(d) for d in transcript.segments]
            combined.extend(
                replace(s, start=s.start + offset, end=s.end + offset) for s in chunk_segments
            )
            offset += chunk.recording_metadata.get("duration") or 0.0
            language = language or transcript.language
            audio_files.extend(chunk.audio_files)

        transcript = _create_transcript(
            session, parent, combined, offset, language, _channel_summary(audio_files)
        )
        _mark_completed(
            session,
            parent,
            transcript,
            offset,
            len(combined),
            language,
            sessionEndTime=_now().isoformat(),
        )
    except Exception as e:
        logger.error(
            f"Session {parent.session_id}: finalization failed: {e}",
            exc_info=True,
        )
        session.rollback()
        # Back to pending so finalization can be run again
        transition_status(
            session,
            parent,
            RecordingStatus.PROCESSING,
            RecordingStatus.PENDING,
            values={Recording.error: str(e)},
        )
        raise

    logger.info(
        f"Session {parent.session_id}: combined {len(chunks)} chunks into "
        f"transcript {transcript.id} ({offset:.1f}s)"
    )
    return parent


def _remove_artifacts(recording: Recording) -> int:
    removed = 0
    for audio_file in recording.audio_files:
        try:
            if delete_audio_file(audio_file.path):
                removed += 1
        except OSError as e:
            logger.warning(f"Failed to delete audio file {audio_file.path}: {e}")
    return removed


def delete_audio_files(session: Session, recording_id: str) -> int:
    """Delete a recording's audio artifacts but keep its transcripts.

    Args:
        session: SQLAlchemy database session.
        recording_id: UUID of the recording.

    Returns:
        Number of artifact records removed.

    Raises:
        ValueError: If the recording does not exist or has no audio files.
    """
    recording = get_recording(session, recording_id)
    if recording is None:
        raise ValueError(f"Recording not found: {recording_id}")

    if not recording.audio_files:
        raise ValueError(f"No audio files to delete for recording {recording_id}")

    count = len(recording.audio_files)
    _remove_artifacts(recording)

    recording.audio_files = []
    recording.audio_deleted_at = _now()
    recording.updated_at = _now()
    session.commit()

    logger.info(f"Deleted {count} audio files from recording {recording_id}")
    return count


def delete_recording(session: Session, recording_id: str) -> bool:
    """Delete a recording, its audio artifacts and its transcripts.

    Deleting a parent session deletes every chunk too. Deleting a single
    chunk removes it from its parent's chunk list and recomputes the
    parent's segment count, channels and total size from the chunks left.

    Args:
        session: SQLAlchemy database session.
        recording_id: UUID of the recording to delete.

    Returns:
        True on successful deletion.

    Raises:
        ValueError: If no recording is found with the given ID.
    """
    recording = get_recording(session, recording_id)
    if recording is None:
        raise ValueError(f"Recording not found: {recording_id}")

    targets = [recording]
    if recording.is_parent_session:
        targets = [*get_chunks(session, recording.chunk_recording_ids), recording]
    elif recording.parent_recording_id:
        parent = get_recording(session, recording.parent_recording_id)
        if parent is not None:
            chunk_ids = [cid for cid in parent.chunk_recording_ids if cid != recording.id]
            parent_meta = dict(parent.recording_metadata)
            parent_meta.update(
                {
                    "totalSegments": len(chunk_ids),
                    "currentSegment": len(chunk_ids),
                    **_chunks_summary(get_chunks(session, chunk_ids)),
                }
            )
            parent.chunk_recording_ids = chunk_ids
            parent.recording_metadata = parent_meta
            parent.updated_at = _now()

    for target in targets:
        removed = _remove_artifacts(target)
        logger.debug(f"Removed {removed} audio files for recording {target.id}")
        # Audio file rows and transcripts cascade via the ORM relationships
        session.delete(target)

    session.commit()

    logger.info(f"Deleted recording {recording_id} ({len(targets)} records)")
    return True


def summarize_recording(recording: Recording) -> dict[str, Any]:
    """Build a compact summary of a recording for listings."""
    metadata = recording.recording_metadata or {}
    return {
        "id": recording.id,
        "sessionId": recording.session_id,
        "title": recording.title,
        "status": recording.status,
        "isSegmented": metadata.get("recordingType") == RecordingType.SEGMENTED.value
        or bool(recording.chunk_recording_ids),
        "isParentSession": recording.is_parent_session,
        "hasAudioFiles": bool(recording.audio_files),
        "hasTranscript": recording.transcript_id is not None,
        "audioFileCount": len(recording.audio_files),
        "totalSegments": metadata.get("totalSegments") or 1,
        "duration": metadata.get("duration"),
        "totalFileSize": metadata.get("totalFileSize"),
        "createdAt": recording.created_at,
        "error": recording.error,
        "retryCount": recording.retry_count,
    }
