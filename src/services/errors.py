"""Error taxonomy for the transcription pipeline.

Every error below except RecordingStateError is captured at the recording
service boundary and stored on the Recording as its failure message.
"""


class TranscriptionError(Exception):
    """Base class for errors that fail a single processing attempt."""

    pass


class AudioValidationError(TranscriptionError):
    """Raised when an audio artifact is missing or unusable.

    Rejected before any engine call and never retried.
    """

    pass


class AudioFileNotFoundError(AudioValidationError, FileNotFoundError):
    """Raised when an audio artifact does not exist on disk."""

    pass


class EngineError(TranscriptionError):
    """Raised when the speech engine rejects or fails a request."""

    pass


class AuthError(EngineError):
    """The engine rejected our credentials. Never retried."""

    pass


class RateLimitError(EngineError):
    """The engine throttled the caller. Not retried within the same call."""

    pass


class TransientEngineError(EngineError):
    """Network failure, connection reset or timeout talking to the engine."""

    pass


class ReconciliationError(TranscriptionError):
    """One of two requested channels failed to transcribe."""

    pass


class RetryPreconditionError(TranscriptionError):
    """Retry requested for a recording that cannot be retried."""

    pass


class RecordingStateError(ValueError):
    """A recording is not in the state an operation requires."""

    pass


class SessionIncompleteError(ValueError):
    """A parent session still has chunks that are not completed."""

    pass
