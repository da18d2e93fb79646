"""Speech engine adapter for the Session Transcription Service.

This module wraps the Databricks model serving endpoint that runs speech
recognition and provides:
- Validation that the audio artifact exists before calling out
- Classification of engine failures into fatal and transient errors
- Retry with exponential backoff for transient failures
- Hand-off of the raw prediction to the segment normalizer
"""

import asyncio
import base64
import io
import json
import logging
from collections.abc import Awaitable, Callable
from functools import lru_cache
from pathlib import Path
from typing import Any

import requests
from databricks.sdk import WorkspaceClient
from databricks.sdk.config import Config
from databricks.sdk.errors import (
    DatabricksError,
    DeadlineExceeded,
    PermissionDenied,
    TemporarilyUnavailable,
    TooManyRequests,
    Unauthenticated,
)
from databricks.sdk.service.serving import QueryEndpointResponse

from src.config import get_settings
from src.services.errors import (
    AudioFileNotFoundError,
    AuthError,
    EngineError,
    RateLimitError,
    TranscriptionError,
    TransientEngineError,
)
from src.services.segments import TranscriptionResult, build_result, parse_engine_payload

logger = logging.getLogger(__name__)

BASE_RETRY_DELAY_MS = 1000
TIMESTAMP_GRANULARITIES = ["word", "segment"]

_TRANSIENT_ERRORS = (
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
    ConnectionError,
    TimeoutError,
    DeadlineExceeded,
    TemporarilyUnavailable,
)


def backoff_delay_seconds(attempt: int) -> float:
    """Delay before the attempt following ``attempt`` (numbered from 1).

    Yields 2s after the first attempt and 4s after the second.
    """
    return (2**attempt) * BASE_RETRY_DELAY_MS / 1000


def classify_engine_error(exc: Exception) -> TranscriptionError:
    """Map an exception raised while calling the engine onto the taxonomy.

    Args:
        exc: The exception raised by the SDK, the network stack or the
            response validation.

    Returns:
        AuthError, RateLimitError or TransientEngineError for recognised
        conditions, the exception itself if already classified, otherwise
        a generic EngineError.
    """
    if isinstance(exc, TranscriptionError):
        return exc

    # The SDK's own retry loop gives up with TimeoutError chained to the
    # last real failure
    if isinstance(exc, TimeoutError) and isinstance(exc.__cause__, DatabricksError):
        return classify_engine_error(exc.__cause__)

    if isinstance(exc, (Unauthenticated, PermissionDenied)):
        return AuthError(f"Speech engine rejected credentials: {exc}")

    if isinstance(exc, TooManyRequests):
        return RateLimitError(f"Speech engine rate limit exceeded, try again later: {exc}")

    if isinstance(exc, _TRANSIENT_ERRORS):
        return TransientEngineError(f"Speech engine unreachable: {exc}")

    return EngineError(f"Transcription failed: {exc}")


class SpeechEngineClient:
    """Async client for the speech-to-text serving endpoint.

    The Databricks SDK is blocking, so each query runs in a worker thread;
    backoff sleeps only suspend the calling coroutine.
    """

    def __init__(
        self,
        client: WorkspaceClient | None = None,
        endpoint_name: str | None = None,
        language: str | None = None,
        max_attempts: int | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        settings = get_settings()
        self._client = client
        self.endpoint_name = endpoint_name or settings.TRANSCRIPTION_ENDPOINT
        self.language = language or settings.TRANSCRIPTION_LANGUAGE
        self.max_attempts = max_attempts or settings.TRANSCRIPTION_MAX_ATTEMPTS
        self._sleep = sleep

    @property
    def client(self) -> WorkspaceClient:
        """Lazily created WorkspaceClient."""
        if self._client is None:
            settings = get_settings()
            self._client = WorkspaceClient(
                config=Config(http_timeout_seconds=settings.TRANSCRIPTION_TIMEOUT_SECONDS)
            )
        return self._client

    async def transcribe(
        self,
        audio_path: str | Path,
        language: str | None = None,
    ) -> TranscriptionResult:
        """Transcribe one audio artifact.

        Args:
            audio_path: Path to the stored audio file.
            language: Language hint. Defaults to the client's language.

        Returns:
            TranscriptionResult with normalized segments.

        Raises:
            AudioFileNotFoundError: If the file does not exist.
            AuthError: If the engine rejected our credentials.
            RateLimitError: If the engine throttled the request.
            TransientEngineError: If every attempt failed transiently.
            EngineError: For any other engine failure.
        """
        path = Path(audio_path)
        if not path.is_file():
            raise AudioFileNotFoundError(f"Audio file not found: {audio_path}")

        language = language or self.language

        for attempt in range(1, self.max_attempts + 1):
            try:
                prediction = await self._attempt(path, language)
                break
            except Exception as exc:
                error = classify_engine_error(exc)

                if not isinstance(error, TransientEngineError):
                    logger.error(f"Transcription of {path.name} failed fatally: {error}")
                    if error is exc:
                        raise
                    raise error from exc

                if attempt >= self.max_attempts:
                    logger.error(
                        f"Transcription of {path.name} failed after {attempt} attempts: {error}"
                    )
                    if error is exc:
                        raise
                    raise error from exc

                delay = backoff_delay_seconds(attempt)
                logger.warning(
                    f"Transcription of {path.name} failed "
                    f"(attempt {attempt}/{self.max_attempts}): {error}; "
                    f"retrying in {delay:.0f}s"
                )
                await self._sleep(delay)

        result = build_result(parse_engine_payload(prediction), default_language=language)
        logger.info(
            f"Transcribed {path.name}: {len(result.segments)} segments, "
            f"duration {result.duration:.1f}s"
        )
        return result

    async def _attempt(self, path: Path, language: str) -> dict[str, Any]:
        """Run one engine call; the audio handle is closed on every exit."""
        with open(path, "rb") as audio_file:
            audio_base64 = base64.b64encode(audio_file.read()).decode("utf-8")
            request_data = {
                "audio_base64": audio_base64,
                "language": language,
                "format": path.suffix.lstrip(".").lower() or "wav",
                "timestamp_granularities": TIMESTAMP_GRANULARITIES,
            }
            response = await asyncio.to_thread(self._query, [request_data])

        return _extract_prediction(response)

    def _query(self, dataframe_records: list[dict[str, Any]]) -> QueryEndpointResponse:
        """POST one invocation to the serving endpoint as a single HTTP request.

        The SDK replays failed requests on its own until its retry timeout,
        except when the body is a stream it cannot rewind. Sending the body
        as such a stream leaves the attempt count to transcribe().
        """
        body = _SingleUseBody(json.dumps({"dataframe_records": dataframe_records}).encode())
        res = self.client.api_client.do(
            "POST",
            f"/serving-endpoints/{self.endpoint_name}/invocations",
            headers={"Accept": "application/json", "Content-Type": "application/json"},
            data=body,
        )
        return QueryEndpointResponse.from_dict(res)


class _SingleUseBody(io.BytesIO):
    """In-memory request body that reports itself as not rewindable."""

    def seekable(self) -> bool:
        return False


def _extract_prediction(response: Any) -> dict[str, Any]:
    """Validate the serving endpoint response and return its prediction."""
    if response.predictions is None:
        raise EngineError("Invalid response: predictions is None")

    if len(response.predictions) == 0:
        raise EngineError("Invalid response: predictions list is empty")

    prediction = response.predictions[0]

    # Check for error in response (check value, not just key existence)
    if prediction.get("error"):
        raise EngineError(f"Speech engine error: {prediction['error']}")

    return prediction


@lru_cache(maxsize=1)
def get_speech_engine() -> SpeechEngineClient:
    """Get the shared speech engine client.

    Returns:
        A SpeechEngineClient configured from settings.
    """
    return SpeechEngineClient()
