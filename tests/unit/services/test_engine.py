"""Unit tests for the speech engine adapter.

The Databricks WorkspaceClient is replaced by a MagicMock and backoff sleeps
are recorded instead of awaited, so no test waits on real time.
"""

import asyncio
import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, call, mock_open, patch

import pytest
import requests
from databricks.sdk.errors import PermissionDenied, TooManyRequests, Unauthenticated

from src.services.engine import (
    SpeechEngineClient,
    backoff_delay_seconds,
    classify_engine_error,
)
from src.services.errors import (
    AudioFileNotFoundError,
    AudioValidationError,
    AuthError,
    EngineError,
    RateLimitError,
    TransientEngineError,
)


def _response(prediction: dict) -> dict:
    return {"predictions": [prediction]}


@pytest.fixture
def audio_path(tmp_path: Path) -> Path:
    """A small audio file on disk."""
    path = tmp_path / "meeting.wav"
    path.write_bytes(b"RIFF0000WAVEfmt data")
    return path


@pytest.fixture
def workspace_client() -> MagicMock:
    """Mock WorkspaceClient whose API client responses are configurable."""
    return MagicMock()


@pytest.fixture
def sleep() -> AsyncMock:
    """Recorder standing in for asyncio.sleep."""
    return AsyncMock()


@pytest.fixture
def engine(workspace_client: MagicMock, sleep: AsyncMock) -> SpeechEngineClient:
    """SpeechEngineClient wired to the mocks."""
    return SpeechEngineClient(
        client=workspace_client,
        endpoint_name="test-endpoint",
        language="en",
        max_attempts=3,
        sleep=sleep,
    )


class TestBackoff:
    """Tests for the backoff schedule."""

    def test_delays_double_from_two_seconds(self) -> None:
        """Waits are 2s after the first attempt and 4s after the second."""
        assert backoff_delay_seconds(1) == 2.0
        assert backoff_delay_seconds(2) == 4.0


class TestClassifyEngineError:
    """Tests for classify_engine_error()."""

    @pytest.mark.parametrize(
        "exc, expected",
        [
            (Unauthenticated("invalid token"), AuthError),
            (PermissionDenied("no access to endpoint"), AuthError),
            (TooManyRequests("slow down"), RateLimitError),
            (requests.exceptions.ConnectionError("reset by peer"), TransientEngineError),
            (requests.exceptions.Timeout("read timed out"), TransientEngineError),
            (TimeoutError("timed out"), TransientEngineError),
            (ConnectionResetError("reset"), TransientEngineError),
            (KeyError("predictions"), EngineError),
        ],
    )
    def test_maps_to_taxonomy(self, exc: Exception, expected: type) -> None:
        """Each failure maps onto its error class."""
        error = classify_engine_error(exc)

        assert type(error) is expected

    def test_classified_error_is_returned_unchanged(self) -> None:
        """Errors already in the taxonomy pass through."""
        original = EngineError("Speech engine error: bad audio")

        assert classify_engine_error(original) is original

    def test_sdk_timeout_is_classified_by_its_cause(self) -> None:
        """A TimeoutError chained to a throttling reply stays a rate-limit error."""
        try:
            try:
                raise TooManyRequests("slow down")
            except TooManyRequests as last_err:
                raise TimeoutError("Timed out after 0:05:00") from last_err
        except TimeoutError as exc:
            error = classify_engine_error(exc)

        assert type(error) is RateLimitError


class TestTranscribe:
    """Tests for SpeechEngineClient.transcribe()."""

    def test_success_returns_normalized_result(
        self, engine: SpeechEngineClient, workspace_client: MagicMock, audio_path: Path
    ) -> None:
        """A segments prediction becomes a TranscriptionResult."""
        workspace_client.api_client.do.return_value = _response(
            {
                "text": "Hello there.",
                "language": "en",
                "segments": [{"start": 0.0, "end": 1.5, "text": "Hello there."}],
            }
        )

        result = asyncio.run(engine.transcribe(audio_path))

        assert result.text == "Hello there."
        assert result.duration == 1.5
        assert [s.text for s in result.segments] == ["Hello there."]

    def test_request_carries_audio_and_language(
        self, engine: SpeechEngineClient, workspace_client: MagicMock, audio_path: Path
    ) -> None:
        """The endpoint receives base64 audio, the language and the format."""
        workspace_client.api_client.do.return_value = _response({"text": "ok"})

        asyncio.run(engine.transcribe(audio_path, language="de"))

        args, kwargs = workspace_client.api_client.do.call_args
        assert args == ("POST", "/serving-endpoints/test-endpoint/invocations")
        assert kwargs["headers"]["Content-Type"] == "application/json"
        record = json.loads(kwargs["data"].getvalue())["dataframe_records"][0]
        assert record["language"] == "de"
        assert record["format"] == "wav"
        assert record["audio_base64"]

    def test_retries_transient_errors_with_backoff(
        self,
        engine: SpeechEngineClient,
        workspace_client: MagicMock,
        sleep: AsyncMock,
        audio_path: Path,
    ) -> None:
        """Two transient failures then success waits 2s and 4s."""
        workspace_client.api_client.do.side_effect = [
            requests.exceptions.ConnectionError("reset"),
            TimeoutError("timed out"),
            _response({"text": "third time lucky"}),
        ]

        result = asyncio.run(engine.transcribe(audio_path))

        assert result.text == "third time lucky"
        assert workspace_client.api_client.do.call_count == 3
        assert sleep.await_args_list == [call(2.0), call(4.0)]

    def test_gives_up_after_three_attempts(
        self,
        engine: SpeechEngineClient,
        workspace_client: MagicMock,
        sleep: AsyncMock,
        audio_path: Path,
    ) -> None:
        """Persistent timeouts surface as TransientEngineError after 3 calls."""
        workspace_client.api_client.do.side_effect = TimeoutError("timed out")

        with pytest.raises(TransientEngineError):
            asyncio.run(engine.transcribe(audio_path))

        assert workspace_client.api_client.do.call_count == 3
        assert sleep.await_args_list == [call(2.0), call(4.0)]

    @pytest.mark.parametrize(
        "exc, expected",
        [
            (Unauthenticated("invalid token"), AuthError),
            (TooManyRequests("slow down"), RateLimitError),
        ],
    )
    def test_fatal_errors_are_not_retried(
        self,
        engine: SpeechEngineClient,
        workspace_client: MagicMock,
        sleep: AsyncMock,
        audio_path: Path,
        exc: Exception,
        expected: type,
    ) -> None:
        """Auth and rate-limit errors fail after a single call."""
        workspace_client.api_client.do.side_effect = exc

        with pytest.raises(expected):
            asyncio.run(engine.transcribe(audio_path))

        assert workspace_client.api_client.do.call_count == 1
        sleep.assert_not_awaited()

    def test_prediction_error_is_not_retried(
        self,
        engine: SpeechEngineClient,
        workspace_client: MagicMock,
        sleep: AsyncMock,
        audio_path: Path,
    ) -> None:
        """An error reported inside the prediction fails immediately."""
        workspace_client.api_client.do.return_value = _response(
            {"error": "unsupported codec"}
        )

        with pytest.raises(EngineError, match="unsupported codec"):
            asyncio.run(engine.transcribe(audio_path))

        assert workspace_client.api_client.do.call_count == 1
        sleep.assert_not_awaited()

    def test_empty_predictions_raise(
        self, engine: SpeechEngineClient, workspace_client: MagicMock, audio_path: Path
    ) -> None:
        """A response without predictions is an EngineError."""
        workspace_client.api_client.do.return_value = {"predictions": []}

        with pytest.raises(EngineError, match="predictions list is empty"):
            asyncio.run(engine.transcribe(audio_path))

    def test_missing_file_never_calls_engine(
        self, engine: SpeechEngineClient, workspace_client: MagicMock, tmp_path: Path
    ) -> None:
        """A missing artifact is rejected before any engine call."""
        missing = tmp_path / "gone.wav"

        with pytest.raises(AudioFileNotFoundError) as exc_info:
            asyncio.run(engine.transcribe(missing))

        assert isinstance(exc_info.value, AudioValidationError)
        workspace_client.api_client.do.assert_not_called()

    def test_audio_handle_closed_after_every_attempt(
        self,
        engine: SpeechEngineClient,
        workspace_client: MagicMock,
        audio_path: Path,
    ) -> None:
        """Each attempt opens the file once and closes it, failure or not."""
        workspace_client.api_client.do.side_effect = [
            TimeoutError("timed out"),
            TimeoutError("timed out"),
            _response({"text": "done"}),
        ]
        opener = mock_open(read_data=b"audio-bytes")

        with patch("builtins.open", opener):
            asyncio.run(engine.transcribe(audio_path))

        assert opener.call_count == 3
        assert opener.return_value.__exit__.call_count == 3

    def test_audio_handle_closed_after_fatal_error(
        self,
        engine: SpeechEngineClient,
        workspace_client: MagicMock,
        audio_path: Path,
    ) -> None:
        """A fatal error still releases the file handle."""
        workspace_client.api_client.do.side_effect = Unauthenticated("expired")
        opener = mock_open(read_data=b"audio-bytes")

        with patch("builtins.open", opener), pytest.raises(AuthError):
            asyncio.run(engine.transcribe(audio_path))

        assert opener.return_value.__exit__.call_count == 1
