"""Segment normalization for speech engine results.

The engine answers in one of three shapes depending on what the model could
produce: sentence-level segments, word-level timestamps, or plain text. Each
shape is parsed into its own payload type and normalized into a uniform list
of timed Segments.
"""

import logging
import math
import re
from dataclasses import dataclass, field, replace
from typing import Any

from src.models import Channel

logger = logging.getLogger(__name__)

# Word grouping boundaries
MAX_WORD_GAP_SECONDS = 1.0
MAX_WORDS_PER_SEGMENT = 20
TERMINAL_PUNCTUATION = (".", "!", "?")

# Plain-text fallback timing
MIN_SENTENCE_SECONDS = 2.0
SECONDS_PER_CHARACTER = 0.05
SENTENCE_GAP_SECONDS = 0.5
WORDS_PER_SECOND = 2.5

SENTENCE_SPLIT_PATTERN = re.compile(r"[.!?]+")


@dataclass
class Segment:
    """A timed span of transcribed text.

    Attributes:
        start: Start time in seconds.
        end: End time in seconds, never before start.
        text: Transcribed text.
        source: Channel the audio was captured on, None until tagged.
        speaker: Optional speaker label.
    """

    start: float
    end: float
    text: str
    source: Channel | None = None
    speaker: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON storage."""
        data: dict[str, Any] = {
            "start": self.start,
            "end": self.end,
            "text": self.text,
            "source": self.source.value if self.source else None,
        }
        if self.speaker is not None:
            data["speaker"] = self.speaker
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Segment":
        """Rebuild a Segment from its stored dict."""
        source = data.get("source")
        return cls(
            start=float(data["start"]),
            end=float(data["end"]),
            text=data.get("text", ""),
            source=Channel(source) if source else None,
            speaker=data.get("speaker"),
        )


@dataclass
class SegmentPayload:
    """Engine returned sentence-level segments with timestamps."""

    segments: list[dict[str, Any]]
    text: str = ""
    language: str | None = None


@dataclass
class WordPayload:
    """Engine returned only word-level timestamps."""

    words: list[dict[str, Any]]
    text: str = ""
    language: str | None = None


@dataclass
class TextPayload:
    """Engine returned plain text without any timing."""

    text: str = ""
    language: str | None = None


RawTranscription = SegmentPayload | WordPayload | TextPayload


@dataclass
class TranscriptionResult:
    """Normalized result of transcribing one audio artifact."""

    text: str
    segments: list[Segment] = field(default_factory=list)
    duration: float = 0.0
    language: str | None = None


def parse_engine_payload(payload: dict[str, Any]) -> RawTranscription:
    """Classify a raw engine prediction into one of the payload shapes.

    Args:
        payload: Prediction dict returned by the serving endpoint.

    Returns:
        SegmentPayload if non-empty segments are present, else WordPayload if
        non-empty words are present, else TextPayload.
    """
    text = payload.get("text") or payload.get("transcription") or ""
    language = payload.get("language")

    if payload.get("segments"):
        return SegmentPayload(segments=list(payload["segments"]), text=text, language=language)

    if payload.get("words"):
        return WordPayload(words=list(payload["words"]), text=text, language=language)

    return TextPayload(text=text, language=language)


def _word_text(word: dict[str, Any]) -> str:
    return str(word.get("word", word.get("text", ""))).strip()


def group_words_into_segments(words: list[dict[str, Any]]) -> list[Segment]:
    """Group word timestamps into sentence-like segments.

    A segment closes after a word that ends with terminal punctuation, when
    the gap to the next word exceeds MAX_WORD_GAP_SECONDS, or once it holds
    MAX_WORDS_PER_SEGMENT words.

    Args:
        words: Word dicts with "word" (or "text"), "start" and "end" keys.

    Returns:
        Segments in word order.
    """
    segments: list[Segment] = []
    current: list[dict[str, Any]] = []

    for i, word in enumerate(words):
        current.append(word)
        token = _word_text(word)

        is_last = i == len(words) - 1
        gap = None if is_last else float(words[i + 1].get("start", 0)) - float(word.get("end", 0))

        closes = (
            token.endswith(TERMINAL_PUNCTUATION)
            or (gap is not None and gap > MAX_WORD_GAP_SECONDS)
            or len(current) >= MAX_WORDS_PER_SEGMENT
        )
        if closes:
            segments.append(_segment_from_words(current))
            current = []

    if current:
        segments.append(_segment_from_words(current))

    return segments


def _segment_from_words(words: list[dict[str, Any]]) -> Segment:
    text = " ".join(_word_text(w) for w in words).strip()
    return Segment(
        start=float(words[0].get("start", 0)),
        end=float(words[-1].get("end", 0)),
        text=text,
    )


def segments_from_text(text: str) -> list[Segment]:
    """Fabricate timed segments from plain text.

    Each sentence is given MIN_SENTENCE_SECONDS or SECONDS_PER_CHARACTER per
    character, whichever is longer, and sentences are separated by
    SENTENCE_GAP_SECONDS.

    Args:
        text: Plain transcript text.

    Returns:
        Segments in sentence order, empty for blank text.
    """
    if not text:
        return []

    segments: list[Segment] = []
    current_time = 0.0
    for sentence in SENTENCE_SPLIT_PATTERN.split(text):
        sentence = sentence.strip()
        if not sentence:
            continue
        duration = max(MIN_SENTENCE_SECONDS, len(sentence) * SECONDS_PER_CHARACTER)
        segments.append(Segment(start=current_time, end=current_time + duration, text=sentence))
        current_time += duration + SENTENCE_GAP_SECONDS

    return segments


def estimate_duration_from_text(text: str) -> float:
    """Estimate spoken duration from word count at WORDS_PER_SECOND."""
    if not text or not text.strip():
        return 0.0
    return float(math.ceil(len(text.split()) / WORDS_PER_SECOND))


def normalize(raw: RawTranscription) -> list[Segment]:
    """Convert any engine payload into a uniform list of segments.

    Args:
        raw: Parsed engine payload.

    Returns:
        Untagged segments ordered by start time.
    """
    if isinstance(raw, SegmentPayload):
        segments = [
            Segment(
                start=float(seg.get("start", 0)),
                end=float(seg.get("end", 0)),
                text=str(seg.get("text", "")).strip(),
                speaker=seg.get("speaker"),
            )
            for seg in raw.segments
        ]
        # Stable, so segments sharing a start keep the engine's order
        return sorted(segments, key=lambda s: s.start)

    if isinstance(raw, WordPayload):
        return group_words_into_segments(raw.words)

    return segments_from_text(raw.text)


def _full_text(raw: RawTranscription, segments: list[Segment]) -> str:
    if raw.text:
        return raw.text
    return " ".join(s.text for s in segments)


def build_result(raw: RawTranscription, default_language: str | None = None) -> TranscriptionResult:
    """Normalize a payload and compute its overall duration.

    Duration is the latest segment end, or a word-count estimate when the
    payload produced no segments.

    Args:
        raw: Parsed engine payload.
        default_language: Language to report when the engine omitted one.

    Returns:
        TranscriptionResult for the artifact.
    """
    segments = normalize(raw)
    text = _full_text(raw, segments)

    if segments:
        duration = max(s.end for s in segments)
    else:
        duration = estimate_duration_from_text(text)

    logger.debug(
        f"Normalized {type(raw).__name__} into {len(segments)} segments, "
        f"duration {duration:.1f}s"
    )

    return TranscriptionResult(
        text=text,
        segments=segments,
        duration=duration,
        language=raw.language or default_language,
    )


def tag_segments(segments: list[Segment], channel: Channel) -> list[Segment]:
    """Return copies of ``segments`` attributed to ``channel``."""
    return [replace(s, source=channel) for s in segments]
