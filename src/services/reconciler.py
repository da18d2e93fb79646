"""Dual-stream reconciliation of microphone and system-audio transcripts.

When both channels are captured, speech played through the speakers is often
picked up by the microphone too, so the two transcripts contain near-identical
segments at nearly the same time. Segments are merged by start time and a
segment is dropped when an already accepted neighbour within
DUPLICATE_TIME_WINDOW seconds shares most of its words.
"""

import logging

from src.services.segments import Segment

logger = logging.getLogger(__name__)

DUPLICATE_TIME_WINDOW = 2.0  # seconds
SIMILARITY_THRESHOLD = 0.8


def jaccard_similarity(text1: str, text2: str) -> float:
    """Compute word-set Jaccard similarity of two texts.

    Words are lower-cased and split on whitespace.

    Args:
        text1: First text.
        text2: Second text.

    Returns:
        Intersection size over union size in range [0, 1]; 0.0 if either
        text is empty.
    """
    if not text1 or not text2:
        return 0.0

    words1 = set(text1.lower().split())
    words2 = set(text2.lower().split())
    union = words1 | words2
    if not union:
        return 0.0

    return len(words1 & words2) / len(union)


def remove_duplicate_segments(
    segments: list[Segment],
    time_window: float = DUPLICATE_TIME_WINDOW,
    threshold: float = SIMILARITY_THRESHOLD,
) -> list[Segment]:
    """Drop segments that repeat an accepted neighbour.

    Args:
        segments: Segments sorted by start time.
        time_window: Maximum start-time distance for two segments to be
            compared.
        threshold: Similarity above which the later segment is a duplicate.

    Returns:
        The accepted segments in input order.
    """
    accepted: list[Segment] = []

    for segment in segments:
        is_duplicate = False

        for existing in reversed(accepted):
            if abs(segment.start - existing.start) > time_window:
                break
            if jaccard_similarity(segment.text, existing.text) > threshold:
                is_duplicate = True
                break

        if is_duplicate:
            logger.debug(
                f"Dropping duplicate {segment.source} segment at {segment.start:.1f}s"
            )
            continue
        accepted.append(segment)

    return accepted


def merge_segments(
    input_segments: list[Segment],
    output_segments: list[Segment],
) -> list[Segment]:
    """Merge two channel-tagged segment lists into one deduplicated timeline.

    The sort is stable, so for equal start times input (microphone) segments
    stay ahead of output segments.

    Args:
        input_segments: Segments tagged with the input channel.
        output_segments: Segments tagged with the output channel.

    Returns:
        Segments ordered by start time with duplicates removed.
    """
    combined = [*input_segments, *output_segments]
    combined.sort(key=lambda s: s.start)

    merged = remove_duplicate_segments(combined)

    logger.info(
        f"Merged {len(input_segments)} input and {len(output_segments)} output "
        f"segments into {len(merged)}"
    )
    return merged
