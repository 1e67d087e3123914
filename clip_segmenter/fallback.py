"""
Fallback Distributor

Deterministic uniform spacing used when no AI-authored segment survives
validation. Transcript text for each slot is cut out by proportional word
offsets, since word-level timestamps are not available at this layer.
"""

import logging
from typing import Optional

from clip_segmenter.models import GenerationSettings, Segment, SegmentStatus
from clip_segmenter.timing import SUMMARY_PREVIEW_CHARS, resolve_media_duration

logger = logging.getLogger(__name__)

# Recognizable marker so callers can tell fallback output from model output
FALLBACK_REASONING = (
    "Auto-generated segment distributed across video duration from preserved transcript content"
)

# Minimum words returned by slice_transcript when the window collapses
MIN_SLICE_WORDS = 10

# Smallest spacing between starts when segments cannot fit without overlap,
# as a fraction of segment length
MIN_OVERLAP_SPACING_RATIO = 0.1


def calculate_start_times(
    media_duration_s: float,
    segment_length_s: float,
    segment_count: int,
) -> list[float]:
    """
    Compute evenly spaced start offsets.

    When all segments fit (count * length <= duration) the first starts at 0
    and the last ends at the media end. Otherwise spacing shrinks to
    max(0.1 * length, (duration - length) / (count - 1)) and segments overlap,
    so the caller still gets exactly `segment_count` offsets.

    Args:
        media_duration_s: Media length in seconds
        segment_length_s: Requested segment length in seconds
        segment_count: Number of offsets to produce

    Returns:
        Ascending list of `segment_count` start offsets, each in [0, duration - length]
        (or 0 when length exceeds duration)
    """
    if segment_count < 1:
        return []

    latest_start = max(0.0, media_duration_s - segment_length_s)
    spacing = (media_duration_s - segment_length_s) / max(1, segment_count - 1)

    if segment_count * segment_length_s > media_duration_s:
        spacing = max(segment_length_s * MIN_OVERLAP_SPACING_RATIO, spacing)

    return [min(max(0.0, i * spacing), latest_start) for i in range(segment_count)]


def slice_transcript(
    transcript: str,
    start_s: float,
    segment_length_s: float,
    media_duration_s: Optional[float],
) -> str:
    """
    Return the transcript words proportionally covering [start, start + length].

    Assumes a uniform speaking rate across the media. At least 10 words are
    returned when the transcript has them, even if the time window maps to
    fewer.
    """
    duration = resolve_media_duration(media_duration_s)
    words = transcript.split()
    total_words = len(words)
    if total_words == 0:
        return ""

    start_ratio = start_s / duration
    end_ratio = min((start_s + segment_length_s) / duration, 1.0)

    start_index = int(start_ratio * total_words)
    end_index = int(end_ratio * total_words)

    start_index = max(0, min(start_index, total_words - 1))
    end_index = max(start_index + MIN_SLICE_WORDS, min(end_index, total_words))

    return " ".join(words[start_index:end_index])


def distribute_segments(
    project_id: str,
    transcript: str,
    settings: GenerationSettings,
    media_duration_s: Optional[float],
) -> list[Segment]:
    """Build `segment_count` evenly distributed segments over the whole media."""
    duration = resolve_media_duration(media_duration_s)
    length = settings.segment_length_s
    start_times = calculate_start_times(duration, length, settings.segment_count)

    logger.warning(
        f"Using fallback distribution: {len(start_times)} segments of {length}s over {duration}s"
    )

    segments = []
    for i, start in enumerate(start_times):
        text = slice_transcript(transcript, start, length, duration)
        segments.append(
            Segment(
                project_id=project_id,
                start_offset=start,
                end_offset=min(start + length, duration),
                transcript_excerpt=text,
                summary=f"Segment {i + 1}: {text[:SUMMARY_PREVIEW_CHARS]}...",
                reasoning=FALLBACK_REASONING,
                status=SegmentStatus.GENERATED,
            )
        )

    return segments
