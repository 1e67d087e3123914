"""
Clock-time handling and the time validator/clamper.

Turns descriptor timestamps into second offsets, drops ranges that cannot be
placed inside the media, and clamps the rest to the media duration.
"""

import logging
import re
from typing import Optional

from clip_segmenter.models import Segment, SegmentDescriptor, SegmentStatus

logger = logging.getLogger(__name__)

# Media duration assumed when the caller does not know it
DEFAULT_MEDIA_DURATION_S = 300.0

SUMMARY_PREVIEW_CHARS = 50

# [D.]HH:MM[:SS[.fff]]
_CLOCK_RE = re.compile(
    r"^(?:(?P<days>\d+)\.)?(?P<hours>\d{1,2}):(?P<minutes>\d{1,2})(?::(?P<seconds>\d{1,2})(?:\.(?P<fraction>\d+))?)?$"
)
# A bare integer counts whole days
_DAYS_RE = re.compile(r"^\d+$")


def resolve_media_duration(media_duration_s: Optional[float]) -> float:
    """Return the known media duration, or the default when absent or non-positive."""
    if media_duration_s is None or media_duration_s <= 0:
        return DEFAULT_MEDIA_DURATION_S
    return float(media_duration_s)


def parse_clock_time(value: object) -> Optional[float]:
    """
    Parse a clock-time string into seconds.

    Accepts HH:MM:SS (optional fractional seconds), D.HH:MM:SS and HH:MM.
    Two parts are always hours and minutes ("01:30" is 1.5 hours)
    and a bare integer is whole days ("95" is 95 days). Such values
    usually fall past the end of the media and are dropped by the validator.

    Returns:
        Seconds as float, or None when the value cannot be interpreted
    """
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    if _DAYS_RE.match(text):
        return int(text) * 86400.0

    match = _CLOCK_RE.match(text)
    if not match:
        return None

    days = int(match.group("days") or 0)
    hours = int(match.group("hours"))
    minutes = int(match.group("minutes"))
    seconds = int(match.group("seconds") or 0)
    if match.group("fraction"):
        seconds += float(f"0.{match.group('fraction')}")

    if minutes >= 60 or seconds >= 60 or hours >= 24:
        return None

    return float(days * 86400 + hours * 3600 + minutes * 60 + seconds)


def format_clock_time(seconds: float) -> str:
    """Format seconds as HH:MM:SS.fff."""
    millis = int(round(max(0.0, seconds) * 1000))
    hours, rem = divmod(millis, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    secs, millis = divmod(rem, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{millis:03d}"


def _summary_for(descriptor: SegmentDescriptor) -> str:
    if descriptor.summary:
        return descriptor.summary
    return f"{descriptor.excerpt[:SUMMARY_PREVIEW_CHARS]}..."


def validate_descriptors(
    descriptors: list[SegmentDescriptor],
    project_id: str,
    media_duration_s: Optional[float],
) -> list[Segment]:
    """
    Convert descriptors into segments bounded by the media duration.

    Per descriptor: unparsable start/end is discarded, a start at or past the
    end of the media is discarded, the end is clamped to the media duration,
    and an empty or inverted range is discarded.

    Args:
        descriptors: Candidate segments in model order
        project_id: Owning project reference
        media_duration_s: Total media length in seconds (default 300 if unknown)

    Returns:
        Validated segments, in descriptor order
    """
    duration = resolve_media_duration(media_duration_s)
    segments = []

    for i, descriptor in enumerate(descriptors):
        start = parse_clock_time(descriptor.start)
        if start is None:
            logger.warning(f"Skipping descriptor {i}: unparsable start '{descriptor.start}'")
            continue

        end = parse_clock_time(descriptor.end)
        if end is None:
            logger.warning(f"Skipping descriptor {i}: unparsable end '{descriptor.end}'")
            continue

        if start >= duration:
            logger.warning(f"Skipping descriptor {i}: start {start}s exceeds media duration {duration}s")
            continue

        end = min(end, duration)

        if end <= start:
            logger.warning(f"Skipping descriptor {i}: end {end}s not after start {start}s")
            continue

        segments.append(
            Segment(
                project_id=project_id,
                start_offset=start,
                end_offset=end,
                transcript_excerpt=descriptor.excerpt,
                summary=_summary_for(descriptor),
                reasoning=descriptor.reasoning,
                status=SegmentStatus.GENERATED,
            )
        )

    return segments
