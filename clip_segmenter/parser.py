"""
Segment Parsing

Two tiers turn the normalized array text into SegmentDescriptors:

- strict: the array is validated as typed descriptor objects
- loose: each element is read as a plain field bag with alternate field
  names; missing timestamps are filled in from the fallback spacing

The loose tier only runs when the strict tier fails structurally. If the loose
tier cannot read an array either, no descriptors are returned and the caller
falls back to even distribution.
"""

import json
import logging
import math
import re
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError

from clip_segmenter.fallback import calculate_start_times, slice_transcript
from clip_segmenter.models import GenerationSettings, SegmentDescriptor
from clip_segmenter.timing import format_clock_time, parse_clock_time, resolve_media_duration

logger = logging.getLogger(__name__)


# --- Constants ---

START_KEYS = ["Start", "start", "start_time", "startTime", "begin"]
END_KEYS = ["End", "end", "end_time", "endTime", "stop"]
DURATION_KEYS = ["Duration", "duration"]
EXCERPT_KEYS = ["Excerpt", "excerpt", "transcriptText", "transcript_text", "text"]
REASONING_KEYS = ["Reasoning", "reasoning", "reason"]
SUMMARY_KEYS = ["Summary", "summary", "title"]

_TRAILING_COMMA_RE = re.compile(r",\s*([\]}])")

_descriptor_list = TypeAdapter(list[SegmentDescriptor])


class StructuralParseError(Exception):
    """The text is not an array of descriptor objects."""


# --- Helpers ---


def _load_array(text: str) -> list:
    """
    Decode a JSON array, tolerating trailing commas.

    Raises:
        StructuralParseError: If the text is not valid JSON or not an array
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        try:
            data = json.loads(_TRAILING_COMMA_RE.sub(r"\1", text))
        except json.JSONDecodeError as e:
            raise StructuralParseError(f"invalid JSON: {e}") from e

    if not isinstance(data, list):
        raise StructuralParseError(f"expected a JSON array, got {type(data).__name__}")

    return data


def _first(bag: dict, keys: list[str]) -> Any:
    for key in keys:
        value = bag.get(key)
        if value is not None and value != "":
            return value
    return None


def _as_clock_string(value: Any) -> Optional[str]:
    """Coerce a loose timestamp (string or number of seconds) to a clock string."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if not math.isfinite(value) or value < 0:
            return None
        return format_clock_time(float(value))
    if isinstance(value, str) and parse_clock_time(value) is not None:
        return value.strip()
    return None


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


# --- Tiers ---


def parse_strict(text: str) -> list[SegmentDescriptor]:
    """
    Parse the array as typed descriptors.

    Unknown fields are ignored. Per-element problems that still type-check
    (an empty or unparsable timestamp) are left for the validator.

    Raises:
        StructuralParseError: If the text is not an array of descriptor objects
    """
    data = _load_array(text)
    try:
        return _descriptor_list.validate_python(data)
    except ValidationError as e:
        raise StructuralParseError(f"descriptor schema mismatch: {e.error_count()} errors") from e


def parse_loose(
    text: str,
    transcript: str,
    settings: GenerationSettings,
    media_duration_s: Optional[float],
) -> list[SegmentDescriptor]:
    """
    Parse each array element as a generic field bag.

    An element without a usable start/end gets the fallback start offset for
    its position and a segment-length window; its excerpt is cut from the
    transcript proportionally when the element has none.

    Returns:
        Descriptors in element order, or [] if the text is not an array
    """
    try:
        elements = _load_array(text)
    except StructuralParseError as e:
        logger.warning(f"Loose parse failed, no descriptors recovered: {e}")
        return []

    duration = resolve_media_duration(media_duration_s)
    length = settings.segment_length_s
    start_times = calculate_start_times(duration, length, len(elements))

    descriptors = []
    for i, element in enumerate(elements):
        bag = element if isinstance(element, dict) else {}

        start = _as_clock_string(_first(bag, START_KEYS))
        end = _as_clock_string(_first(bag, END_KEYS))
        excerpt = _as_text(_first(bag, EXCERPT_KEYS))

        if start is None or end is None:
            synthesized = start_times[i]
            start = format_clock_time(synthesized)
            end = format_clock_time(min(synthesized + length, duration))
            if not excerpt.strip():
                excerpt = slice_transcript(transcript, synthesized, length, duration)
            logger.info(f"Element {i}: no usable start/end, synthesized {start} - {end}")

        raw_duration = _first(bag, DURATION_KEYS)
        try:
            duration_value = float(raw_duration) if raw_duration is not None else 0.0
        except (TypeError, ValueError):
            duration_value = 0.0

        descriptors.append(
            SegmentDescriptor(
                start=start,
                end=end,
                duration=duration_value,
                excerpt=excerpt,
                reasoning=_as_text(_first(bag, REASONING_KEYS)),
                summary=_as_text(_first(bag, SUMMARY_KEYS)) or f"Segment {i + 1}",
            )
        )

    return descriptors


def parse_descriptors(
    text: str,
    transcript: str,
    settings: GenerationSettings,
    media_duration_s: Optional[float],
) -> list[SegmentDescriptor]:
    """Strict tier first; the loose tier only on structural failure."""
    try:
        descriptors = parse_strict(text)
        logger.info(f"Strict parse recovered {len(descriptors)} descriptors")
        return descriptors
    except StructuralParseError as e:
        logger.warning(f"Strict parse failed ({e}), trying loose parse")

    descriptors = parse_loose(text, transcript, settings, media_duration_s)
    logger.info(f"Loose parse recovered {len(descriptors)} descriptors")
    return descriptors
