"""
Generation Orchestrator

Runs one segment generation call end to end:

    validate input -> resolve provider -> build prompt -> send ->
    normalize -> parse (strict, then loose) -> validate/clamp -> fallback

Once any response text has been received, a call never hard-fails for lack of
usable segments: if nothing survives validation, the fallback distributor
spreads segments evenly over the whole media instead.
"""

import asyncio
import logging
from typing import Callable, Optional

from clip_segmenter.errors import (
    EmptyInputError,
    EmptyResponseError,
    GenerationFailedError,
    SegmentationError,
    UpstreamError,
)
from clip_segmenter.fallback import distribute_segments
from clip_segmenter.models import ChatMessage, GenerationResult, GenerationSettings, SendOptions
from clip_segmenter.normalizer import normalize_response
from clip_segmenter.parser import parse_descriptors
from clip_segmenter.prompts import build_messages
from clip_segmenter.providers import Provider, ProviderRegistry
from clip_segmenter.timing import resolve_media_duration, validate_descriptors

logger = logging.getLogger(__name__)

CANCELLED = "Cancelled"

ProgressCallback = Callable[[str], None]


class _RequestCancelled(Exception):
    """The caller's timeout fired before the provider answered."""


def _failure(error_type: str, message: str) -> GenerationResult:
    return GenerationResult(
        success=False,
        segments=[],
        error=f"{error_type}: {message}",
        error_type=error_type,
    )


async def _send(provider: Provider, messages: list[ChatMessage]) -> str:
    try:
        return await provider.send(messages, SendOptions())
    except Exception as e:
        logger.error(f"{provider.name} request failed: {e}")
        raise UpstreamError(f"{provider.name} request failed: {e}") from e


async def _run_pipeline(
    registry: ProviderRegistry,
    project_id: str,
    transcript: str,
    settings: GenerationSettings,
    media_duration_s: Optional[float],
    timeout_s: Optional[float],
    report: ProgressCallback,
) -> GenerationResult:
    # Validating
    if not transcript or not transcript.strip():
        raise EmptyInputError("Transcript content is empty")

    duration = resolve_media_duration(media_duration_s)

    # Configuring
    provider = registry.resolve(settings.provider, settings)

    messages = build_messages(settings, transcript, locally_hosted=provider.locally_hosted)

    # Requesting
    report(f"[{provider.name}] Sending request to AI provider...")
    logger.info(
        f"Calling {provider.name} for project {project_id}: "
        f"{settings.segment_count} segments of {settings.segment_length_s}s, media {duration}s"
    )
    # Provider errors, its own timeouts included, become UpstreamError inside
    # _send, so a TimeoutError here can only come from the caller's bound
    try:
        response_text = await asyncio.wait_for(_send(provider, messages), timeout=timeout_s)
    except asyncio.TimeoutError:
        raise _RequestCancelled(f"Request abandoned after {timeout_s}s")

    # Normalizing
    if not response_text or not response_text.strip():
        raise EmptyResponseError("Empty response from AI provider")

    logger.info(f"{provider.name} response: {response_text[:200]}...")
    report(f"[{provider.name}] Processing AI response...")
    normalized = normalize_response(response_text)

    # Parsing
    descriptors = parse_descriptors(normalized, transcript, settings, duration)

    # ValidatingSegments
    segments = validate_descriptors(descriptors, project_id, duration)
    if len(segments) > settings.segment_count:
        logger.info(f"Truncating {len(segments)} segments to requested {settings.segment_count}")
        segments = segments[:settings.segment_count]

    if segments:
        return GenerationResult(success=True, segments=segments)

    logger.warning("No valid segments in AI response, distributing segments evenly")
    report("No usable segments in AI response, distributing segments across the video...")
    return GenerationResult(
        success=True,
        segments=distribute_segments(project_id, transcript, settings, duration),
        fallback_used=True,
    )


async def generate_segments(
    registry: ProviderRegistry,
    project_id: str,
    transcript: str,
    settings: GenerationSettings,
    media_duration_s: Optional[float] = None,
    *,
    timeout_s: Optional[float] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> GenerationResult:
    """
    Generate validated segments for one project.

    Args:
        registry: Provider registry owned by the caller
        project_id: Owning project reference copied onto every segment
        transcript: Full transcript text
        settings: Immutable generation settings snapshot
        media_duration_s: Total media length in seconds (300 if unknown)
        timeout_s: Optional bound on the provider request; on expiry the
            request is abandoned and a Cancelled result is returned
        on_progress: Optional callback receiving status messages

    Returns:
        GenerationResult. On failure `segments` is empty and `error_type`
        names the failure; `fallback_used` marks evenly distributed output.
    """

    def report(message: str) -> None:
        if on_progress:
            on_progress(message)

    report("Analyzing transcript for segment generation...")

    try:
        result = await _run_pipeline(
            registry, project_id, transcript, settings, media_duration_s, timeout_s, report
        )
    except _RequestCancelled as e:
        logger.warning(f"Segment generation for project {project_id} timed out after {timeout_s}s")
        return _failure(CANCELLED, str(e))
    except SegmentationError as e:
        logger.error(f"Segment generation failed ({e.error_type}): {e}")
        report(f"Segment generation failed: {e}")
        return _failure(e.error_type, str(e))
    except Exception as e:
        logger.exception("Segment generation failed")
        return _failure(GenerationFailedError.error_type, f"Segment generation failed: {e}")

    report(f"Generated {len(result.segments)} segments")
    return result
