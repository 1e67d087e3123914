"""
Prompt Assembler

Placeholder substitution for the system and user templates. Substitution is
literal: unknown placeholders and stray braces pass through untouched.
"""

import logging
from pathlib import Path
from typing import Optional

from clip_segmenter.models import ChatMessage, GenerationSettings

logger = logging.getLogger(__name__)


# --- Default templates ---

DEFAULT_SYSTEM_PROMPT = """You are an expert technical content editor for software developers.
Analyze video transcripts and extract the most valuable standalone segments for a developer or engineering audience.
Output format should be in JSON."""

DEFAULT_USER_PROMPT = """Below is a video transcript. Identify up to {segmentCount} best segments for a technical
or developer audience using the required format.
Each segment must be {segmentLength} seconds or less.

Transcript:
{transcript}"""

# One example element, repeated in the reminder for locally hosted models
EXAMPLE_SEGMENT = (
    '{"Start": "00:00:30", "End": "00:01:15", "Duration": 45, '
    '"Reasoning": "reason here", "Excerpt": "text here"}'
)


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def substitute(template: str, settings: GenerationSettings, transcript: Optional[str] = None) -> str:
    """Replace {segmentCount}, {segmentLength} and (when given) {transcript}."""
    text = template.replace("{segmentCount}", str(settings.segment_count))
    text = text.replace("{segmentLength}", _format_number(settings.segment_length_s))
    if transcript is not None:
        text = text.replace("{transcript}", transcript)
    return text


def structural_reminder(segment_count: int) -> str:
    """Extra format instructions for smaller, locally hosted models."""
    examples = ",\n  ".join([EXAMPLE_SEGMENT] * 3)
    return (
        f"CRITICAL: You MUST return EXACTLY {segment_count} segments.\n"
        "Your response MUST be a JSON ARRAY starting with [ and ending with ]\n"
        "\n"
        f"Example of correct format with {segment_count} segments:\n"
        "[\n"
        f"  {examples}\n"
        "]\n"
        "\n"
        "START YOUR RESPONSE WITH [ CHARACTER:"
    )


def assemble(
    template: str,
    settings: GenerationSettings,
    transcript: Optional[str] = None,
    locally_hosted: bool = False,
) -> str:
    """
    Build one prompt from a template.

    Args:
        template: Prompt template with optional placeholders
        settings: Generation settings supplying segment count and length
        transcript: Transcript text for {transcript}; None leaves it verbatim
        locally_hosted: Append the structural reminder block

    Returns:
        The prompt text
    """
    prompt = substitute(template, settings, transcript)
    if locally_hosted:
        prompt = f"{prompt}\n\n{structural_reminder(settings.segment_count)}"
    return prompt


def build_messages(
    settings: GenerationSettings,
    transcript: str,
    locally_hosted: bool = False,
) -> list[ChatMessage]:
    """System + user messages for one generation request."""
    system_template = settings.system_prompt or DEFAULT_SYSTEM_PROMPT
    user_template = settings.user_prompt or DEFAULT_USER_PROMPT

    return [
        ChatMessage(role="system", content=assemble(system_template, settings)),
        ChatMessage(
            role="user",
            content=assemble(user_template, settings, transcript, locally_hosted=locally_hosted),
        ),
    ]


def load_prompt_template(path: str, default: str) -> str:
    """Read a template file, falling back to the built-in default."""
    if not path:
        return default
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        logger.warning(f"Could not read prompt template '{path}' ({e}), using default")
        return default
