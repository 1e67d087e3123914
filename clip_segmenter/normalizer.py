"""
Response Normalizer

Cleans raw model output down to a best-guess JSON array substring:
reasoning traces and code fences are stripped, a single bare object is
wrapped in an array, and known envelope shapes are unwrapped.
"""

import json
import logging
from typing import Optional

from clip_segmenter.errors import MisunderstoodTaskError

logger = logging.getLogger(__name__)

# Paired sentinels some models emit around their reasoning
TRACE_SENTINELS = [
    ("<think>", "</think>"),
    ("<thinking>", "</thinking>"),
]

FENCE = "```"

# Substrings hinting that the array sits inside a wrapper object
ENVELOPE_HINTS = ['"responses"', '"content"', '"question_']

MISUNDERSTOOD_MESSAGE = "Model misunderstood the task. Please try again or use a different model."


def strip_reasoning_traces(text: str) -> str:
    """Remove every complete reasoning block; stops at the first unpaired opener."""
    for opener, closer in TRACE_SENTINELS:
        while opener in text:
            start = text.find(opener)
            end = text.find(closer, start)
            if end < 0:
                break
            text = (text[:start] + text[end + len(closer):]).strip()
    return text


def strip_code_fence(text: str) -> str:
    """Drop one outer ``` fence when the whole text is wrapped in it."""
    if not text.startswith(FENCE):
        return text

    lines = text.split("\n")
    if len(lines) < 2 or not lines[-1].strip().startswith(FENCE):
        return text

    return "\n".join(lines[1:-1]).strip()


def _clean(text: str) -> str:
    # Repeat until stable so the result is a fixed point
    while True:
        cleaned = strip_code_fence(strip_reasoning_traces(text.strip()))
        if cleaned == text:
            return cleaned
        text = cleaned


def _is_question_answer(value: object) -> bool:
    if not isinstance(value, dict):
        return False
    keys = [str(k) for k in value]
    return any(k.startswith("question_") for k in keys) and any(k.startswith("answer_") for k in keys)


def _unwrap_envelope(text: str) -> Optional[str]:
    """
    Handle wrapper objects around the segment array.

    Returns:
        The unwrapped array substring, or None when the text is not a
        recognized envelope

    Raises:
        MisunderstoodTaskError: If the object is a question/answer set
    """
    if not any(hint in text for hint in ENVELOPE_HINTS):
        return None

    try:
        wrapped = json.loads(text)
    except json.JSONDecodeError:
        return None

    if isinstance(wrapped, list):
        if any(_is_question_answer(item) for item in wrapped):
            raise MisunderstoodTaskError(MISUNDERSTOOD_MESSAGE)
        return None

    if not isinstance(wrapped, dict):
        return None

    responses = wrapped.get("responses")
    if isinstance(responses, list):
        if responses and isinstance(responses[0], dict):
            content = responses[0].get("content")
            if isinstance(content, list):
                content = json.dumps(content)
            if isinstance(content, str) and content.strip():
                extracted = normalize_response(content)
                if extracted.startswith("["):
                    logger.info("Unwrapped 'responses' envelope from model output")
                    return extracted
        return None

    if _is_question_answer(wrapped):
        raise MisunderstoodTaskError(MISUNDERSTOOD_MESSAGE)

    return None


def normalize_response(text: str) -> str:
    """
    Reduce a raw completion to its best-guess segment array.

    Uses the first '[' and last ']' rather than bracket matching, which is
    enough because segment objects contain no nested arrays. Running this on
    its own output returns the same text.

    Args:
        text: Raw completion text

    Returns:
        The array substring, or the cleaned text when no array markers exist

    Raises:
        MisunderstoodTaskError: If the model answered with question/answer pairs
    """
    text = _clean(text)

    if text.startswith("{") and "[" not in text:
        logger.info("Model returned a single object, wrapping in array")
        text = f"[{text}]"

    start = text.find("[")
    end = text.rfind("]")
    if start < 0 or end <= start:
        return text

    unwrapped = _unwrap_envelope(text)
    if unwrapped is not None:
        return unwrapped

    return text[start:end + 1]
