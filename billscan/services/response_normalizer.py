"""Recover the model's JSON text from a Gemini response envelope."""

import json
import logging
import re
from typing import Any, Optional, Union

from billscan.services.results import ErrorKind, Failure, Ok, Result

logger = logging.getLogger(__name__)

_OPENING_FENCE = re.compile(r"^```(?:json)?", re.IGNORECASE)
_CLOSING_FENCE = "```"


def get_path(value: Any, *steps: Union[str, int]) -> Optional[Any]:
    """
    Walk a parsed JSON value, returning None at the first missing step.

    String steps index objects and integer steps index arrays, so
    ``get_path(doc, "candidates", 0, "content")`` never raises.
    """
    current = value
    for step in steps:
        if isinstance(step, int):
            if not isinstance(current, list) or not -len(current) <= step < len(current):
                return None
            current = current[step]
        else:
            if not isinstance(current, dict) or step not in current:
                return None
            current = current[step]
        if current is None:
            return None
    return current


def extract_generated_text(envelope: str) -> Result[str]:
    """Pull ``candidates[0].content.parts[0].text`` out of the raw response body."""
    try:
        document = json.loads(envelope)
    except json.JSONDecodeError as e:
        logger.warning(f"Gemini response envelope is not valid JSON: {str(e)}")
        return Failure(
            ErrorKind.EXTRACTION_EMPTY,
            "The extraction service returned an unreadable response",
            detail=envelope,
        )

    text = get_path(document, "candidates", 0, "content", "parts", 0, "text")
    if not isinstance(text, str) or not text.strip():
        logger.warning(f"Could not extract text from Gemini response structure. Raw response: {envelope[:500]}")
        return Failure(
            ErrorKind.EXTRACTION_EMPTY,
            "No bill data could be extracted from the image",
            detail=envelope,
        )

    return Ok(text)


def strip_code_fences(text: str) -> str:
    """
    Remove a surrounding markdown code fence from model output.

    Text that does not start with a fence is returned trimmed and otherwise
    untouched, so applying this twice gives the same result as once.
    """
    cleaned = text.strip()
    match = _OPENING_FENCE.match(cleaned)
    if match is None:
        return cleaned

    cleaned = cleaned[match.end():].strip()
    if cleaned.endswith(_CLOSING_FENCE):
        cleaned = cleaned[:-len(_CLOSING_FENCE)].strip()
    return cleaned


def normalize_response(envelope: str) -> Result[str]:
    """Extract the generated text from an envelope and strip code fences."""
    extracted = extract_generated_text(envelope)
    if isinstance(extracted, Failure):
        return extracted

    logger.debug(f"Raw extracted text: {extracted.value[:200]}")
    cleaned = strip_code_fences(extracted.value)
    if not cleaned:
        logger.warning("Gemini returned an empty code block")
        return Failure(
            ErrorKind.EXTRACTION_EMPTY,
            "No bill data could be extracted from the image",
            detail=extracted.value,
        )

    logger.debug(f"Cleaned JSON for deserialization: {cleaned[:200]}")
    return Ok(cleaned)
