"""
Parse label extractions returned by the vision model.

The model is asked for bare JSON but routinely wraps it in markdown fences or
adds a sentence before/after. Parsing strips fences, cuts the text down to the
outermost braces and decodes whatever is left.
"""

import json
import logging
import re
from typing import Any, Dict, Mapping

logger = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*\n?", re.IGNORECASE)


class ExtractionParseError(ValueError):
    """The model response did not contain a JSON object."""

    def __init__(self, message: str, text: str = ""):
        super().__init__(message)
        self.text = text


def strip_code_fences(text: str) -> str:
    return _FENCE_PATTERN.sub("", text).strip()


def parse_extraction_response(text: str) -> Dict[str, Any]:
    """
    Decode the JSON object inside a model response.

    Args:
        text: Raw concatenated text blocks from the model

    Returns:
        Extraction fields as a dict (contents are not validated)

    Raises:
        ExtractionParseError: If no JSON object can be decoded
    """
    if not isinstance(text, str) or not text.strip():
        raise ExtractionParseError("Empty response from extraction model", text or "")

    cleaned = strip_code_fences(text)

    first_brace = cleaned.find("{")
    last_brace = cleaned.rfind("}")
    if first_brace != -1 and last_brace > first_brace:
        cleaned = cleaned[first_brace:last_brace + 1]

    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning(f"Extraction response is not valid JSON: {e}")
        raise ExtractionParseError(f"Failed to parse extraction response: {e}", cleaned) from e

    if not isinstance(payload, dict):
        raise ExtractionParseError(
            f"Extraction response is a {type(payload).__name__}, expected an object", cleaned
        )

    logger.debug(f"Parsed extraction with keys: {sorted(payload)}")
    return payload


def extract_text_blocks(response_body: Mapping[str, Any]) -> str:
    """Concatenate the text blocks of a messages-API response body."""
    content = response_body.get("content") if isinstance(response_body, Mapping) else None
    if not isinstance(content, list):
        return ""
    return "".join(
        block.get("text", "")
        for block in content
        if isinstance(block, Mapping) and block.get("type") == "text"
    )
