import json
import logging
import re
from typing import Any

from analyzer.errors import ParseError

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"^```[a-zA-Z0-9_-]*\s*\n(.*?)\n?```$", re.DOTALL)


def strip_code_fence(response_text: str) -> str:
    """Remove a Markdown code fence wrapped around the whole response."""
    cleaned = response_text.strip()
    match = _CODE_FENCE.match(cleaned)
    if match:
        return match.group(1).strip()
    return cleaned


# JSON Parsing Function
def parse_json_payload(response_text: str) -> Any:
    """
    Parse the provider's text output as a single JSON value.

    A Markdown code fence around the whole reply is removed, then the text
    goes through the standard json parser. Nothing is repaired: comments,
    trailing commas, single quotes or unquoted keys make the payload invalid.

    Args:
        response_text: Raw text response from the analysis provider

    Returns:
        The decoded JSON value (usually a dict)

    Raises:
        ParseError: If the text is empty or not strict JSON
    """
    if not response_text or not response_text.strip():
        raise ParseError("Failed to parse analysis response: provider returned no text")

    cleaned = strip_code_fence(response_text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error(f"Analysis response is not JSON. Preview: {cleaned[:200]!r}")
        raise ParseError(f"Failed to parse analysis response: {str(e)}") from e
