"""
Lenient JSON extraction from model output.

Models wrap JSON in prose or code fences. We take the span from the first
"{" to the last "}" and parse that; anything else is the caller's fallback.
"""

import json
import logging

logger = logging.getLogger(__name__)


def extract_json(text: str) -> dict | None:
    """Return the JSON object embedded in `text`, or None if there isn't a valid one."""
    if not text:
        return None

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None

    try:
        parsed = json.loads(text[start:end + 1])
    except json.JSONDecodeError as e:
        logger.debug(f"[JSONParser] Could not parse JSON span: {e}")
        return None

    return parsed if isinstance(parsed, dict) else None
