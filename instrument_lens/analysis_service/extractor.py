"""
Best-effort extraction of a single JSON object from free-form model output.

The reply is sliced from the first "{" to the last "}" and parsed. This is a
heuristic, not a grammar: a stray brace inside prose or a string literal
outside the real object will break the slice.
"""

import json
import logging
from typing import Any, Dict, Optional


def extract_json_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Pull one JSON object out of `text`.

    Args:
        text (str): Raw model reply, possibly wrapped in prose or code fences.

    Returns:
        dict: The parsed object, or None when no braces are found, they are
        inverted, the slice is not valid JSON, or it decodes to a non-object.
    """
    if not text:
        return None

    first = text.find("{")
    last = text.rfind("}")
    if first == -1 or last == -1 or last < first:
        return None

    candidate = text[first:last + 1]
    try:
        parsed = json.loads(candidate)
    except ValueError as e:
        logging.debug(f"JSON slice did not parse: {e}")
        return None

    if not isinstance(parsed, dict):
        return None
    return parsed
