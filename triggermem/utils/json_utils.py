"""
JSON utilities for reading structured data out of LLM responses.
"""

import json
from typing import Any, Dict, Optional

_decoder = json.JSONDecoder()


def clean_json_response(response: str) -> str:
    """Clean LLM response by removing code block markers.

    Args:
        response: Raw LLM response

    Returns:
        Cleaned JSON string
    """
    response = response.strip()

    # Remove ```json and ``` markers
    if response.startswith('```json'):
        response = response[7:]
    elif response.startswith('```'):
        response = response[3:]

    if response.endswith('```'):
        response = response[:-3]

    return response.strip()


def extract_json_object(response: str) -> Optional[Dict[str, Any]]:
    """Return the first well-formed JSON object found anywhere in the response.

    The model may wrap the object in prose or code fences, so every opening
    brace is tried as a candidate start until one decodes to a dict.

    Args:
        response: Raw LLM response

    Returns:
        The decoded object, or None if the response holds no JSON object
    """
    if not response:
        return None

    text = clean_json_response(response)
    start = text.find('{')
    while start != -1:
        try:
            value, _ = _decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, dict):
            return value
        start = text.find('{', start + 1)

    return None
