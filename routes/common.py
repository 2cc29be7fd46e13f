"""
Helpers shared by the JSON blueprints.
"""

from typing import Any, Dict, Optional

import bleach
from flask import current_app, request

from core.exceptions import InvalidInputError

MAX_LABEL_LENGTH = 80
MAX_TEXT_LENGTH = 255


def sanitize_text(text: Any, max_length: Optional[int] = MAX_TEXT_LENGTH) -> str:
    """Strip markup from operator input and cap its length."""
    if text is None:
        return ""
    text = str(text).strip()
    if not text:
        return ""
    text = bleach.clean(text, tags=[], strip=True)
    if max_length and len(text) > max_length:
        text = text[:max_length]
    return text


def json_body() -> Dict[str, Any]:
    """
    Return the request's JSON object.

    Raises:
        InvalidInputError: If the body is not a JSON object
    """
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidInputError("Request body must be a JSON object")
    return data


def terminal():
    return current_app.config["POS_TERMINAL"]


def coordinator():
    return current_app.config["SYNC_COORDINATOR"]
