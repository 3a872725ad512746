import html
import re
from typing import Any, Optional

from ..errors import ValidationError

CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def sanitize_string(value: Optional[str]) -> Optional[str]:
    """
    Sanitize a string by escaping HTML special characters to prevent XSS.
    Returns None if input is None.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        return value
    return html.escape(str(value), quote=True)


def strip_control_chars(value: Any) -> Any:
    """Remove control characters from a string, leaving other values untouched"""
    if not isinstance(value, str):
        return value
    return CONTROL_CHARS.sub("", value)


def clean_dict(data: dict[str, Any], fields: Optional[list[str]] = None) -> dict[str, Any]:
    """
    Strip control characters from string values of a client-supplied map.
    Text is stored as received otherwise; escaping happens where it is rendered.
    If fields is None, cleans all string values, recursing into nested maps and lists.
    """
    if not data:
        return data

    cleaned = {}
    for key, value in data.items():
        if fields is None or key in fields:
            if isinstance(value, str):
                cleaned[key] = strip_control_chars(value)
            elif isinstance(value, dict):
                cleaned[key] = clean_dict(value, fields)
            elif isinstance(value, list):
                cleaned[key] = [
                    (
                        clean_dict(item, fields)
                        if isinstance(item, dict)
                        else strip_control_chars(item)
                    )
                    for item in value
                ]
            else:
                cleaned[key] = value
        else:
            cleaned[key] = value

    return cleaned


def clean_text(value: Optional[str], max_length: int, field: str = "Text") -> str:
    """
    Strip whitespace and control characters, then enforce presence and length.

    Raises:
        ValidationError: If the cleaned text is empty or too long
    """
    cleaned = strip_control_chars(value or "").strip()
    if not cleaned:
        raise ValidationError(f"{field} cannot be empty")
    if len(cleaned) > max_length:
        raise ValidationError(f"{field} exceeds maximum length of {max_length} characters")
    return cleaned
