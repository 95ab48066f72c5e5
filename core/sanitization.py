"""
Input sanitization utilities.

Shared sanitization functions to prevent prompt injection through
free-text symptom fields (notes, aggravators, descriptions).
This module has no dependencies on models or services to avoid circular imports.
"""

import re
from typing import Any, List

from core.constants import MAX_TAG_LENGTH, MAX_TAGS_COUNT


def sanitize_user_input(value: str, max_length: int = MAX_TAG_LENGTH) -> str:
    """
    Sanitize user input by removing control characters and limiting length.

    This function is designed to prevent prompt injection attacks by:
    - Removing newlines, carriage returns, tabs, and control characters
    - Collapsing multiple spaces into one
    - Stripping leading/trailing whitespace
    - Truncating to a maximum length

    Args:
        value: Raw user-provided string
        max_length: Maximum allowed length (default: MAX_TAG_LENGTH)

    Returns:
        Sanitized string safe for prompt inclusion
    """
    sanitized = re.sub(r"[\n\r\t\x00-\x1f\x7f-\x9f]", " ", value)
    sanitized = re.sub(r" +", " ", sanitized)
    sanitized = sanitized.strip()
    return sanitized[:max_length]


def sanitize_tag_list(values: Any, max_count: int = MAX_TAGS_COUNT) -> List[str]:
    """
    Sanitize a list of short user-provided tags.

    Non-string entries and entries that are empty after sanitization are
    dropped. Tags are lower-cased so rule lookups are case-insensitive.

    Raises:
        ValueError: If more than max_count tags are supplied
    """
    if not values or not isinstance(values, list):
        return []

    if len(values) > max_count:
        raise ValueError(f"Too many entries. Maximum allowed: {max_count}")

    sanitized = []
    for value in values:
        if not isinstance(value, str):
            continue
        clean = sanitize_user_input(value).lower()
        if clean:
            sanitized.append(clean)
    return sanitized
