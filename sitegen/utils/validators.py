"""
Validation utilities for identifiers and content.
"""

import re

_UUID_PATTERN = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$',
    re.IGNORECASE
)


def is_valid_uuid(uuid_string: str) -> bool:
    """
    Check if string is a valid UUID v4.

    Args:
        uuid_string: String to validate

    Returns:
        bool: True if valid UUID
    """
    return bool(uuid_string) and bool(_UUID_PATTERN.match(uuid_string))


def is_blank(text) -> bool:
    """True for None, empty and whitespace-only strings."""
    return text is None or not str(text).strip()
