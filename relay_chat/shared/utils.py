"""Shared utility functions."""
import re
from typing import Any

USERNAME_MAX_LENGTH = 255


def parse_user_id(value: Any) -> int:
    """Return a user id given as an int or a numeric string.

    Raises ValueError for anything else, including bools and negative numbers.
    """
    if isinstance(value, bool):
        raise ValueError("User id must be an integer")
    if isinstance(value, int):
        user_id = value
    elif isinstance(value, str) and re.fullmatch(r"\s*\d+\s*", value):
        user_id = int(value)
    else:
        raise ValueError(f"Invalid user id: {value!r}")
    if user_id <= 0:
        raise ValueError(f"Invalid user id: {value!r}")
    return user_id


def normalize_username(username: str) -> str:
    """Strip surrounding whitespace and reject blank or oversized names."""
    name = (username or "").strip()
    if not name:
        raise ValueError("Username must not be blank")
    if len(name) > USERNAME_MAX_LENGTH:
        raise ValueError("Username is too long")
    return name
