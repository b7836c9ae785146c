"""Environment variable parsing shared by the configuration modules."""

from __future__ import annotations

import os
from typing import Optional


def get_int_env(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Args:
        key: Environment variable name.
        default: Default value if not set or invalid.

    Returns:
        Parsed integer value or default.
    """
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def get_float_env(key: str, default: float) -> float:
    """Get float environment variable with default."""
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def get_str_env(key: str, default: Optional[str] = None) -> Optional[str]:
    """Get string environment variable; blank values count as unset."""
    value = os.environ.get(key)
    if value is None or not value.strip():
        return default
    return value.strip()
