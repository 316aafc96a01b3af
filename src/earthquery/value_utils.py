"""
Coercion helpers for values read out of inbound directive messages.
"""

from __future__ import annotations

import math
from typing import Any, Optional

_TRUE_LITERALS = {"1", "true", "yes", "on", "y", "t"}
_FALSE_LITERALS = {"0", "false", "no", "off", "n", "f"}


def as_bool(value: Any) -> Optional[bool]:
    """Convert message-like values to bool; None when the value is not boolean-ish."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in _TRUE_LITERALS:
            return True
        if normalized in _FALSE_LITERALS:
            return False
    return None


def as_float(value: Any) -> Optional[float]:
    """Convert numbers and numeric strings to a finite float, else None."""
    if isinstance(value, bool) or value is None:
        return None
    if not isinstance(value, (int, float, str)):
        return None
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (ValueError, OverflowError):
        return None
    if not math.isfinite(number):
        return None
    return number


def as_text(value: Any) -> Optional[str]:
    """Return strings unchanged, stringify scalars, None for missing/structured values."""
    if value is None or isinstance(value, (dict, list)):
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def is_blank(value: Optional[str]) -> bool:
    """True for None or the empty string (whitespace is kept, as the viewer sees it)."""
    return value is None or value == ""
