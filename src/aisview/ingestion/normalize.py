"""Normalization helpers.

Centralizes defensive parsing of the loosely typed ``properties`` values
the feed server copies out of raw AIS messages.
"""

from __future__ import annotations

import math
from typing import Any

from aisview._constants import HEADING_NOT_AVAILABLE


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    parsed = safe_float(value)
    if parsed is None or not parsed.is_integer():
        return None
    return int(parsed)


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def normalize_heading(value: Any) -> float | None:
    """Map a reported heading to degrees in ``[0, 360]`` or ``None``.

    AIS encodes "heading not available" as 511.
    """
    heading = safe_float(value)
    if heading is None or heading == HEADING_NOT_AVAILABLE:
        return None
    if not 0.0 <= heading <= 360.0:
        return None
    return heading
