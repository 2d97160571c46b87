"""Lenient conversion of record attribute values to numbers and timestamps."""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timezone
from typing import Any

_LEADING_NUMBER = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


def to_number(value: Any) -> float:
    """Return the leading numeric value of ``value``, or ``0`` if there is none.

    ``"12.5"`` and ``"12.5 EUR"`` both give ``12.5``; ``None``, ``""``,
    ``"n/a"``, non-finite numbers and integers too large for a float give ``0``.
    """
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return 0.0
    elif isinstance(value, str):
        match = _LEADING_NUMBER.match(value)
        if not match:
            return 0.0
        number = float(match.group(0))
    else:
        return 0.0
    return number if math.isfinite(number) else 0.0


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 date/datetime (or epoch milliseconds) as an aware UTC datetime.

    Naive values are taken as UTC. Returns ``None`` for missing or
    unparseable input.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


__all__ = ["to_number", "parse_timestamp"]
