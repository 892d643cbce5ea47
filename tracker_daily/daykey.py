from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Any

from dateutil import parser as date_parser

_OFFSET_RE = re.compile(r"([+-])(\d{2}):(\d{2})")
_DEFAULT_A = datetime(2000, 1, 1)
_DEFAULT_B = datetime(2001, 2, 2)


def parse_offset_minutes(offset: Any) -> int:
    """Signed minutes for an offset like ``+05:30``; 0 (UTC) for anything unusable."""
    if not offset or not isinstance(offset, str):
        return 0
    match = _OFFSET_RE.search(offset)
    if not match:
        return 0
    sign = -1 if match.group(1) == "-" else 1
    return sign * (int(match.group(2)) * 60 + int(match.group(3)))


def _parse_loose(s: str) -> datetime | None:
    # dateutil fills missing parts from its default; parse against two
    # different defaults so a partial date (e.g. "10:00") never borrows today's.
    try:
        a = date_parser.parse(s, default=_DEFAULT_A)
        b = date_parser.parse(s, default=_DEFAULT_B)
    except (ValueError, OverflowError):
        return None
    if a.date() != b.date():
        return None
    return a


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a timestamp to an aware UTC datetime. Naive values are read as UTC."""
    if not value or not isinstance(value, str):
        return None
    s = value.strip()
    try:
        dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        dt = _parse_loose(s)
        if dt is None:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    try:
        return dt.astimezone(timezone.utc)
    except OverflowError:
        return None


def day_key_from(timestamp: Any, offset: Any = None) -> str | None:
    instant = parse_timestamp(timestamp)
    if instant is None:
        return None
    # The event's own offset decides the calendar day, not the host timezone.
    try:
        local = instant + timedelta(minutes=parse_offset_minutes(offset))
    except OverflowError:
        return None
    return local.date().isoformat()
