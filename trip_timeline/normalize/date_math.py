"""Timezone-safe date arithmetic on ISO-8601 strings with UTC offsets.

Offsets in stored datetimes are local to the place the event happens
(departure offset for origin, arrival offset for destination). Calendar
facts (date keys, day offsets, display times) are read from the string's
own components and never converted into the process timezone. Only
elapsed-time math parses the instant.
"""

import math
import re
from datetime import date, datetime, timezone
from typing import Optional

from dateutil import parser as dateutil_parser

_DATE_KEY_RE = re.compile(r'^\s*(\d{4})-(\d{2})-(\d{2})')
_TIME_RE = re.compile(r'T(\d{2}):(\d{2})')

SECONDS_PER_DAY = 24 * 60 * 60


def extract_date_key(iso: Optional[str]) -> str:
    """Return "YYYY-MM-DD" from the leading digits of ``iso``, or "" if malformed."""
    if not iso or not isinstance(iso, str):
        return ""
    m = _DATE_KEY_RE.match(iso)
    if not m:
        return ""
    year, month, day = m.groups()
    try:
        date(int(year), int(month), int(day))
    except ValueError:
        return ""
    return f"{year}-{month}-{day}"


def date_from_key(key: Optional[str]) -> Optional[date]:
    key = extract_date_key(key)
    if not key:
        return None
    return date.fromisoformat(key)


def parse_instant(iso: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 string into an aware datetime, or None.

    Strings without an offset are taken as UTC so that they can still be
    compared against offset-bearing ones.
    """
    if not iso or not isinstance(iso, str):
        return None
    try:
        dt = dateutil_parser.isoparse(iso.strip())
    except (ValueError, OverflowError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def days_between(iso_a: Optional[str], iso_b: Optional[str]) -> Optional[int]:
    """Ceiling of the absolute elapsed days between two instants.

    Returns None when either side is missing or malformed; callers treat
    that as an unbounded gap.
    """
    a = parse_instant(iso_a)
    b = parse_instant(iso_b)
    if a is None or b is None:
        return None
    seconds = abs((b - a).total_seconds())
    return math.ceil(seconds / SECONDS_PER_DAY)


def day_offset(start_iso: Optional[str], end_iso: Optional[str]) -> Optional[int]:
    """Signed calendar-day difference between the local dates of end and start."""
    start = date_from_key(start_iso)
    end = date_from_key(end_iso)
    if start is None or end is None:
        return None
    return (end - start).days


def elapsed_minutes(start_iso: Optional[str], end_iso: Optional[str]) -> Optional[int]:
    """Whole minutes from start to end; None if missing or end <= start."""
    start = parse_instant(start_iso)
    end = parse_instant(end_iso)
    if start is None or end is None or end <= start:
        return None
    return int((end - start).total_seconds() // 60)


def extract_offset_hours(iso: Optional[str]) -> Optional[float]:
    """Trailing ``Z`` or ``+HH:MM`` / ``-HH:MM`` suffix as signed decimal hours."""
    if not iso or not isinstance(iso, str) or "T" not in iso:
        return None
    time_part = iso.strip().split("T", 1)[1]
    if time_part.upper().endswith("Z"):
        return 0.0
    m = re.search(r'([+\-])(\d{2}):?(\d{2})$', time_part)
    if not m:
        return None
    sign, hours, minutes = m.groups()
    value = int(hours) + int(minutes) / 60
    return -value if sign == "-" else value


def timezone_shift_hours(start_iso: Optional[str], end_iso: Optional[str]) -> Optional[float]:
    """Arrival offset minus departure offset, e.g. +3.0 for SFO -> EWR."""
    start = extract_offset_hours(start_iso)
    end = extract_offset_hours(end_iso)
    if start is None or end is None:
        return None
    return end - start


def local_time(iso: Optional[str]) -> Optional[tuple]:
    """(hour, minute) as written in the string, without zone conversion."""
    if not iso or not isinstance(iso, str):
        return None
    m = _TIME_RE.search(iso)
    if not m:
        return None
    hour, minute = int(m.group(1)), int(m.group(2))
    if hour > 23 or minute > 59:
        return None
    return hour, minute


def nights_between(start_key: Optional[str], end_key: Optional[str]) -> int:
    """Calendar nights between two date keys; 0 when unknown or reversed."""
    start = date_from_key(start_key)
    end = date_from_key(end_key)
    if start is None or end is None:
        return 0
    return max((end - start).days, 0)
