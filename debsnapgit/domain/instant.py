"""
Snapshot instants and durations.

Snapshot instants are timezone-aware UTC datetimes with second
resolution. At the archive boundary they are written in the canonical
form YYYYMMDDThhmmssZ.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Optional

INSTANT_FORMAT = '%Y%m%dT%H%M%SZ'

_INSTANT_RE = re.compile(r'^\d{8}T\d{6}Z$')


def to_utc(dt: datetime) -> datetime:
    """Normalize a datetime to UTC with whole seconds (naive means UTC)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)
    return dt.replace(microsecond=0)


def format_instant(dt: datetime) -> str:
    """Format an instant as YYYYMMDDThhmmssZ."""
    return to_utc(dt).strftime(INSTANT_FORMAT)


def parse_instant(text: str) -> datetime:
    """
    Parse a canonical YYYYMMDDThhmmssZ instant.

    Raises:
        ValueError: If text is not exactly in the canonical form
    """
    if not _INSTANT_RE.match(text):
        raise ValueError(f"not a snapshot instant: {text!r}")
    return datetime.strptime(text, INSTANT_FORMAT).replace(tzinfo=timezone.utc)


def parse_duration(spec: str) -> timedelta:
    """
    Parse a duration like "6h", "30d", "1w", "90m" or "45s".

    Raises:
        ValueError: If spec cannot be parsed or is not positive
    """
    match = re.match(r'^(\d+)([smhdw])$', spec.strip())
    if not match:
        raise ValueError(f"invalid duration {spec!r} (expected e.g. 6h, 30d)")

    amount = int(match.group(1))
    unit = match.group(2)

    units = {
        's': timedelta(seconds=amount),
        'm': timedelta(minutes=amount),
        'h': timedelta(hours=amount),
        'd': timedelta(days=amount),
        'w': timedelta(weeks=amount),
    }

    duration = units[unit]
    if duration <= timedelta(0):
        raise ValueError(f"duration must be positive: {spec!r}")
    return duration


def parse_timespec(spec: str, now: Optional[datetime] = None) -> datetime:
    """
    Parse a time specification into a UTC instant.

    Supports:
        - Canonical: "20210801T023234Z"
        - Relative: "6h", "30d" (that long before now)
        - ISO format: "2024-01-15", "2024-01-15T10:30:00"

    Raises:
        ValueError: If spec cannot be parsed
    """
    spec = spec.strip()

    if _INSTANT_RE.match(spec):
        return parse_instant(spec)

    try:
        ago = parse_duration(spec)
    except ValueError:
        pass
    else:
        return to_utc((now or datetime.now(timezone.utc)) - ago)

    try:
        return to_utc(datetime.fromisoformat(spec))
    except ValueError:
        pass

    raise ValueError(f"cannot parse time specification: {spec!r}")
