"""Datetime parsing: lax input -> epoch milliseconds.

The sync protocol, the status store and the client all exchange timestamps as
integer milliseconds since the Unix epoch. Human-entered values (CLI flags,
hand-written requests) may be ISO-8601 strings; they are parsed with pendulum.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone

import pendulum

# Largest value an SQLite INTEGER column can hold.
MAX_TIMESTAMP_MS = 2**63 - 1


def parse_datetime(value: str | datetime, default_tz: str = "UTC") -> datetime:
    """Parse a lax datetime string into a strict timezone-aware datetime.

    Accepts various formats:
    - 2026-02-02 22:21:29.975359+00
    - 2026-02-02 22:21+00
    - 2026-02-02
    - ISO 8601 variants with T separator

    Missing timezone defaults to default_tz.
    Missing time components default to zeros.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            tz = pendulum.timezone(default_tz)
            value = value.replace(tzinfo=tz)  # type: ignore[arg-type]
        return value

    value_str = value.strip()
    if not value_str:
        raise ValueError("Timestamp must not be empty")

    try:
        parsed = pendulum.parse(value_str, tz=default_tz, strict=False)
    except ValueError as exc:
        raise ValueError(f"Malformed timestamp: {value_str!r}") from exc
    if not isinstance(parsed, pendulum.DateTime):
        if not isinstance(parsed, pendulum.Date):
            raise ValueError(f"Malformed timestamp: {value_str!r}")
        # pendulum.parse returns Date for date-only strings
        parsed = pendulum.datetime(parsed.year, parsed.month, parsed.day, tz=default_tz)
    return parsed


def now_utc() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)


def to_epoch_ms(dt: datetime) -> int:
    """Convert a datetime to epoch milliseconds (naive values are taken as UTC)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def now_ms() -> int:
    """Return the current wall clock in epoch milliseconds."""
    return to_epoch_ms(now_utc())


def coerce_timestamp(value: object, default_tz: str = "UTC") -> int:
    """Normalize an incoming timestamp to epoch milliseconds.

    Integers are taken verbatim as milliseconds; digit-only strings likewise.
    Other strings and datetimes go through :func:`parse_datetime`.
    """
    ms = _coerce_ms(value, default_tz)
    if ms < 0:
        raise ValueError("Timestamp must not be negative")
    if ms > MAX_TIMESTAMP_MS:
        raise ValueError("Timestamp is out of range")
    return ms


def _coerce_ms(value: object, default_tz: str) -> int:
    if isinstance(value, bool):
        raise ValueError("Timestamp must be epoch milliseconds or an ISO-8601 string")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError("Timestamp must be a finite number")
        return int(value)
    if isinstance(value, datetime):
        return to_epoch_ms(parse_datetime(value, default_tz))
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.isdigit():
            return int(stripped)
        return to_epoch_ms(parse_datetime(stripped, default_tz))
    raise ValueError("Timestamp must be epoch milliseconds or an ISO-8601 string")


def start_of_day_ms(at_ms: int, tz: str = "UTC") -> int:
    """Epoch milliseconds of local midnight (in ``tz``) for the day containing ``at_ms``."""
    local = pendulum.from_timestamp(at_ms / 1000, tz=tz)
    return int(local.start_of("day").timestamp() * 1000)


def add_days_ms(at_ms: int, days: int, tz: str = "UTC") -> int:
    """Shift by calendar days in ``tz`` (DST aware)."""
    local = pendulum.from_timestamp(at_ms / 1000, tz=tz)
    return int(local.add(days=days).timestamp() * 1000)
