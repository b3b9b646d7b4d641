from __future__ import annotations

import datetime as dt
from typing import Callable, Optional

Clock = Callable[[], dt.datetime]


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def parse_iso(value: Optional[str]) -> Optional[dt.datetime]:
    """Parse an ISO date/timestamp ('Z' suffix allowed). Naive values are taken as UTC.

    Returns None for blank or unparseable input.
    """
    text = (value or "").strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = dt.datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed.astimezone(dt.timezone.utc)


def truncate_ms(ts: dt.datetime) -> dt.datetime:
    return ts.replace(microsecond=(ts.microsecond // 1000) * 1000)


def to_iso(ts: dt.datetime) -> str:
    """UTC, millisecond precision, 'Z' suffix (2024-05-01T08:30:00.000Z)."""
    ts = ts.astimezone(dt.timezone.utc)
    return ts.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def stamp_after(now: dt.datetime, previous: Optional[str]) -> str:
    """
    Timestamp for a mutation at `now` that is strictly later than `previous`.
    If the clock has not moved past `previous` (skew, same millisecond), the
    previous value plus 1 ms is used instead.
    """
    current = truncate_ms(now.astimezone(dt.timezone.utc))
    prior = parse_iso(previous)
    if prior is not None and current <= prior:
        current = truncate_ms(prior) + dt.timedelta(milliseconds=1)
    return to_iso(current)
