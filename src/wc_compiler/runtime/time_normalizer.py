"""
Time normalizer.

Converts an event's local wall-clock start on a civil date into absolute
UTC instants using IANA zone rules from ``zoneinfo``.

Daylight-saving policy: a local time that falls in a spring-forward gap, or
that occurs twice in a fall-back overlap, is read with the UTC offset in
effect immediately after the transition (PEP 495 ``fold=1``). The end
instant is start + duration in elapsed time, so the wall-clock end may move
across a transition but the duration never does.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from wc_compiler.infra.exceptions import InvalidDateOrTime, InvalidTimezone


@lru_cache(maxsize=None)
def load_zone(name: str) -> ZoneInfo:
    """Return the zone for an IANA identifier, raising InvalidTimezone if unknown."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        raise InvalidTimezone(name) from None


def normalize(
    civil_date: date, local_start: time, duration: timedelta, timezone_id: str
) -> tuple[datetime, datetime]:
    """Return aware UTC ``(start, end)`` instants for one occurrence."""
    if duration <= timedelta(0):
        raise InvalidDateOrTime(f"Duration must be positive, got {duration}", field="duration")
    zone = load_zone(timezone_id)
    local = datetime.combine(civil_date, local_start, tzinfo=zone).replace(fold=1)
    try:
        start = local.astimezone(timezone.utc)
        return start, start + duration
    except OverflowError:
        raise InvalidDateOrTime(
            f"Occurrence lasting {duration} ends past the last representable date",
            field="duration",
        ) from None


def to_local(instant: datetime, timezone_id: str) -> datetime:
    """Render an absolute instant in the event's own zone."""
    return instant.astimezone(load_zone(timezone_id))
