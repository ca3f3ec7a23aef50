"""
Recurrence engine.

Expands an event's day pattern, date bounds, and confirm/cancel exceptions
into the ordered civil dates it occurs on within a generation window.

Rules, in order of precedence:
- a canceled date never occurs;
- an explicitly confirmed date occurs CONFIRMED, even off-pattern;
- a pattern hit occurs UNCONFIRMED, or CONFIRMED when every date is confirmed.

Pure: the same pattern and window always yield the same sequence.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Mapping

from wc_compiler.domain.documents import DateSet, EventDocument
from wc_compiler.domain.types import ConfirmationStatus

ONE_DAY = timedelta(days=1)


def week_of_month(day: date) -> int:
    """1 for the first seven days of a month, 2 for the next seven, and so on."""
    return (day.day - 1) // 7 + 1


@dataclass(frozen=True)
class RecurrencePattern:
    """An event's recurrence rules, with per-weekday ``weeks`` already resolved."""

    days: frozenset[int] = frozenset()  # empty means every weekday
    regular: bool = True
    weeks: Mapping[int, frozenset[int]] = field(default_factory=dict)
    start_date: date | None = None
    end_date: date | None = None
    confirmed: DateSet = DateSet()
    canceled: DateSet = DateSet()

    @classmethod
    def from_document(
        cls, document: EventDocument, weeks: Mapping[int, frozenset[int]] | None = None
    ) -> RecurrencePattern:
        return cls(
            days=frozenset(document.days),
            regular=document.regular,
            weeks=dict(weeks or {}),
            start_date=document.start_date,
            end_date=document.end_date,
            confirmed=document.confirmed,
            canceled=document.canceled,
        )

    def in_bounds(self, day: date) -> bool:
        if self.start_date is not None and day < self.start_date:
            return False
        if self.end_date is not None and day > self.end_date:
            return False
        return True

    def is_pattern_hit(self, day: date) -> bool:
        if not self.regular:
            return False
        weekday = day.weekday()
        if self.days and weekday not in self.days:
            return False
        weeks = self.weeks.get(weekday)
        return weeks is None or week_of_month(day) in weeks


def expand(
    pattern: RecurrencePattern, window_start: date, window_end: date
) -> list[tuple[date, ConfirmationStatus]]:
    """
    Return ``(date, status)`` for every occurrence in the inclusive window.

    The window is intersected with the pattern's own bounds. Output is sorted
    by date and holds each date at most once.
    """
    if window_end < window_start:
        raise ValueError(f"Window end {window_end} is before window start {window_start}")
    if pattern.canceled.everything:
        return []

    first = max(window_start, pattern.start_date or window_start)
    last = min(window_end, pattern.end_date or window_end)
    hit_status = (
        ConfirmationStatus.CONFIRMED
        if pattern.confirmed.everything
        else ConfirmationStatus.UNCONFIRMED
    )

    occurrences = []
    for offset in range((last - first).days + 1):
        day = first + offset * ONE_DAY
        if day in pattern.canceled:
            continue
        if day in pattern.confirmed.dates:
            occurrences.append((day, ConfirmationStatus.CONFIRMED))
        elif pattern.is_pattern_hit(day):
            occurrences.append((day, hit_status))
    return occurrences


def stray_confirmations(pattern: RecurrencePattern) -> list[date]:
    """Confirmed dates that fall outside the event's own start/end bounds."""
    return [day for day in pattern.confirmed if not pattern.in_bounds(day)]


def stray_cancellations(pattern: RecurrencePattern) -> list[date]:
    """Canceled dates that would not have occurred anyway."""
    return [
        day
        for day in pattern.canceled
        if day not in pattern.confirmed.dates
        and not (pattern.in_bounds(day) and pattern.is_pattern_hit(day))
    ]
