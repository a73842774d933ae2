"""Daily interval builder.

Turns a plan's weekly on-hours windows into concrete local (naive, wall
clock) intervals for one calendar date, plus the off-hours complement
inside that date.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, time, timedelta
from typing import NamedTuple

from ..domain.models import DailyWindow

ONE_DAY = timedelta(days=1)


class LocalInterval(NamedTuple):
    """Half-open ``[start, end)`` in the plan's wall-clock time."""

    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


def day_bounds(local_date: date) -> LocalInterval:
    start = datetime.combine(local_date, time.min)
    return LocalInterval(start, start + ONE_DAY)


def merge_intervals(intervals: Iterable[LocalInterval]) -> list[LocalInterval]:
    """Sort, drop empties, and merge overlapping or touching intervals."""
    merged: list[LocalInterval] = []
    for interval in sorted(intervals):
        if interval.end <= interval.start:
            continue
        if merged and interval.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = LocalInterval(last.start, max(last.end, interval.end))
        else:
            merged.append(interval)
    return merged


def clamp_and_merge(intervals: Iterable[LocalInterval], bounds: LocalInterval) -> list[LocalInterval]:
    """Clamp to ``bounds`` first, then merge."""
    return merge_intervals(
        LocalInterval(max(i.start, bounds.start), min(i.end, bounds.end))
        for i in intervals
    )


def subtract_intervals(
    intervals: Iterable[LocalInterval],
    cuts: Iterable[LocalInterval],
) -> list[LocalInterval]:
    """Remove every ``cuts`` range from ``intervals``."""
    remaining = merge_intervals(intervals)
    for cut in merge_intervals(cuts):
        pieces: list[LocalInterval] = []
        for interval in remaining:
            if cut.end <= interval.start or cut.start >= interval.end:
                pieces.append(interval)
                continue
            if interval.start < cut.start:
                pieces.append(LocalInterval(interval.start, cut.start))
            if cut.end < interval.end:
                pieces.append(LocalInterval(cut.end, interval.end))
        remaining = pieces
    return remaining


def build_on_hours(local_date: date, windows: Iterable[DailyWindow]) -> list[LocalInterval]:
    """Disjoint on-hours intervals for ``local_date``, ordered by start.

    Overnight windows (end <= start) end on the following day and are
    returned unclamped. Overlapping windows of the same day are merged.
    """
    weekday = local_date.weekday()
    intervals = []
    for window in windows:
        if window.weekday != weekday:
            continue
        start = datetime.combine(local_date, window.local_start)
        end = datetime.combine(local_date, window.local_end)
        if end <= start:
            end += ONE_DAY
        intervals.append(LocalInterval(start, end))
    return merge_intervals(intervals)


def spill_over(local_date: date, previous_on_hours: Iterable[LocalInterval]) -> list[LocalInterval]:
    """Parts of the previous date's on-hours that run into ``local_date``."""
    return clamp_and_merge(previous_on_hours, day_bounds(local_date))


def build_off_hours(
    local_date: date,
    on_intervals: Iterable[LocalInterval],
    carried_over: Iterable[LocalInterval] = (),
) -> list[LocalInterval]:
    """Complement of the on-hours within ``[00:00, 24:00)`` of ``local_date``.

    ``carried_over`` holds on-hours that started the day before and are
    already covered by that day's slices.
    """
    bounds = day_bounds(local_date)
    covered = clamp_and_merge([*on_intervals, *carried_over], bounds)

    off: list[LocalInterval] = []
    cursor = bounds.start
    for interval in covered:
        if interval.start > cursor:
            off.append(LocalInterval(cursor, interval.start))
        cursor = max(cursor, interval.end)
    if cursor < bounds.end:
        off.append(LocalInterval(cursor, bounds.end))
    return off
