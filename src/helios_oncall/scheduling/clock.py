"""Clock abstractions for schedule generation and coverage queries.

Generation itself never reads the clock for rotation math; the clock only
stamps ``generated_at_utc`` and anchors "now"-relative queries.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone, tzinfo
from threading import Lock
from typing import Protocol, runtime_checkable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


@runtime_checkable
class Clock(Protocol):
    def now_utc(self) -> datetime:
        """Return current UTC time as an aware datetime."""


class MasterClock:
    """Wall clock providing timezone-aware timestamps."""

    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)


class ControllableMasterClock:
    """Deterministic clock used for tests. Time moves only via advance()/set()."""

    def __init__(self, epoch: datetime) -> None:
        ensure_aware(epoch)
        self._current = epoch.astimezone(timezone.utc)
        self._lock = Lock()

    def now_utc(self) -> datetime:
        with self._lock:
            return self._current

    def advance(self, delta: timedelta) -> datetime:
        if delta < timedelta(0):
            raise ValueError("delta must be non-negative")
        with self._lock:
            self._current += delta
            return self._current

    def set(self, instant: datetime) -> None:
        ensure_aware(instant)
        with self._lock:
            self._current = instant.astimezone(timezone.utc)


def ensure_aware(dt: datetime) -> None:
    if dt.tzinfo is None or dt.tzinfo.utcoffset(dt) is None:
        raise ValueError("Datetime must be timezone-aware")


def resolve_timezone(tz: str | tzinfo) -> tzinfo:
    """Resolve an IANA id. Raises ZoneInfoNotFoundError for unknown ids."""
    if isinstance(tz, tzinfo):
        return tz
    if not tz or tz.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(tz)
    except (ValueError, ZoneInfoNotFoundError) as exc:
        # ZoneInfo raises ValueError for malformed keys such as "../etc".
        raise ZoneInfoNotFoundError(f"No time zone found with key {tz}") from exc
