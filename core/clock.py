"""
Core Module - Clock.

============================================================
RESPONSIBILITY
============================================================
Source of the values written to createColumn and
lastModifiedColumn.

- SystemClock for production (UTC)
- MockClock for deterministic tests

Records receive their clock explicitly; get_clock() only
supplies the default.

============================================================
"""

import threading
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional


def _as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


# ============================================================
# CLOCK PROTOCOL
# ============================================================

class ClockProtocol(ABC):
    """Timestamp source for records."""

    @abstractmethod
    def now(self) -> datetime:
        """Current time, timezone aware, UTC."""

    def format_iso(self, dt: Optional[datetime] = None) -> str:
        return (dt or self.now()).isoformat()


class SystemClock(ClockProtocol):
    """Wall clock."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class MockClock(ClockProtocol):
    """
    Settable clock for tests.

    Usage:
        clock = MockClock(datetime(2024, 1, 1))
        record = User(clock=clock)
        clock.advance(hours=1)
    """

    def __init__(self, initial_time: Optional[datetime] = None):
        self._lock = threading.Lock()
        self._time = _as_utc(initial_time) if initial_time else datetime.now(timezone.utc)

    def now(self) -> datetime:
        with self._lock:
            return self._time

    def set_time(self, new_time: datetime) -> None:
        with self._lock:
            self._time = _as_utc(new_time)

    def advance(self, seconds: float = 0, **kwargs) -> None:
        """Move forward; kwargs go to timedelta (minutes=, hours=, days=)."""
        with self._lock:
            self._time += timedelta(seconds=seconds, **kwargs)


_default_clock: ClockProtocol = SystemClock()


def get_clock() -> ClockProtocol:
    """Return the shared production clock."""
    return _default_clock


__all__ = ["ClockProtocol", "SystemClock", "MockClock", "get_clock"]
