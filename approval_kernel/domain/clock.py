"""
Clock -- injectable source of "now".

Responsibility:
    The workflow service, the selector and the expiry sweep ask a Clock
    for the current time instead of calling ``datetime.now()``.  Passive
    expiration compares ``expires_at`` with ``clock.now()``, so tests move
    a request past its deadline by moving the clock.

Architecture position:
    Kernel > Domain.  SystemClock is the only place that reads the wall
    clock.

Invariants enforced:
    - ``now()`` is always timezone-aware UTC.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

_EPOCH = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):
    """Wall-clock UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Frozen clock for tests.  Time moves only through ``set_time``,
    ``advance`` or ``tick``; repeated ``now()`` calls agree.
    """

    def __init__(self, start: datetime | None = None):
        self._current = (start or _EPOCH).astimezone(timezone.utc)

    def now(self) -> datetime:
        return self._current

    def set_time(self, when: datetime) -> None:
        self._current = when.astimezone(timezone.utc)

    def advance(self, seconds: float = 0, *, hours: float = 0) -> datetime:
        self._current += timedelta(seconds=seconds, hours=hours)
        return self._current

    def tick(self) -> datetime:
        return self.advance(1)
