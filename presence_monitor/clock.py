"""
Time sources for the decision engine.

The engine only ever compares monotonic millisecond timestamps; wall-clock
time is carried alongside for display and evidence file naming.
"""
import time
from datetime import datetime, timedelta
from typing import Optional


class Clock:
    """Supplies monotonic timestamps and matching wall-clock times."""

    def monotonic_ms(self) -> int:
        raise NotImplementedError

    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock(Clock):
    def monotonic_ms(self) -> int:
        return int(time.monotonic() * 1000)

    def now(self) -> datetime:
        return datetime.now()


class ManualClock(Clock):
    """
    Clock advanced explicitly by the caller.

    Wall time moves in lockstep with the monotonic counter so that
    formatted times stay consistent with reported durations.
    """

    def __init__(self, start_ms: int = 0, start_wall: Optional[datetime] = None) -> None:
        self._ms = start_ms
        self._start_ms = start_ms
        self._start_wall = start_wall or datetime(2024, 1, 1, 12, 0, 0)

    def monotonic_ms(self) -> int:
        return self._ms

    def now(self) -> datetime:
        return self._start_wall + timedelta(milliseconds=self._ms - self._start_ms)

    def advance(self, ms: int) -> None:
        if ms < 0:
            raise ValueError("ManualClock cannot move backwards")
        self._ms += ms

    def set(self, ms: int) -> None:
        if ms < self._ms:
            raise ValueError("ManualClock cannot move backwards")
        self._ms = ms
