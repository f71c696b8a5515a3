from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..config import SignalingConfig


@dataclass(frozen=True)
class DetectionEvent:
    timestamp_ms: int
    wall_time: datetime
    region_count: int = 1


@dataclass
class ContinuityState:
    window_start_ms: Optional[int] = None
    last_event_ms: Optional[int] = None


@dataclass(frozen=True)
class ContinuityResult:
    window_start_ms: int
    duration_ms: int
    gap_ms: Optional[int]
    # True for the first event of a session as well as after a gap over max_gap_ms.
    was_reset: bool


class ContinuityTracker:
    """
    Tracks continuous presence across detection events.

    Only frames that contain a detection reach ``observe``. Frames without
    one never move ``last_event_ms``, so a short detector dropout is
    tolerated as long as the next detection arrives within ``max_gap_ms``
    of the previous one.
    """

    def __init__(self, config: Optional[SignalingConfig] = None,
                 state: Optional[ContinuityState] = None) -> None:
        self.config = config or SignalingConfig()
        self.state = state or ContinuityState()

    def configure(self, config: SignalingConfig) -> None:
        self.config = config

    @property
    def window_open(self) -> bool:
        return self.state.window_start_ms is not None

    def observe(self, event: DetectionEvent) -> ContinuityResult:
        now = event.timestamp_ms
        gap_ms = None
        if self.state.last_event_ms is not None:
            gap_ms = now - self.state.last_event_ms

        was_reset = gap_ms is None or gap_ms > self.config.max_gap_ms
        if was_reset:
            self.state.window_start_ms = now

        self.state.last_event_ms = now
        return ContinuityResult(
            window_start_ms=self.state.window_start_ms,
            duration_ms=now - self.state.window_start_ms,
            gap_ms=gap_ms,
            was_reset=was_reset,
        )
