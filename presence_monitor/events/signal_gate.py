from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..config import SignalingConfig


class GateBlock(Enum):
    """Which guard stopped a signal."""
    NONE = "none"
    DURATION = "duration"
    RESIGNAL_GAP = "resignal_gap"


@dataclass
class SignalState:
    last_signal_ms: Optional[int] = None


@dataclass(frozen=True)
class GateVerdict:
    allowed: bool
    blocked_by: GateBlock


class SignalGate:
    """
    Rate limiter for presence signals.

    Deciding and committing are separate steps: ``should_signal`` never
    changes state, the caller commits with ``record_signal`` once it has
    acted on a positive verdict.
    """

    def __init__(self, config: Optional[SignalingConfig] = None,
                 state: Optional[SignalState] = None) -> None:
        self.config = config or SignalingConfig()
        self.state = state or SignalState()

    def configure(self, config: SignalingConfig) -> None:
        self.config = config

    def evaluate(self, duration_ms: int, now_ms: int) -> GateVerdict:
        if not duration_ms > self.config.min_continuous_ms:
            return GateVerdict(False, GateBlock.DURATION)
        if not self.in_cooldown(now_ms):
            return GateVerdict(True, GateBlock.NONE)
        return GateVerdict(False, GateBlock.RESIGNAL_GAP)

    def should_signal(self, duration_ms: int, now_ms: int) -> bool:
        return self.evaluate(duration_ms, now_ms).allowed

    def in_cooldown(self, now_ms: int) -> bool:
        last = self.state.last_signal_ms
        return last is not None and now_ms - last <= self.config.min_resignal_gap_ms

    def record_signal(self, now_ms: int) -> None:
        self.state.last_signal_ms = now_ms
