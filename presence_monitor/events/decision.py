from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Optional

TIME_FORMAT = "%H:%M:%S"


class Reason(Enum):
    DISCONTINUITY = "discontinuity_broken"
    INSUFFICIENT_DURATION = "insufficient_continuous_duration"
    INSUFFICIENT_RESIGNAL_GAP = "insufficient_resignal_gap"
    EVIDENCE_SAVED = "evidence_saved_ok"
    EVIDENCE_SAVE_FAILED = "evidence_save_failed"
    EVIDENCE_SAVING_DISABLED = "evidence_saving_disabled"


_REASON_TEXT = {
    Reason.DISCONTINUITY: "Continuous detection broken",
    Reason.INSUFFICIENT_DURATION: "Insufficient continuous detection",
    Reason.INSUFFICIENT_RESIGNAL_GAP: "Insufficient delay since last signaling",
    Reason.EVIDENCE_SAVED: "[OK] Saved frame to {evidence_dir}",
    Reason.EVIDENCE_SAVE_FAILED: "[NOK] Failed to save frame to {evidence_dir}",
    Reason.EVIDENCE_SAVING_DISABLED: "[OK] Frame saving disabled",
}


def format_time(value: Optional[datetime]) -> str:
    """HH:MM:SS.mmm, or blanks of the same width when there is no value."""
    if value is None:
        return " " * 12
    return f"{value.strftime(TIME_FORMAT)}.{value.microsecond // 1000:03d}"


@dataclass(frozen=True)
class DecisionRecord:
    level: str
    event_type: str
    wall_time: datetime
    window_start: Optional[datetime]
    duration_ms: int
    gap_ms: Optional[int]
    signaled: bool
    reason: Reason
    evidence_dir: str = ""
    evidence_path: Optional[str] = None

    @property
    def verdict(self) -> str:
        return "Signaling" if self.signaled else "Inhibited"

    @property
    def message(self) -> str:
        return _REASON_TEXT[self.reason].format(evidence_dir=self.evidence_dir)

    def format_line(self) -> str:
        return (
            f" {'[' + self.level + ']':<7s}  EVNT: {self.event_type:>9s}"
            f"  |  TIME: {format_time(self.wall_time)}"
            f"  |  DIFF: {self.gap_ms or 0:6d}ms"
            f"  |  STRT: {format_time(self.window_start)}"
            f"  |  CONT: {self.duration_ms:6d}ms"
            f"  |  SGNL: {self.verdict:>9s}"
            f"  |  MESG: {self.message}"
        )

    def to_dict(self) -> Dict:
        return {
            "level": self.level,
            "event_type": self.event_type,
            "wall_time": self.wall_time.isoformat(),
            "window_start": self.window_start.isoformat() if self.window_start else None,
            "duration_ms": self.duration_ms,
            "gap_ms": self.gap_ms,
            "verdict": self.verdict,
            "reason": self.reason.value,
            "message": self.message,
            "evidence_path": self.evidence_path,
        }
