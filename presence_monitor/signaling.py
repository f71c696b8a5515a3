"""
Signaling controller.
Turns detection events into rate-limited presence signals: tracks presence
continuity, consults the signal gate, and fires evidence capture and alerts
at most once per qualifying event.
"""
from datetime import timedelta
from pathlib import Path
from enum import Enum
from typing import Dict, Optional

from loguru import logger

from . import metrics
from .alerts.base import Alert, AlertSink, LogAlertSink
from .config import ConfigStore, SignalingConfig
from .events.continuity import ContinuityTracker, DetectionEvent
from .events.decision import DecisionRecord, Reason
from .events.signal_gate import GateBlock, SignalGate
from .events.store import DecisionStore
from .evidence import EvidenceWriter


class ControllerState(Enum):
    """Logical state after the most recent detection event."""
    IDLE = "idle"
    TRACKING = "tracking"
    SATURATED = "saturated"
    SIGNALING = "signaling"


class SignalingController:
    """
    Per-session decision engine.

    One controller is built per capture session and owns that session's
    continuity and signal state; starting a new session means building a
    new controller.
    """

    def __init__(self,
                 config_store: Optional[ConfigStore] = None,
                 alert_sink: Optional[AlertSink] = None,
                 evidence_writer: Optional[EvidenceWriter] = None,
                 decision_store: Optional[DecisionStore] = None,
                 source_id: str = "camera_0"):
        """
        Initialize the controller.

        Args:
            config_store: Source of configuration snapshots
            alert_sink: Receives one alert per signal
            evidence_writer: Writer for evidence frames; when omitted one is
                built for the configured evidence directory
            decision_store: Optional buffer receiving every decision record
            source_id: Name of the capture source, used in alerts
        """
        self.config_store = config_store or ConfigStore()
        self.alert_sink = alert_sink or LogAlertSink()
        self.decision_store = decision_store
        self.source_id = source_id
        self._evidence_writer = evidence_writer
        self._owns_writer = evidence_writer is None

        config = self.config_store.snapshot()
        self.tracker = ContinuityTracker(config)
        self.gate = SignalGate(config)
        self.state = ControllerState.IDLE

        self.events_processed = 0
        self.signals_sent = 0
        self.evidence_failures = 0

    def process(self, event: DetectionEvent, frame=None) -> DecisionRecord:
        """
        Handle one detection event.

        Args:
            event: Detection event for a frame with at least one region
            frame: The frame itself, saved as evidence if a signal fires

        Returns:
            Decision record describing the verdict
        """
        config = self.config_store.snapshot()
        self.tracker.configure(config)
        self.gate.configure(config)

        now_ms = event.timestamp_ms
        continuity = self.tracker.observe(event)
        window_start = event.wall_time - timedelta(milliseconds=continuity.duration_ms)

        evidence_path = None
        level = "INFO"
        if continuity.was_reset:
            signaled = False
            reason = Reason.DISCONTINUITY
            self.state = ControllerState.TRACKING
        else:
            verdict = self.gate.evaluate(continuity.duration_ms, now_ms)
            signaled = verdict.allowed
            if signaled:
                reason, evidence_path = self._fire(event, frame, config)
                self.gate.record_signal(now_ms)
                self.state = ControllerState.SIGNALING
                if reason is Reason.EVIDENCE_SAVE_FAILED:
                    level = "WARNING"
            elif verdict.blocked_by is GateBlock.DURATION:
                reason = Reason.INSUFFICIENT_DURATION
                self.state = ControllerState.TRACKING
            else:
                reason = Reason.INSUFFICIENT_RESIGNAL_GAP
                self.state = ControllerState.SATURATED

        record = DecisionRecord(
            level=level,
            event_type="Detection",
            wall_time=event.wall_time,
            window_start=window_start,
            duration_ms=continuity.duration_ms,
            gap_ms=continuity.gap_ms,
            signaled=signaled,
            reason=reason,
            evidence_dir=config.evidence_dir,
            evidence_path=str(evidence_path) if evidence_path else None,
        )
        self._emit(record)
        return record

    def _fire(self, event: DetectionEvent, frame, config: SignalingConfig):
        evidence_path = None
        if not config.evidence_saving_enabled:
            reason = Reason.EVIDENCE_SAVING_DISABLED
        else:
            try:
                evidence_path = self._writer_for(config).save(frame, event.wall_time)
            except Exception as e:
                logger.error(f"Evidence capture failed: {e}")
                evidence_path = None
            if evidence_path is not None:
                reason = Reason.EVIDENCE_SAVED
            else:
                reason = Reason.EVIDENCE_SAVE_FAILED
                self.evidence_failures += 1
                metrics.EVIDENCE_FAILURES.inc()

        alert = Alert(
            source_id=self.source_id,
            message="Continuous human presence detected",
            wall_time=event.wall_time,
            metadata={
                'evidence_path': str(evidence_path) if evidence_path else None,
                'regions': event.region_count,
            },
        )
        try:
            self.alert_sink.send(alert)
        except Exception as e:
            logger.error(f"Alert sink failed: {e}")

        self.signals_sent += 1
        metrics.SIGNALS_SENT.inc()
        return reason, evidence_path

    def _writer_for(self, config: SignalingConfig) -> EvidenceWriter:
        if self._owns_writer and (
            self._evidence_writer is None
            or self._evidence_writer.directory != Path(config.evidence_dir)
        ):
            self._evidence_writer = EvidenceWriter(config.evidence_dir)
        return self._evidence_writer

    def _emit(self, record: DecisionRecord) -> None:
        self.events_processed += 1
        metrics.DETECTION_EVENTS.inc()
        metrics.DECISIONS.labels(reason=record.reason.value).inc()
        logger.log(record.level, record.format_line())
        if self.decision_store is not None:
            self.decision_store.add(record)

    def get_stats(self) -> Dict:
        """Get signaling statistics."""
        return {
            'state': self.state.value,
            'events_processed': self.events_processed,
            'signals_sent': self.signals_sent,
            'evidence_failures': self.evidence_failures,
        }
