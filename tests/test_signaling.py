"""
Tests for the signaling controller.
"""
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import Mock

import numpy as np
import pytest

from presence_monitor.config import ConfigStore, SignalingConfig
from presence_monitor.events.continuity import DetectionEvent
from presence_monitor.events.decision import Reason
from presence_monitor.events.store import DecisionStore
from presence_monitor.signaling import ControllerState, SignalingController

BASE_WALL = datetime(2024, 5, 17, 14, 30, 0)


def make_event(ms: int) -> DetectionEvent:
    return DetectionEvent(timestamp_ms=ms, wall_time=BASE_WALL + timedelta(milliseconds=ms))


@pytest.fixture
def config_store():
    return ConfigStore(SignalingConfig(max_gap_ms=200, min_continuous_ms=1000, min_resignal_gap_ms=2000))


@pytest.fixture
def evidence_writer():
    writer = Mock()
    writer.save = Mock(side_effect=lambda frame, when: Path("frame") / "frame_test.jpg")
    return writer


@pytest.fixture
def alert_sink():
    return Mock()


@pytest.fixture
def controller(config_store, evidence_writer, alert_sink):
    return SignalingController(
        config_store=config_store,
        alert_sink=alert_sink,
        evidence_writer=evidence_writer,
        decision_store=DecisionStore(),
    )


@pytest.fixture
def frame():
    return np.zeros((48, 64, 3), dtype=np.uint8)


class TestSignalingController:
    """Tests for SignalingController class."""

    def test_starts_idle(self, controller):
        """No event processed means no open window."""
        assert controller.state == ControllerState.IDLE
        assert controller.get_stats()['events_processed'] == 0

    def test_first_event_is_discontinuity(self, controller):
        """First event starts a window and is inhibited."""
        record = controller.process(make_event(0))
        assert record.signaled is False
        assert record.reason == Reason.DISCONTINUITY
        assert record.duration_ms == 0
        assert record.window_start == BASE_WALL
        assert controller.state == ControllerState.TRACKING

    def test_signal_after_continuous_presence(self, controller, evidence_writer, alert_sink, frame):
        """Events every 150ms signal once duration passes 1000ms."""
        records = [controller.process(make_event(ms), frame) for ms in range(0, 1051, 150)]

        assert [r.signaled for r in records[:-1]] == [False] * (len(records) - 1)
        assert all(r.reason == Reason.INSUFFICIENT_DURATION for r in records[1:-1])

        last = records[-1]
        assert last.signaled is True
        assert last.duration_ms == 1050
        assert last.reason == Reason.EVIDENCE_SAVED
        assert controller.state == ControllerState.SIGNALING

        evidence_writer.save.assert_called_once()
        saved_frame, saved_when = evidence_writer.save.call_args[0]
        assert saved_frame is frame
        assert saved_when == BASE_WALL + timedelta(milliseconds=1050)
        alert_sink.send.assert_called_once()
        assert controller.gate.state.last_signal_ms == 1050

    def test_cooldown_suppresses_next_event(self, controller, alert_sink):
        """Event at 1100ms right after a signal is inhibited by cooldown."""
        for ms in range(0, 1051, 150):
            controller.process(make_event(ms))

        record = controller.process(make_event(1100))
        assert record.signaled is False
        assert record.duration_ms == 1100
        assert record.reason == Reason.INSUFFICIENT_RESIGNAL_GAP
        assert controller.state == ControllerState.SATURATED
        assert alert_sink.send.call_count == 1

    def test_resignals_after_cooldown(self, controller, alert_sink):
        """Continuous presence signals again once the cooldown elapses."""
        signal_times = []
        for ms in range(0, 4000, 100):
            if controller.process(make_event(ms)).signaled:
                signal_times.append(ms)

        assert signal_times == [1100, 3200]
        assert alert_sink.send.call_count == 2

    def test_gap_resets_window(self, controller):
        """A gap over max_gap restarts the window."""
        controller.process(make_event(0))
        controller.process(make_event(100))
        record = controller.process(make_event(500))

        assert record.reason == Reason.DISCONTINUITY
        assert record.gap_ms == 400
        assert record.duration_ms == 0
        assert record.window_start == BASE_WALL + timedelta(milliseconds=500)

    def test_evidence_failure_keeps_cooldown(self, controller, evidence_writer, alert_sink):
        """Failed evidence save still signals and starts the cooldown."""
        evidence_writer.save = Mock(return_value=None)
        for ms in range(0, 1051, 150):
            record = controller.process(make_event(ms))

        assert record.signaled is True
        assert record.reason == Reason.EVIDENCE_SAVE_FAILED
        assert record.level == "WARNING"
        alert_sink.send.assert_called_once()
        assert controller.get_stats()['evidence_failures'] == 1

        follow_up = controller.process(make_event(1200))
        assert follow_up.signaled is False
        assert follow_up.reason == Reason.INSUFFICIENT_RESIGNAL_GAP
        assert evidence_writer.save.call_count == 1

    def test_evidence_saving_disabled(self, config_store, controller, evidence_writer):
        """Disabled saving skips the writer but still signals."""
        config_store.set_evidence_saving_enabled(False)
        for ms in range(0, 1051, 150):
            record = controller.process(make_event(ms))

        assert record.signaled is True
        assert record.reason == Reason.EVIDENCE_SAVING_DISABLED
        evidence_writer.save.assert_not_called()

    def test_alert_sink_failure_does_not_propagate(self, controller, alert_sink):
        """A failing alert sink neither raises nor cancels the cooldown."""
        alert_sink.send.side_effect = RuntimeError("sink down")
        for ms in range(0, 1051, 150):
            record = controller.process(make_event(ms))

        assert record.signaled is True
        assert controller.gate.state.last_signal_ms == 1050

    def test_config_snapshot_read_per_event(self, config_store, controller):
        """Changes in the store apply from the next event on."""
        controller.process(make_event(0))
        config_store.set_max_gap_ms(1000)
        record = controller.process(make_event(600))
        assert record.reason == Reason.INSUFFICIENT_DURATION
        assert record.duration_ms == 600

    def test_decisions_are_stored(self, controller):
        """Every processed event lands in the decision store."""
        for ms in (0, 150, 300):
            controller.process(make_event(ms))

        decisions = controller.decision_store.list()
        assert len(decisions) == 3
        assert decisions[0]['reason'] == 'discontinuity_broken'
        assert decisions[-1]['verdict'] == 'Inhibited'

    def test_stats(self, controller):
        """Statistics track processed events and signals."""
        for ms in range(0, 1051, 150):
            controller.process(make_event(ms))
        stats = controller.get_stats()
        assert stats['events_processed'] == 8
        assert stats['signals_sent'] == 1
        assert stats['state'] == 'signaling'

    def test_replay_is_deterministic(self, config_store):
        """Fresh controllers give identical verdicts for the same events."""
        timestamps = [0, 150, 300, 450, 600, 750, 900, 1050, 1100, 1600, 1700, 3200]

        def replay():
            controller = SignalingController(config_store=config_store, alert_sink=Mock(),
                                             evidence_writer=Mock())
            return [(r.signaled, r.duration_ms, r.reason)
                    for r in (controller.process(make_event(ms)) for ms in timestamps)]

        assert replay() == replay()

    def test_default_writer_uses_configured_directory(self, tmp_path, frame):
        """Without an injected writer, evidence goes under evidence_dir."""
        store = ConfigStore(SignalingConfig(min_continuous_ms=0, evidence_dir=str(tmp_path / "ev")))
        controller = SignalingController(config_store=store, alert_sink=Mock())
        controller.process(make_event(0), frame)
        record = controller.process(make_event(100), frame)

        assert record.reason == Reason.EVIDENCE_SAVED
        assert Path(record.evidence_path).parent == tmp_path / "ev"
        assert Path(record.evidence_path).exists()

    def test_evidence_writer_exception_keeps_signal(self, controller, evidence_writer, alert_sink):
        """A writer that raises is a failed save, not an aborted signal."""
        evidence_writer.save = Mock(side_effect=RuntimeError("opencv-python is required"))
        for ms in range(0, 1051, 150):
            record = controller.process(make_event(ms))

        assert record.signaled is True
        assert record.reason == Reason.EVIDENCE_SAVE_FAILED
        assert record.evidence_path is None
        alert_sink.send.assert_called_once()
        assert controller.gate.state.last_signal_ms == 1050
        assert controller.get_stats()['evidence_failures'] == 1

        follow_up = controller.process(make_event(1200))
        assert follow_up.reason == Reason.INSUFFICIENT_RESIGNAL_GAP

    def test_signal_side_effect_order(self, config_store, controller, evidence_writer, alert_sink):
        """Evidence is saved, then the alert sent, then the signal recorded, then the decision stored."""
        config_store.set_min_continuous_ms(0)
        controller.process(make_event(0))

        manager = Mock()
        manager.attach_mock(evidence_writer.save, 'save')
        manager.attach_mock(alert_sink.send, 'send')
        controller.gate.record_signal = Mock(wraps=controller.gate.record_signal)
        manager.attach_mock(controller.gate.record_signal, 'record_signal')
        controller.decision_store = Mock()
        manager.attach_mock(controller.decision_store.add, 'add')

        record = controller.process(make_event(100))

        assert record.signaled is True
        assert [c[0] for c in manager.mock_calls] == ['save', 'send', 'record_signal', 'add']
        manager.record_signal.assert_called_once_with(100)
        alert = alert_sink.send.call_args[0][0]
        assert alert.metadata['evidence_path'] == str(Path("frame") / "frame_test.jpg")
        assert controller.gate.state.last_signal_ms == 100
