"""Prometheus metrics for the presence monitor."""
from prometheus_client import Counter

DETECTION_EVENTS = Counter('presence_detection_events_total', 'Detection events processed')
SIGNALS_SENT = Counter('presence_signals_total', 'Presence signals raised')
EVIDENCE_FAILURES = Counter('presence_evidence_failures_total', 'Evidence frames that failed to save')
DECISIONS = Counter('presence_decisions_total', 'Decision records by reason', ['reason'])
