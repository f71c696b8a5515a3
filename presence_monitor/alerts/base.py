"""
Alert types and sinks.
A sink receives one alert per confirmed presence signal.
"""
from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from loguru import logger


class AlertSeverity(Enum):
    """Alert severity levels."""
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class Alert:
    """Alert data container."""

    def __init__(self,
                 source_id: str,
                 message: str,
                 wall_time: datetime,
                 severity: AlertSeverity = AlertSeverity.WARNING,
                 metadata: Optional[Dict] = None):
        """
        Initialize alert.

        Args:
            source_id: ID of the capture source that triggered the alert
            message: Alert message
            wall_time: Signal time
            severity: Severity level
            metadata: Additional alert data (window, evidence path)
        """
        self.source_id = source_id
        self.message = message
        self.wall_time = wall_time
        self.severity = severity
        self.metadata = metadata or {}

    def to_dict(self) -> Dict:
        """Convert alert to dictionary."""
        return {
            'alert_type': 'presence',
            'severity': self.severity.value,
            'source_id': self.source_id,
            'message': self.message,
            'metadata': self.metadata,
            'timestamp': self.wall_time.isoformat(),
        }


class AlertSink:
    def send(self, alert: Alert) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass


class LogAlertSink(AlertSink):
    """Default sink: records the alert in the application log only."""

    def __init__(self):
        self.alerts_sent = 0

    def send(self, alert: Alert) -> None:
        self.alerts_sent += 1
        logger.info(f"Presence alert [{alert.severity.value}] {alert.source_id}: {alert.message}")
