import queue
import threading
from typing import Optional

import requests
from loguru import logger

from .base import Alert, AlertSink


class WebhookAlertDispatcher(AlertSink):
    """Posts alerts as JSON from a background thread so ``send`` never blocks."""

    def __init__(self, url: str, timeout_seconds: float, max_queue: int = 100) -> None:
        self.url = url
        self.timeout_seconds = timeout_seconds
        self._queue: queue.Queue = queue.Queue(maxsize=max_queue)
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.delivered = 0
        self.failed = 0
        self.dropped = 0

    def start(self) -> None:
        if self._thread:
            return
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=2)
            self._thread = None

    close = stop

    def send(self, alert: Alert) -> None:
        try:
            self._queue.put_nowait(alert)
        except queue.Full:
            self.dropped += 1
            logger.warning("Alert queue full; dropping alert")

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                alert = self._queue.get(timeout=0.5)
            except queue.Empty:
                continue
            self.deliver(alert)

    def deliver(self, alert: Alert) -> bool:
        try:
            response = requests.post(self.url, json=alert.to_dict(), timeout=self.timeout_seconds)
        except requests.RequestException as e:
            self.failed += 1
            logger.error(f"Webhook error: {e}")
            return False

        if response.status_code >= 300:
            self.failed += 1
            logger.warning(f"Webhook failed with status {response.status_code}")
            return False

        self.delivered += 1
        logger.debug(f"Webhook delivered for {alert.source_id}")
        return True
