import threading
from collections import deque
from typing import Deque, Dict, List

from .decision import DecisionRecord


class DecisionStore:
    def __init__(self, max_records: int = 1000) -> None:
        self._records: Deque[DecisionRecord] = deque(maxlen=max_records)
        self._lock = threading.Lock()

    def add(self, record: DecisionRecord) -> None:
        with self._lock:
            self._records.append(record)

    def list(self, limit: int = 100) -> List[Dict[str, object]]:
        with self._lock:
            items = list(self._records)[-limit:]
        return [record.to_dict() for record in items]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
