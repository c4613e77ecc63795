import logging
import threading
from collections import deque
from typing import List, Optional

from exceptions import ConfigurationError
from models import Detection

logger = logging.getLogger(__name__)


class DetectionHistory:
    """Bounded, time-ordered buffer of accepted detections (oldest evicted first)."""

    def __init__(self, capacity: int = 50):
        if capacity < 1:
            raise ConfigurationError(f"History capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._detections = deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._detections)

    def push(self, detection: Detection) -> None:
        """Append a detection, evicting the oldest one when full."""
        with self._lock:
            self._detections.append(detection)

    def recent(self) -> List[Detection]:
        """Copy of the stored detections, most recent last."""
        with self._lock:
            return list(self._detections)

    def latest(self) -> Optional[Detection]:
        with self._lock:
            return self._detections[-1] if self._detections else None

    def alerts(self, threshold: float, limit: int = 5) -> List[Detection]:
        """
        Most recent detections with confidence strictly above threshold.

        Args:
            threshold: Alert confidence threshold (owned by the caller)
            limit: Maximum number of alerts returned

        Returns:
            Up to ``limit`` detections, most recent last
        """
        if limit <= 0:
            return []
        with self._lock:
            matching = [d for d in self._detections if d.confidence > threshold]
        return matching[-limit:]
