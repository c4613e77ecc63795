"""
Running statistics over accepted detections.

Counters only ever increase for the lifetime of the process: total detections,
detections per motion category and a 24-bucket histogram by local hour of day.
"""

import logging
import threading
from datetime import datetime
from types import MappingProxyType
from typing import Dict

from models import AnalyticsSnapshot, Detection, MotionCategory, HOURS_PER_DAY

logger = logging.getLogger(__name__)


def local_hour(timestamp: datetime) -> int:
    """Hour of day (0-23) in local time. Naive timestamps are taken as local."""
    if timestamp.tzinfo is None:
        return timestamp.hour
    return timestamp.astimezone().hour


class AnalyticsAggregator:
    """Folds accepted detections into monotonic counters."""

    def __init__(self):
        self._total_detections = 0
        self._by_category: Dict[MotionCategory, int] = {}
        self._hourly = [0] * HOURS_PER_DAY
        self._lock = threading.Lock()

    def record(self, detection: Detection) -> None:
        hour = local_hour(detection.timestamp)
        with self._lock:
            self._total_detections += 1
            self._by_category[detection.category] = self._by_category.get(detection.category, 0) + 1
            self._hourly[hour] += 1

    def snapshot(self) -> AnalyticsSnapshot:
        """Read-only copy of the current counters."""
        with self._lock:
            return AnalyticsSnapshot(
                total_detections=self._total_detections,
                by_category=MappingProxyType(dict(self._by_category)),
                hourly=tuple(self._hourly),
            )
