"""
Utility classes for the wildlife motion analyzer.

This module contains:
- PerformanceTimer: Timing utility that flags slow operations
"""

import logging
import time
from typing import Optional

logger = logging.getLogger(__name__)


class PerformanceTimer:
    """Performance timing utility."""

    def __init__(self, operation_name="Operation", warn_after: Optional[float] = 1.0):
        self.operation_name = operation_name
        self.warn_after = warn_after
        self.start_time = None
        self.end_time = None

    def start(self):
        """Start timing."""
        self.start_time = time.perf_counter()
        self.end_time = None
        return self

    def stop(self):
        """Stop timing and return duration."""
        if self.start_time is None:
            return 0.0

        self.end_time = time.perf_counter()
        duration = self.end_time - self.start_time
        return duration

    @property
    def elapsed_ms(self) -> float:
        """Elapsed time in milliseconds (up to now if still running)."""
        if self.start_time is None:
            return 0.0
        end = self.end_time if self.end_time is not None else time.perf_counter()
        return (end - self.start_time) * 1000

    def __enter__(self):
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        duration = self.stop()
        if self.warn_after is not None and duration > self.warn_after:  # Log slow operations
            logger.warning(f"{self.operation_name} took {duration * 1000:.1f}ms "
                           f"(limit {self.warn_after * 1000:.1f}ms)")
