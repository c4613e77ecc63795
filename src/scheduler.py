"""
Periodic driver for the analysis pipeline.

The scheduler runs a single asyncio task that ticks at a fixed period. Ticks
are never queued: a tick that arrives while a cycle is still being processed
is dropped, and ticks while the system is inactive do nothing at all.

States::

    IDLE --start()--> RUNNING --tick()--> PROCESSING --(cycle done)--> RUNNING
                         |                     |
                       stop()                stop()
                         v                     v
                      STOPPED <-------------- STOPPED --start()--> RUNNING
"""

import asyncio
import logging
import threading
from collections import Counter
from enum import Enum
from typing import Callable, Optional

from exceptions import ConfigurationError, SchedulerError, WildlifeSystemError
from models import CycleOutcome, CycleResult
from pipeline import AnalysisPipeline
from resource_manager import SystemMonitor
from utils import PerformanceTimer

logger = logging.getLogger(__name__)


class SchedulerState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PROCESSING = "processing"  # transient, while a cycle is in flight
    STOPPED = "stopped"


class AnalysisScheduler:
    """Invokes the pipeline every ``tick_period`` seconds while running."""

    def __init__(self, pipeline: AnalysisPipeline, tick_period: float = 0.1,
                 activity_gate: Optional[Callable[[], bool]] = None,
                 system_monitor: Optional[SystemMonitor] = None):
        if tick_period <= 0:
            raise ConfigurationError(f"Tick period must be positive, got {tick_period}")

        self.pipeline = pipeline
        self.tick_period = tick_period
        self.activity_gate = activity_gate or (lambda: True)
        self.system_monitor = system_monitor

        self.outcome_counts = Counter()
        self._state = SchedulerState.IDLE
        self._task: Optional[asyncio.Task] = None
        self._lock = threading.Lock()

    @property
    def state(self) -> SchedulerState:
        with self._lock:
            return self._state

    @property
    def is_running(self) -> bool:
        return self.state in (SchedulerState.RUNNING, SchedulerState.PROCESSING)

    def start(self) -> None:
        """Start (or restart) periodic analysis on the running event loop."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            raise SchedulerError("Analysis scheduler must be started from a running event loop") from None

        if self._task is not None and not self._task.done():
            logger.info("Analysis scheduler already running, restarting timer")
            self._task.cancel()

        with self._lock:
            if self._state is not SchedulerState.PROCESSING:
                self._state = SchedulerState.RUNNING

        self._task = loop.create_task(self._run(), name="analysis-scheduler")
        logger.info(f"Analysis scheduler started (period: {self.tick_period * 1000:.0f}ms)")

    def stop(self) -> None:
        """Cancel the timer and drop retained frame state. Safe to call at any time."""
        if self._task is not None and not self._task.done():
            self._task.cancel()

        with self._lock:
            previous_state = self._state
            self._state = SchedulerState.STOPPED

        self.pipeline.reset()

        if previous_state is not SchedulerState.STOPPED:
            logger.info("Analysis scheduler stopped")

    async def wait_closed(self) -> None:
        """Wait for the timer task to finish after stop()."""
        if self._task is not None and self._task is not asyncio.current_task():
            await asyncio.wait({self._task})

    async def __aenter__(self):
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        await self.wait_closed()

    def tick(self) -> CycleResult:
        """Run one cycle now, unless inactive, stopped or already processing."""
        skipped = self._check_skip()
        if skipped is None:
            if not self.activity_gate():
                skipped = CycleOutcome.SKIPPED_INACTIVE
            elif self.system_monitor is not None and self.system_monitor.should_skip_processing():
                skipped = CycleOutcome.SKIPPED_RESOURCES

        if skipped is None:
            with self._lock:
                if self._state is SchedulerState.RUNNING:
                    self._state = SchedulerState.PROCESSING
                else:
                    skipped = (CycleOutcome.SKIPPED_BUSY if self._state is SchedulerState.PROCESSING
                               else CycleOutcome.SKIPPED_INACTIVE)

        if skipped is not None:
            self.outcome_counts[skipped] += 1
            return CycleResult(outcome=skipped)

        try:
            with PerformanceTimer("Analysis cycle", warn_after=self.tick_period):
                result = self.pipeline.run_cycle()
        except WildlifeSystemError as e:
            logger.error(f"Analysis cycle failed: {e}", exc_info=True)
            result = CycleResult(outcome=CycleOutcome.FAILED)
        finally:
            with self._lock:
                # stop() during the cycle leaves the scheduler stopped
                if self._state is SchedulerState.PROCESSING:
                    self._state = SchedulerState.RUNNING

        self.outcome_counts[result.outcome] += 1
        return result

    def _check_skip(self) -> Optional[CycleOutcome]:
        with self._lock:
            state = self._state
        if state is SchedulerState.PROCESSING:
            logger.info("Previous analysis cycle still in progress, dropping tick")
            return CycleOutcome.SKIPPED_BUSY
        if state is not SchedulerState.RUNNING:
            logger.debug(f"Tick ignored in state {state.value}")
            return CycleOutcome.SKIPPED_INACTIVE
        return None

    async def _run(self) -> None:
        # First tick fires one period after start
        while True:
            await asyncio.sleep(self.tick_period)
            try:
                self.tick()
            except Exception as e:
                logger.error(f"Error in analysis tick: {e}", exc_info=True)
