"""
Tests for the analysis scheduler state machine and periodic ticking.
"""

import asyncio
import pytest
import numpy as np
from unittest.mock import Mock

import sys
sys.path.append('src')

from config import Config
from exceptions import ConfigurationError, MotionDetectionError, SchedulerError
from frame_buffer import FrameBuffer
from models import CycleOutcome, CycleResult
from pipeline import AnalysisPipeline
from scheduler import AnalysisScheduler, SchedulerState

# Long enough that the timer never fires during a test that ticks by hand
MANUAL_PERIOD = 60.0


def make_frame(value=0):
    return np.full((240, 320, 4), value, dtype=np.uint8)


def make_mock_pipeline():
    pipeline = Mock(spec=AnalysisPipeline)
    pipeline.run_cycle.return_value = CycleResult(outcome=CycleOutcome.NO_MOTION)
    return pipeline


class TestSchedulerBasics:
    """Test construction and ticks outside the running state."""

    def test_initial_state(self):
        """Test a new scheduler is idle."""
        scheduler = AnalysisScheduler(make_mock_pipeline())
        assert scheduler.state is SchedulerState.IDLE
        assert not scheduler.is_running

    def test_invalid_tick_period(self):
        """Test non-positive periods fail fast."""
        with pytest.raises(ConfigurationError):
            AnalysisScheduler(make_mock_pipeline(), tick_period=0)

    def test_tick_while_idle_does_nothing(self):
        """Test ticks before start() never reach the pipeline."""
        pipeline = make_mock_pipeline()
        scheduler = AnalysisScheduler(pipeline)

        result = scheduler.tick()

        assert result.outcome is CycleOutcome.SKIPPED_INACTIVE
        pipeline.run_cycle.assert_not_called()

    def test_start_requires_event_loop(self):
        """Test start() outside an event loop raises."""
        scheduler = AnalysisScheduler(make_mock_pipeline())
        with pytest.raises(SchedulerError, match="running event loop"):
            scheduler.start()
        assert scheduler.state is SchedulerState.IDLE

    def test_stop_is_idempotent(self):
        """Test stop() can be called repeatedly, even before start()."""
        pipeline = make_mock_pipeline()
        scheduler = AnalysisScheduler(pipeline)

        scheduler.stop()
        scheduler.stop()

        assert scheduler.state is SchedulerState.STOPPED
        assert pipeline.reset.call_count == 2


class TestSchedulerTicks:
    """Test tick handling while running."""

    @pytest.mark.asyncio
    async def test_start_and_tick(self):
        """Test a running scheduler invokes the pipeline."""
        pipeline = make_mock_pipeline()
        scheduler = AnalysisScheduler(pipeline, tick_period=MANUAL_PERIOD)
        scheduler.start()
        try:
            assert scheduler.state is SchedulerState.RUNNING

            result = scheduler.tick()

            assert result.outcome is CycleOutcome.NO_MOTION
            pipeline.run_cycle.assert_called_once()
            assert scheduler.state is SchedulerState.RUNNING
            assert scheduler.outcome_counts[CycleOutcome.NO_MOTION] == 1
        finally:
            scheduler.stop()
            await scheduler.wait_closed()

    @pytest.mark.asyncio
    async def test_inactive_gate_skips_tick(self):
        """Test the activity gate prevents any pipeline call."""
        pipeline = make_mock_pipeline()
        active = {'value': False}
        scheduler = AnalysisScheduler(pipeline, tick_period=MANUAL_PERIOD,
                                      activity_gate=lambda: active['value'])
        async with scheduler:
            assert scheduler.tick().outcome is CycleOutcome.SKIPPED_INACTIVE
            pipeline.run_cycle.assert_not_called()

            active['value'] = True
            assert scheduler.tick().outcome is CycleOutcome.NO_MOTION

    @pytest.mark.asyncio
    async def test_resource_pressure_skips_tick(self):
        """Test cycles are skipped while memory is short."""
        pipeline = make_mock_pipeline()
        monitor = Mock()
        monitor.should_skip_processing.return_value = True
        scheduler = AnalysisScheduler(pipeline, tick_period=MANUAL_PERIOD, system_monitor=monitor)

        async with scheduler:
            assert scheduler.tick().outcome is CycleOutcome.SKIPPED_RESOURCES
            pipeline.run_cycle.assert_not_called()

    @pytest.mark.asyncio
    async def test_tick_during_cycle_is_dropped(self):
        """Test a tick arriving mid-cycle is dropped, not queued."""
        pipeline = make_mock_pipeline()
        scheduler = AnalysisScheduler(pipeline, tick_period=MANUAL_PERIOD)
        seen = {}

        def reentrant_cycle():
            seen['state'] = scheduler.state
            seen['inner'] = scheduler.tick()
            return CycleResult(outcome=CycleOutcome.NO_MOTION)

        pipeline.run_cycle.side_effect = reentrant_cycle

        async with scheduler:
            outer = scheduler.tick()

            assert seen['state'] is SchedulerState.PROCESSING
            assert seen['inner'].outcome is CycleOutcome.SKIPPED_BUSY
            assert outer.outcome is CycleOutcome.NO_MOTION
            assert pipeline.run_cycle.call_count == 1
            assert scheduler.state is SchedulerState.RUNNING

    @pytest.mark.asyncio
    async def test_failed_cycle_is_absorbed(self):
        """Test processing errors are reported as a failed cycle."""
        pipeline = make_mock_pipeline()
        pipeline.run_cycle.side_effect = MotionDetectionError("bad frame")
        scheduler = AnalysisScheduler(pipeline, tick_period=MANUAL_PERIOD)

        async with scheduler:
            assert scheduler.tick().outcome is CycleOutcome.FAILED
            assert scheduler.state is SchedulerState.RUNNING

    @pytest.mark.asyncio
    async def test_stop_during_cycle(self):
        """Test stop() called mid-cycle leaves the scheduler stopped."""
        pipeline = make_mock_pipeline()
        scheduler = AnalysisScheduler(pipeline, tick_period=MANUAL_PERIOD)

        def stopping_cycle():
            scheduler.stop()
            return CycleResult(outcome=CycleOutcome.NO_MOTION)

        pipeline.run_cycle.side_effect = stopping_cycle
        scheduler.start()

        scheduler.tick()

        assert scheduler.state is SchedulerState.STOPPED
        pipeline.reset.assert_called_once()
        assert scheduler.tick().outcome is CycleOutcome.SKIPPED_INACTIVE
        await scheduler.wait_closed()


class TestSchedulerLifecycle:
    """Test start/stop/restart with a real pipeline."""

    def setup_method(self):
        """Set up a real pipeline over a frame buffer."""
        self.config = Config.create_test_config()
        self.buffer = FrameBuffer()
        self.pipeline = AnalysisPipeline(self.config, self.buffer)

    @pytest.mark.asyncio
    async def test_restart_begins_with_warmup(self):
        """Test stop() then start() behaves like a first-ever cycle."""
        scheduler = AnalysisScheduler(self.pipeline, tick_period=MANUAL_PERIOD)
        scheduler.start()

        self.buffer.publish(make_frame())
        assert scheduler.tick().outcome is CycleOutcome.WARMUP
        self.buffer.publish(make_frame(value=200))
        assert scheduler.tick().outcome is CycleOutcome.ACCEPTED

        scheduler.stop()
        await scheduler.wait_closed()
        assert scheduler.state is SchedulerState.STOPPED

        scheduler.start()
        self.buffer.publish(make_frame())
        result = scheduler.tick()

        assert result.outcome is CycleOutcome.WARMUP
        assert self.pipeline.snapshot().total_detections == 1

        scheduler.stop()
        await scheduler.wait_closed()

    @pytest.mark.asyncio
    async def test_restart_does_not_stack_timers(self):
        """Test start() while running replaces the previous timer."""
        scheduler = AnalysisScheduler(self.pipeline, tick_period=MANUAL_PERIOD)
        scheduler.start()
        first_task = scheduler._task

        scheduler.start()
        second_task = scheduler._task
        await asyncio.sleep(0)

        assert first_task is not second_task
        assert first_task.cancelled()
        assert not second_task.done()
        assert scheduler.state is SchedulerState.RUNNING

        scheduler.stop()
        await scheduler.wait_closed()
        assert second_task.cancelled()

    @pytest.mark.asyncio
    async def test_periodic_ticks(self):
        """Test the timer drives the pipeline while running."""
        pipeline = make_mock_pipeline()
        scheduler = AnalysisScheduler(pipeline, tick_period=0.01)

        async with scheduler:
            await asyncio.sleep(0.2)

        assert pipeline.run_cycle.call_count >= 2
        assert scheduler.state is SchedulerState.STOPPED

        calls_after_stop = pipeline.run_cycle.call_count
        await asyncio.sleep(0.05)
        assert pipeline.run_cycle.call_count == calls_after_stop

    @pytest.mark.asyncio
    async def test_periodic_detection_end_to_end(self):
        """Test frames published while running end up in the history."""
        scheduler = AnalysisScheduler(self.pipeline, tick_period=0.01)

        async with scheduler:
            self.buffer.publish(make_frame())
            await asyncio.sleep(0.1)
            self.buffer.publish(make_frame(value=200))
            await asyncio.sleep(0.1)

        assert self.pipeline.snapshot().total_detections == 1
        assert len(self.pipeline.recent()) == 1


if __name__ == '__main__':
    pytest.main([__file__])
