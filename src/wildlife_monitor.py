#!/usr/bin/env python3
"""
Wildlife motion monitor.
Feeds camera frames into the analysis pipeline and reports detections and
activity statistics.
"""

import argparse
import asyncio
import dataclasses
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from activity import ActivitySwitch, DaylightGate, combine_gates
from config import Config
from exceptions import CameraError
from frame_buffer import FrameBuffer
from frame_source import FrameSource, create_frame_source
from models import Detection
from pipeline import AnalysisPipeline
from resource_manager import SystemMonitor
from scheduler import AnalysisScheduler

logger = logging.getLogger(__name__)


class WildlifeMonitor:
    """
    Wires the frame source, analysis pipeline and scheduler together and runs
    the capture loop.
    """

    def __init__(self, config: Optional[Config] = None, frame_source: Optional[FrameSource] = None):
        # Load configuration
        self.config = config or Config()

        # Initialize all components
        self.frame_source = frame_source or create_frame_source(self.config)
        self.frame_buffer = FrameBuffer()
        self.pipeline = AnalysisPipeline(self.config, self.frame_buffer)
        self.system_monitor = SystemMonitor(self.config)
        self.activity = ActivitySwitch(active=True)

        gates = [self.activity.is_active]
        self.daylight_gate = None
        if self.config.scheduler.daylight_only:
            self.daylight_gate = DaylightGate(self.config)
            gates.append(self.daylight_gate.is_daytime)

        self.scheduler = AnalysisScheduler(
            self.pipeline,
            tick_period=self.config.scheduler.tick_period,
            activity_gate=combine_gates(*gates),
            system_monitor=self.system_monitor,
        )
        self.pipeline.add_listener(self._on_detection)

        # Thread pool for blocking frame reads
        self.executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="frame-source")

        self.last_status_log_time = 0.0

    def _on_detection(self, detection: Detection) -> None:
        if detection.confidence > self.config.classification.alert_threshold:
            logger.warning(f"ALERT: {detection.category.value} "
                           f"(confidence: {detection.confidence:.1%}) "
                           f"at {detection.timestamp.strftime('%H:%M:%S')}")

    def log_status(self) -> None:
        """Log analytics and system status."""
        snapshot = self.pipeline.snapshot()
        latest = self.pipeline.latest()
        by_category = ", ".join(f"{category.value}={count}"
                                for category, count in snapshot.by_category.items())
        logger.info(f"Detections: {snapshot.total_detections} ({by_category or 'none'}), "
                    f"peak hour: {snapshot.peak_hour}, "
                    f"latest: {latest.category.value if latest else 'none'}")
        outcomes = ", ".join(f"{outcome.value}={count}"
                             for outcome, count in self.scheduler.outcome_counts.items())
        logger.info(f"Cycle outcomes: {outcomes or 'none'}")
        self.system_monitor.log_system_status()

    async def run(self, duration: Optional[float] = None):
        """Main loop: pump frames into the buffer while the scheduler analyzes them."""
        logger.info("Wildlife motion monitor is running...")
        logger.info("Motion analysis parameters:")
        logger.info(f"- Sampling stride: {self.config.motion.sampling_stride}px")
        logger.info(f"- Minimum pixel difference: {self.config.motion.min_pixel_difference}")
        logger.info(f"- Acceptance threshold: {self.config.classification.acceptance_threshold}")
        logger.info(f"- Alert threshold: {self.config.classification.alert_threshold}")
        logger.info(f"- History capacity: {self.config.history.capacity}")
        logger.info(f"- Tick period: {self.config.scheduler.tick_period * 1000:.0f}ms")
        if self.daylight_gate is not None:
            sun_info = self.daylight_gate.get_sun_info()
            logger.info(f"Daylight tracking enabled: sunrise {sun_info['sunrise']}, "
                        f"sunset {sun_info['sunset']}")
        else:
            logger.info("24/7 tracking enabled (daylight checking disabled)")

        self.system_monitor.log_system_status()

        loop = asyncio.get_running_loop()
        started_at = time.monotonic()

        try:
            logger.info("Initializing camera...")
            await loop.run_in_executor(self.executor, self.frame_source.start)
            self.scheduler.start()

            while duration is None or time.monotonic() - started_at < duration:
                try:
                    frame = await loop.run_in_executor(self.executor, self.frame_source.read_frame)
                    if frame is not None:
                        self.frame_buffer.publish(frame)
                    else:
                        logger.warning("Failed to capture frame")

                    current_time = time.monotonic()
                    if current_time - self.last_status_log_time >= self.config.performance.status_log_interval:
                        self.last_status_log_time = current_time
                        self.log_status()

                    await asyncio.sleep(self.config.camera.frame_interval)

                except CameraError as e:
                    logger.error(f"Error in capture loop: {e}", exc_info=True)
                    await asyncio.sleep(self.config.performance.error_sleep)
        finally:
            # Cleanup on exit
            logger.info("Cleaning up resources...")
            self.scheduler.stop()
            await self.scheduler.wait_closed()
            await loop.run_in_executor(self.executor, self.frame_source.stop)
            self.executor.shutdown(wait=True, cancel_futures=True)
            self.log_status()


def main(argv=None):
    parser = argparse.ArgumentParser(description="Wildlife motion monitor")
    parser.add_argument("--mock", action="store_true", help="Use a synthetic frame source")
    parser.add_argument("--device", type=int, default=None, help="Camera device index")
    parser.add_argument("--duration", type=float, default=None, help="Stop after N seconds")
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    args = parser.parse_args(argv)

    # Setup logging
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    config = Config()
    if args.device is not None:
        config.camera = dataclasses.replace(config.camera, device_index=args.device)

    monitor = WildlifeMonitor(config, create_frame_source(config, use_mock=args.mock))
    try:
        asyncio.run(monitor.run(duration=args.duration))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
