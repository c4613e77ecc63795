"""
Frame analysis pipeline.

One cycle reads the current frame from the FrameBuffer, differences it against
the previous frame, classifies the resulting signal and, when the detection is
confident enough, records it in the history and analytics.
"""

import logging
from typing import Callable, List, Optional

from analytics import AnalyticsAggregator
from classifier import MotionClassifier
from config import Config
from detection_history import DetectionHistory
from frame_buffer import FrameBuffer
from models import AnalyticsSnapshot, CycleOutcome, CycleResult, Detection, MotionSignal
from motion_detector import FrameDifferenceEngine
from utils import PerformanceTimer

logger = logging.getLogger(__name__)

DetectionListener = Callable[[Detection], None]


class AnalysisPipeline:
    """Difference -> classify -> accept -> record, for one frame at a time."""

    def __init__(self, config: Config, frame_buffer: FrameBuffer,
                 engine: Optional[FrameDifferenceEngine] = None,
                 classifier: Optional[MotionClassifier] = None,
                 history: Optional[DetectionHistory] = None,
                 aggregator: Optional[AnalyticsAggregator] = None):
        self.config = config
        self.frame_buffer = frame_buffer
        self.engine = engine or FrameDifferenceEngine(
            stride=config.motion.sampling_stride,
            min_pixel_difference=config.motion.min_pixel_difference,
        )
        self.classifier = classifier or MotionClassifier()
        self.history = history or DetectionHistory(config.history.capacity)
        self.aggregator = aggregator or AnalyticsAggregator()
        self.acceptance_threshold = config.classification.acceptance_threshold
        self._listeners: List[DetectionListener] = []

    def add_listener(self, listener: DetectionListener) -> None:
        """Register a callback invoked with every accepted detection."""
        self._listeners.append(listener)

    def run_cycle(self) -> CycleResult:
        """Run one analysis cycle against the current frame."""
        with PerformanceTimer("Analysis cycle", warn_after=None) as timer:
            outcome, signal, detection = self._analyze()
        return CycleResult(outcome=outcome, signal=signal, detection=detection,
                           duration_ms=timer.elapsed_ms)

    def _analyze(self):
        frame = self.frame_buffer.snapshot()
        if frame is None or frame.size == 0:
            return CycleOutcome.NO_FRAME, MotionSignal(), None

        warming_up = not self.engine.is_primed_for(frame.shape)
        signal = self.engine.compute(frame)
        if warming_up:
            return CycleOutcome.WARMUP, signal, None

        detection = self.classifier.classify(signal)
        if detection is None:
            return CycleOutcome.NO_MOTION, signal, None

        if detection.confidence <= self.acceptance_threshold:
            logger.debug(f"Discarded {detection.category.value} "
                         f"(confidence {detection.confidence:.2f} <= {self.acceptance_threshold})")
            return CycleOutcome.REJECTED, signal, detection

        self.history.push(detection)
        self.aggregator.record(detection)
        logger.info(f"Detection accepted: {detection.category.value} "
                    f"(confidence: {detection.confidence:.2f}, intensity: {detection.intensity:.2f}, "
                    f"samples: {signal.sample_count})")
        self._notify(detection)
        return CycleOutcome.ACCEPTED, signal, detection

    def _notify(self, detection: Detection) -> None:
        for listener in self._listeners:
            try:
                listener(detection)
            except Exception as e:
                logger.error(f"Detection listener {listener!r} failed: {e}", exc_info=True)

    def reset(self) -> None:
        """Drop retained frame state; the next cycle warms up again."""
        self.engine.reset()

    # Read APIs -----------------------------------------------------------

    def recent(self) -> List[Detection]:
        return self.history.recent()

    def latest(self) -> Optional[Detection]:
        return self.history.latest()

    def snapshot(self) -> AnalyticsSnapshot:
        return self.aggregator.snapshot()

    def recent_alerts(self) -> List[Detection]:
        """Recent detections above the alert threshold, most recent last."""
        return self.history.alerts(self.config.classification.alert_threshold,
                                   self.config.history.alert_limit)
