"""
Motion classification for frame difference signals.

Maps a raw MotionSignal to an intensity, a confidence score and a coarse
motion category. The classifier does not decide whether a detection is kept;
that acceptance policy belongs to the pipeline.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from models import Detection, MotionCategory, MotionSignal

logger = logging.getLogger(__name__)

# 255 per channel across R, G, B
MAX_PIXEL_DIFFERENCE = 255 * 3

# Sample count at which motion is considered to cover the whole scene
FULL_COVERAGE_SAMPLES = 1000

INTENSITY_WEIGHT = 0.6
COVERAGE_WEIGHT = 0.4

# (category, intensity must exceed, sample count must exceed), checked in order
CATEGORY_RULES = (
    (MotionCategory.LARGE_ANIMAL, 0.7, 500),
    (MotionCategory.MEDIUM_ANIMAL, 0.4, 200),
    (MotionCategory.SMALL_ANIMAL, 0.2, 50),
)


def calculate_intensity(total_magnitude: int, sample_count: int) -> float:
    """Mean per-sample difference normalized to [0, 1]."""
    if sample_count <= 0:
        return 0.0
    return min(total_magnitude / (sample_count * MAX_PIXEL_DIFFERENCE), 1.0)


def calculate_confidence(intensity: float, sample_count: int) -> float:
    """Weight strength of change 60/40 over breadth of change."""
    intensity_factor = min(intensity * 2, 1.0)
    coverage_factor = min(sample_count / FULL_COVERAGE_SAMPLES, 1.0)
    return intensity_factor * INTENSITY_WEIGHT + coverage_factor * COVERAGE_WEIGHT


def categorize_motion(intensity: float, sample_count: int) -> MotionCategory:
    for category, min_intensity, min_samples in CATEGORY_RULES:
        if intensity > min_intensity and sample_count > min_samples:
            return category
    return MotionCategory.AMBIENT_MOTION


class MotionClassifier:
    """Turns motion signals into timestamped detections."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or datetime.now

    def classify(self, signal: MotionSignal) -> Optional[Detection]:
        """Classify signal, or return None when no motion was observed."""
        if signal.sample_count <= 0:
            return None

        intensity = calculate_intensity(signal.total_magnitude, signal.sample_count)
        confidence = calculate_confidence(intensity, signal.sample_count)
        category = categorize_motion(intensity, signal.sample_count)

        logger.debug(f"Classified motion: samples={signal.sample_count}, "
                     f"intensity={intensity:.3f}, confidence={confidence:.3f}, "
                     f"category={category.value}")

        return Detection(
            timestamp=self._clock(),
            intensity=intensity,
            confidence=confidence,
            category=category,
        )
