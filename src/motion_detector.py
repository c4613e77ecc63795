import logging
import threading
from typing import Optional, Tuple

import cv2
import numpy as np

from exceptions import ConfigurationError, MotionDetectionError
from models import MotionSignal

logger = logging.getLogger(__name__)

COLOR_CHANNELS = 3


class FrameDifferenceEngine:
    """
    Compares each frame with the previously seen one on a strided grid.

    Only every ``stride``-th pixel in both axes is compared, so the cost of a
    cycle is bounded independently of the camera resolution. The engine keeps
    a private copy of the last frame it saw; that copy is the only state it
    mutates.
    """

    def __init__(self, stride: int = 8, min_pixel_difference: int = 10):
        if stride <= 0:
            raise ConfigurationError(f"Sampling stride must be positive, got {stride}")
        if min_pixel_difference < 0:
            raise ConfigurationError(
                f"Minimum pixel difference cannot be negative, got {min_pixel_difference}"
            )

        self.stride = stride
        self.min_pixel_difference = min_pixel_difference

        self._previous_frame: Optional[np.ndarray] = None
        self._reset_count = 0
        self._compute_lock = threading.Lock()
        self._state_lock = threading.Lock()

    @property
    def in_progress(self) -> bool:
        """True while a compute call is running."""
        return self._compute_lock.locked()

    def is_primed_for(self, shape: Tuple[int, ...]) -> bool:
        """Whether the next frame of this shape will be compared against a retained frame."""
        with self._state_lock:
            return self._previous_frame is not None and self._previous_frame.shape == tuple(shape)

    def reset(self) -> None:
        """Forget the retained frame so the next compute starts with warm-up."""
        with self._state_lock:
            self._previous_frame = None
            self._reset_count += 1

    def compute(self, frame) -> MotionSignal:
        """Difference frame against the retained previous frame."""
        if not self._compute_lock.acquire(blocking=False):
            logger.info("Frame difference already in progress, skipping frame")
            return MotionSignal()

        try:
            return self._compute(frame)
        finally:
            self._compute_lock.release()

    def _compute(self, frame) -> MotionSignal:
        if frame is None or frame.size == 0:
            logger.debug("No frame available for differencing")
            return MotionSignal()

        if frame.ndim != 3 or frame.shape[2] < COLOR_CHANNELS:
            raise MotionDetectionError(
                f"Expected an RGB(A) frame of shape (height, width, channels), got {frame.shape}"
            )
        if frame.dtype != np.uint8:
            raise MotionDetectionError(f"Expected 8-bit frame data, got dtype {frame.dtype}")

        with self._state_lock:
            previous = self._previous_frame
            reset_marker = self._reset_count

        if previous is None:
            logger.debug("No retained frame yet, warming up")
            self._retain(frame, reset_marker)
            return MotionSignal()

        if previous.shape != frame.shape:
            logger.info(f"Frame size changed from {previous.shape} to {frame.shape}, "
                        f"resetting retained frame")
            self._retain(frame, reset_marker)
            return MotionSignal()

        current_grid = self._sample(frame)
        previous_grid = self._sample(previous)

        # Sum of absolute R, G, B differences per sampled pixel
        channel_diff = cv2.absdiff(current_grid, previous_grid)
        pixel_diff = channel_diff.sum(axis=2, dtype=np.int64)

        moving = pixel_diff > self.min_pixel_difference
        signal = MotionSignal(
            total_magnitude=int(pixel_diff[moving].sum()),
            sample_count=int(np.count_nonzero(moving)),
        )

        self._retain(frame, reset_marker)
        return signal

    def _sample(self, frame: np.ndarray) -> np.ndarray:
        grid = frame[::self.stride, ::self.stride, :COLOR_CHANNELS]
        return np.ascontiguousarray(grid)

    def _retain(self, frame: np.ndarray, reset_marker: int) -> None:
        frame_copy = np.array(frame, copy=True)
        with self._state_lock:
            # A reset during this compute wins over the frame we just processed
            if self._reset_count == reset_marker:
                self._previous_frame = frame_copy
