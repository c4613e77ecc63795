"""
Latest-frame holder shared between the frame source and the analysis core.

The writer never mutates a published frame: every publish stores a fresh,
read-only copy and swaps the reference under a lock, so a reader always sees
either the whole previous frame or the whole new one.
"""

import logging
import threading
from typing import Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)


class FrameBuffer:
    """Swap-on-write buffer for the most recently captured frame."""

    def __init__(self):
        self._frame: Optional[np.ndarray] = None
        self._generation = 0
        self._lock = threading.Lock()

    def publish(self, frame: np.ndarray) -> None:
        """Store a copy of frame as the current frame."""
        frame_copy = np.array(frame, copy=True)
        frame_copy.setflags(write=False)

        with self._lock:
            previous_shape = self._frame.shape if self._frame is not None else None
            self._frame = frame_copy
            self._generation += 1

        if previous_shape is not None and previous_shape != frame_copy.shape:
            logger.info(f"Frame size changed from {previous_shape} to {frame_copy.shape}")

    def snapshot(self) -> Optional[np.ndarray]:
        """Return the current frame (read-only) or None if nothing was published."""
        with self._lock:
            return self._frame

    def clear(self) -> None:
        """Drop the current frame."""
        with self._lock:
            self._frame = None

    @property
    def generation(self) -> int:
        """Number of frames published so far."""
        with self._lock:
            return self._generation

    @property
    def shape(self) -> Optional[Tuple[int, ...]]:
        with self._lock:
            return self._frame.shape if self._frame is not None else None
