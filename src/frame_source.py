"""
Frame sources feeding the FrameBuffer.
Thin wrappers around the capture device; all analysis happens elsewhere.
"""

from __future__ import annotations
import logging
import time
from abc import ABC, abstractmethod
from typing import Optional, Tuple

import cv2
import numpy as np

from config import Config
from exceptions import CameraInitializationError, CameraOperationError

logger = logging.getLogger(__name__)


class FrameSource(ABC):
    """Abstract interface for frame sources producing RGBA frames."""

    @abstractmethod
    def start(self) -> None:
        """Start the source."""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop the source."""
        pass

    @abstractmethod
    def read_frame(self) -> Optional[np.ndarray]:
        """Read the next frame as an (height, width, 4) uint8 RGBA array."""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the source is running."""
        pass

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()


class VideoCaptureFrameSource(FrameSource):
    """Frame source backed by an OpenCV VideoCapture device."""

    def __init__(self, config: Config):
        self.config = config
        self.capture = None
        self._is_running = False
        self._max_retries = 3
        self._retry_delay = 1.0

        logger.info(f"Initializing VideoCapture source (device {config.camera.device_index})")

    def start(self) -> None:
        """Open the capture device with retry logic."""
        if self._is_running:
            logger.warning("Camera is already running")
            return

        retry_count = 0
        while retry_count < self._max_retries:
            capture = cv2.VideoCapture(self.config.camera.device_index)
            if capture.isOpened():
                width, height = self.config.camera.resolution
                capture.set(cv2.CAP_PROP_FRAME_WIDTH, width)
                capture.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
                self.capture = capture
                self._is_running = True
                logger.info("Camera started successfully")
                return

            capture.release()
            retry_count += 1
            logger.error(f"Camera initialization attempt {retry_count} failed")
            if retry_count < self._max_retries:
                time.sleep(self._retry_delay * retry_count)

        raise CameraInitializationError(
            f"Failed to open camera {self.config.camera.device_index} "
            f"after {self._max_retries} attempts"
        )

    def stop(self) -> None:
        """Release the capture device."""
        if not self._is_running:
            return

        if self.capture is not None:
            self.capture.release()
            self.capture = None
        self._is_running = False
        logger.info("Camera stopped successfully")

    def read_frame(self) -> Optional[np.ndarray]:
        if not self._is_running or self.capture is None:
            raise CameraOperationError("Camera not initialized")

        ok, bgr_frame = self.capture.read()
        if not ok or bgr_frame is None:
            raise CameraOperationError("Failed to read frame from camera")

        return cv2.cvtColor(bgr_frame, cv2.COLOR_BGR2RGBA)

    def is_available(self) -> bool:
        return self._is_running


class MockFrameSource(FrameSource):
    """
    Synthetic source for testing and development.

    Produces a static, lightly textured scene. When ``moving_block`` is set, a
    bright square of that size moves across the scene by ``block_step``
    pixels per frame.
    """

    def __init__(self, config: Config, moving_block: Optional[int] = None,
                 block_step: int = 16, seed: int = 0):
        self.config = config
        self.moving_block = moving_block
        self.block_step = block_step
        self._rng = np.random.default_rng(seed)
        self._is_running = False
        self._frame_index = 0
        self._background = self._create_background(config.camera.resolution)
        logger.info("Initializing Mock frame source")

    def _create_background(self, resolution: Tuple[int, int]) -> np.ndarray:
        width, height = resolution
        background = self._rng.integers(40, 80, size=(height, width, 4), dtype=np.uint8)
        background[:, :, 3] = 255
        return background

    def start(self) -> None:
        self._is_running = True
        self._frame_index = 0
        logger.info("Mock frame source started")

    def stop(self) -> None:
        self._is_running = False
        logger.info("Mock frame source stopped")

    def read_frame(self) -> Optional[np.ndarray]:
        if not self._is_running:
            return None

        frame = self._background.copy()
        if self.moving_block:
            height, width = frame.shape[:2]
            size = self.moving_block
            span = max(width - size, 1)
            x = (self._frame_index * self.block_step) % span
            y = max((height - size) // 2, 0)
            frame[y:y + size, x:x + size, :3] = 250
        self._frame_index += 1
        return frame

    def is_available(self) -> bool:
        return self._is_running


def create_frame_source(config: Config, use_mock: bool = False) -> FrameSource:
    """Build the frame source for this host."""
    if use_mock:
        return MockFrameSource(config, moving_block=96)
    return VideoCaptureFrameSource(config)
