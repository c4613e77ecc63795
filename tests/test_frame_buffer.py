"""
Unit tests for the shared frame buffer.
"""

import threading
import pytest
import numpy as np

import sys
sys.path.append('src')

from frame_buffer import FrameBuffer


class TestFrameBuffer:
    """Test swap-on-write frame handling."""

    def test_empty_buffer(self):
        """Test initial state."""
        buffer = FrameBuffer()
        assert buffer.snapshot() is None
        assert buffer.shape is None
        assert buffer.generation == 0

    def test_publish_stores_copy(self):
        """Test the writer's array can be reused after publishing."""
        buffer = FrameBuffer()
        frame = np.zeros((48, 64, 4), dtype=np.uint8)
        buffer.publish(frame)

        frame[:] = 255

        assert buffer.snapshot().max() == 0
        assert buffer.shape == (48, 64, 4)
        assert buffer.generation == 1

    def test_snapshot_is_read_only(self):
        """Test readers cannot write into the shared frame."""
        buffer = FrameBuffer()
        buffer.publish(np.zeros((8, 8, 4), dtype=np.uint8))

        with pytest.raises(ValueError):
            buffer.snapshot()[0, 0, 0] = 1

    def test_snapshot_survives_later_publish(self):
        """Test a held snapshot is not changed by newer frames."""
        buffer = FrameBuffer()
        buffer.publish(np.full((8, 8, 4), 1, dtype=np.uint8))
        held = buffer.snapshot()

        buffer.publish(np.full((8, 8, 4), 2, dtype=np.uint8))

        assert held.max() == 1
        assert buffer.snapshot().max() == 2

    def test_clear(self):
        """Test clearing the buffer."""
        buffer = FrameBuffer()
        buffer.publish(np.zeros((8, 8, 4), dtype=np.uint8))
        buffer.clear()
        assert buffer.snapshot() is None

    def test_no_torn_frames(self):
        """Test concurrent readers always see a uniformly written frame."""
        buffer = FrameBuffer()
        buffer.publish(np.zeros((120, 160, 4), dtype=np.uint8))
        stop = threading.Event()
        torn = []

        def writer():
            value = 0
            while not stop.is_set():
                value = (value + 1) % 256
                buffer.publish(np.full((120, 160, 4), value, dtype=np.uint8))

        thread = threading.Thread(target=writer)
        thread.start()
        try:
            for _ in range(500):
                frame = buffer.snapshot()
                if frame.min() != frame.max():
                    torn.append(frame)
        finally:
            stop.set()
            thread.join()

        assert torn == []
        assert buffer.generation > 1


if __name__ == '__main__':
    pytest.main([__file__])
