"""
Batches small audio chunks into fixed-size analysis frames.
"""
import numpy as np

from chord_listener.common import BUFFER_SIZE


class FrameAccumulator:
    """
    Collects incoming chunks until one analysis frame can be formed.

    Frames do not overlap: once a frame is emitted the whole queue is
    cleared, including any samples beyond buffer_size.
    """

    def __init__(self, buffer_size=BUFFER_SIZE):
        self.buffer_size = buffer_size
        self._chunks = []
        self.total_samples = 0

    def push(self, chunk):
        """Queue a chunk of samples."""
        chunk = np.asarray(chunk, dtype=np.float32).ravel()
        self._chunks.append(chunk)
        self.total_samples += len(chunk)

    def try_emit_frame(self):
        """
        Emit a frame once enough samples are queued.

        Returns:
            numpy array of exactly buffer_size samples, or None
        """
        if self.total_samples < self.buffer_size:
            return None
        frame = np.concatenate(self._chunks)[:self.buffer_size]
        self.reset()
        return frame

    def reset(self):
        """Drop all queued samples."""
        self._chunks = []
        self.total_samples = 0
