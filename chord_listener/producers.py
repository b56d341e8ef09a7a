"""
Audio producer interface and the push-fed producer used by the web server.
"""
from abc import ABC, abstractmethod

import numpy as np

from chord_listener.common import RATE


class AudioProducer(ABC):
    """
    Source of audio chunks.

    Chunks are delivered one at a time to the callback registered with
    set_callback(), never concurrently.
    """

    def __init__(self, sample_rate=RATE):
        self.sample_rate = sample_rate
        self._callback = None

    def set_callback(self, callback):
        """Register the chunk-arrival callback (None to unregister)."""
        self._callback = callback

    def _deliver(self, samples):
        callback = self._callback
        if callback is not None:
            callback(samples)

    @abstractmethod
    def acquire(self):
        """Start producing chunks. Raises AcquisitionError on failure."""
        pass

    @abstractmethod
    def release(self):
        """Stop producing chunks. Safe to call more than once."""
        pass


class PushProducer(AudioProducer):
    """
    Producer fed by the caller, e.g. a WebSocket handler receiving chunks from
    a browser. Chunks pushed while not acquired are dropped.
    """

    def __init__(self, sample_rate=RATE):
        super().__init__(sample_rate)
        self.acquired = False

    def acquire(self):
        self.acquired = True

    def release(self):
        self.acquired = False

    def push(self, samples):
        """Deliver a chunk synchronously. Returns False if it was dropped."""
        if not self.acquired:
            return False
        self._deliver(np.asarray(samples, dtype=np.float32))
        return True
