"""
Loudness gating and time-windowed chroma smoothing.
"""
import time
import numpy as np

from chord_listener.common import LOUDNESS_FLOOR, SMOOTHING_INTERVAL_MS


def passes_loudness_gate(rms, floor=LOUDNESS_FLOOR):
    """True if a frame is loud enough to analyse (boundary inclusive)."""
    return rms >= floor


class SmoothingAggregator:
    """
    Averages chroma vectors over a fixed time window.

    A window only closes once it holds at least one vector, so a quiet
    stretch extends the current window instead of producing an empty result.
    """

    def __init__(self, window_ms=SMOOTHING_INTERVAL_MS, clock=time.monotonic):
        """
        Args:
            window_ms: window duration in milliseconds
            clock: callable returning the current time in seconds
        """
        self.window = window_ms / 1000.0
        self._clock = clock
        self.accumulated = []
        self.window_start = clock()

    @property
    def pending(self):
        """Number of vectors in the current window."""
        return len(self.accumulated)

    def accept(self, chroma):
        """Add a chroma vector to the current window."""
        self.accumulated.append(np.asarray(chroma, dtype=np.float64))

    def is_window_complete(self, now=None):
        """Check if the window has elapsed and holds at least one vector."""
        if now is None:
            now = self._clock()
        return now - self.window_start >= self.window and len(self.accumulated) > 0

    def maybe_flush(self, now=None):
        """
        Close the window if it is complete.

        Returns:
            element-wise mean of the window's vectors, or None
        """
        if now is None:
            now = self._clock()
        if not self.is_window_complete(now):
            return None
        mean = np.mean(np.vstack(self.accumulated), axis=0)
        self.reset(now)
        return mean

    def reset(self, now=None):
        """Clear the window and restart it at now."""
        self.accumulated = []
        self.window_start = self._clock() if now is None else now
