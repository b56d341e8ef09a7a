"""
Pytest fixtures for chord listener tests.
"""
import pytest
import numpy as np
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from chord_listener.common import RATE, BUFFER_SIZE
from chord_listener.chroma import rotate_chroma
from chord_listener.templates import build_chord_templates


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start=100.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeExtractor:
    """
    Extractor returning fixed values.

    chroma is given C-referenced; it is returned A-referenced (rotated +3) the
    way the real HPCP extractor reports it, so the pipeline's -3 correction
    restores it.
    """

    def __init__(self, rms=0.5, chroma=None, fail=False):
        self.rms_value = rms
        self.chroma_value = np.zeros(12) if chroma is None else np.asarray(chroma, dtype=float)
        self.fail = fail
        self.rms_calls = 0
        self.chroma_calls = 0
        self.frames = []

    def rms(self, frame):
        self.rms_calls += 1
        self.frames.append(frame)
        if self.fail:
            raise RuntimeError("extractor exploded")
        return self.rms_value

    def chroma(self, frame):
        self.chroma_calls += 1
        return rotate_chroma(self.chroma_value, 3)


@pytest.fixture
def sample_rate():
    """Standard sample rate."""
    return RATE


@pytest.fixture
def buffer_size():
    """Standard analysis frame size."""
    return BUFFER_SIZE


@pytest.fixture
def templates():
    """Full chord template library."""
    return build_chord_templates()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_extractor_factory():
    """Factory returning a shared FakeExtractor; tweak .extractor in tests."""
    class Factory:
        def __init__(self):
            self.extractor = FakeExtractor()
            self.calls = []

        def __call__(self, config, sample_rate):
            self.calls.append((config.buffer_size, config.hop_size, sample_rate))
            return self.extractor

    return Factory()


def make_chord_signal(frequencies, sample_rate, length, amplitude=0.3):
    """Sum of sine waves, one per frequency."""
    t = np.arange(length) / sample_rate
    signal = sum(amplitude * np.sin(2 * np.pi * f * t) for f in frequencies)
    return signal.astype(np.float32)


@pytest.fixture
def a_minor_frame(sample_rate, buffer_size):
    """An A minor chord (A3, C4, E4) filling one analysis frame."""
    return make_chord_signal([220.00, 261.63, 329.63], sample_rate, buffer_size)


@pytest.fixture
def c_major_frame(sample_rate, buffer_size):
    """A C major chord (C4, E4, G4) filling one analysis frame."""
    return make_chord_signal([261.63, 329.63, 392.00], sample_rate, buffer_size)


@pytest.fixture
def sine_wave_440hz(sample_rate, buffer_size):
    """A 440Hz sine wave (A4 note)."""
    return make_chord_signal([440.0], sample_rate, buffer_size, amplitude=0.5)
