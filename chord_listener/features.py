"""
Frame-level feature extraction: RMS loudness and harmonic pitch class profile.
"""
import math
import numpy as np
from scipy.signal import find_peaks, get_window

from chord_listener.errors import AcquisitionError, FrameExtractionError

# HPCP reference: index 0 is A (440 Hz); the pipeline rotates it onto C
REFERENCE_FREQUENCY = 440.0
MIN_FREQUENCY = 40.0
MAX_FREQUENCY = 5000.0
MAX_PEAKS = 100
PEAK_THRESHOLD = 1e-3  # Relative to the largest spectral magnitude


class HPCPExtractor:
    """
    Computes RMS and a 12-bin HPCP vector for fixed-size analysis frames.

    Frame size, hop size and sample rate are fixed at construction. The hop
    size is recorded but frames are analysed one at a time.
    """

    def __init__(self, frame_size, hop_size, sample_rate):
        if frame_size <= 0:
            raise AcquisitionError(f"Invalid frame size: {frame_size}")
        if sample_rate <= 0:
            raise AcquisitionError(f"Invalid sample rate: {sample_rate}")
        self.frame_size = int(frame_size)
        self.hop_size = int(hop_size)
        self.sample_rate = float(sample_rate)

        self._window = get_window('blackmanharris', self.frame_size)
        self._freqs = np.fft.rfftfreq(self.frame_size, 1.0 / self.sample_rate)

    def _check_frame(self, frame):
        frame = np.asarray(frame, dtype=np.float64)
        if frame.ndim != 1 or len(frame) != self.frame_size:
            raise FrameExtractionError(
                f"Expected {self.frame_size} samples, got shape {frame.shape}")
        if not np.all(np.isfinite(frame)):
            raise FrameExtractionError("Frame contains non-finite samples")
        return frame

    def rms(self, frame):
        """Root-mean-square amplitude of a frame."""
        frame = self._check_frame(frame)
        return float(np.sqrt(np.mean(frame ** 2)))

    def chroma(self, frame):
        """
        Harmonic pitch class profile of a frame.

        1. Window the frame and take the magnitude spectrum
        2. Pick spectral peaks between MIN_FREQUENCY and MAX_FREQUENCY
        3. Add each peak's squared magnitude to its pitch class
        4. Normalize to unit maximum

        Returns:
            12-element numpy array, index 0 = A. All zeros for silence.
        """
        frame = self._check_frame(frame)
        mag = np.abs(np.fft.rfft(frame * self._window))
        hpcp = np.zeros(12)

        max_mag = np.max(mag)
        if max_mag == 0:
            return hpcp

        band = (self._freqs >= MIN_FREQUENCY) & (self._freqs <= MAX_FREQUENCY)
        peaks, _ = find_peaks(np.where(band, mag, 0.0), height=max_mag * PEAK_THRESHOLD)
        if len(peaks) == 0:
            return hpcp

        # Keep the strongest peaks
        peaks = peaks[np.argsort(mag[peaks])[::-1][:MAX_PEAKS]]

        freq_res = self._freqs[1] - self._freqs[0]
        for i in peaks:
            # Parabolic interpolation for sub-bin frequency accuracy
            freq = self._freqs[i]
            if 0 < i < len(mag) - 1:
                alpha, beta, gamma = mag[i - 1], mag[i], mag[i + 1]
                denom = alpha - 2 * beta + gamma
                if abs(denom) > 1e-12:
                    freq = freq + 0.5 * (alpha - gamma) / denom * freq_res
            if freq <= 0:
                continue

            semitones = 12 * math.log2(freq / REFERENCE_FREQUENCY)
            pitch_class = int(round(semitones)) % 12
            hpcp[pitch_class] += float(mag[i]) ** 2

        top = np.max(hpcp)
        if top > 0:
            hpcp = hpcp / top
        return hpcp


def create_extractor(config, sample_rate):
    """Build the extractor for a session; configuration errors raise AcquisitionError."""
    return HPCPExtractor(config.buffer_size, config.hop_size, sample_rate)
