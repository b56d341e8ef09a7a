"""
Unified configuration interface for CLI and web.
"""
from chord_listener.common import (
    BUFFER_SIZE, HOP_SIZE, RATE, BLOCK_SIZE, SMOOTHING_INTERVAL_MS,
    LOUDNESS_FLOOR, NOTE_THRESHOLD, PITCH_SHIFT,
)


class DetectorConfig:
    """
    Unified configuration interface that wraps both argparse namespace (CLI)
    and dictionary (web) configurations.
    """

    def __init__(self, source=None):
        """
        Initialize config from either argparse namespace or dictionary.

        Args:
            source: argparse.Namespace, dict, or None for all defaults
        """
        if source is None:
            source = {}
        self._source = source
        self._is_dict = isinstance(source, dict)

    def get(self, key, default=None):
        """Get a configuration value."""
        if self._is_dict:
            value = self._source.get(key, default)
        else:
            value = getattr(self._source, key, default)
        # argparse leaves unset options as None
        return default if value is None else value

    def __getitem__(self, key):
        """Allow dict-like access."""
        return self.get(key)

    def __contains__(self, key):
        """Check if key exists."""
        if self._is_dict:
            return key in self._source
        return hasattr(self._source, key)

    @property
    def buffer_size(self):
        return int(self.get('buffer_size', BUFFER_SIZE))

    @property
    def hop_size(self):
        return int(self.get('hop_size', HOP_SIZE))

    @property
    def sample_rate(self):
        return int(self.get('sample_rate', RATE))

    @property
    def block_size(self):
        return int(self.get('block_size', BLOCK_SIZE))

    @property
    def smoothing_interval(self):
        """Smoothing window in milliseconds."""
        return float(self.get('smoothing_interval', SMOOTHING_INTERVAL_MS))

    @property
    def loudness_floor(self):
        return float(self.get('loudness_floor', LOUDNESS_FLOOR))

    @property
    def note_threshold(self):
        return float(self.get('note_threshold', NOTE_THRESHOLD))

    @property
    def pitch_shift(self):
        return int(self.get('pitch_shift', PITCH_SHIFT))

    @property
    def device(self):
        return self.get('device')

    @property
    def show_chroma(self):
        return bool(self.get('show_chroma', False))

    @property
    def debug(self):
        return bool(self.get('debug', False))

    @property
    def log(self):
        return bool(self.get('log', False))

    def to_dict(self):
        """Convert config to dictionary."""
        return {
            'buffer_size': self.buffer_size,
            'hop_size': self.hop_size,
            'sample_rate': self.sample_rate,
            'block_size': self.block_size,
            'smoothing_interval': self.smoothing_interval,
            'loudness_floor': self.loudness_floor,
            'note_threshold': self.note_threshold,
            'pitch_shift': self.pitch_shift,
            'device': self.device,
            'show_chroma': self.show_chroma,
            'debug': self.debug,
            'log': self.log,
        }
