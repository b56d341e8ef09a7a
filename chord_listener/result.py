"""
Detection result and session state values.
"""
import time

from chord_listener.common import NO_CHORD
from chord_listener.chroma import format_notes

# Session states reported to output handlers
INITIALIZING = 'initializing'
ACTIVE = 'active'
IDLE = 'idle'


class DetectionResult:
    """
    One smoothed detection: the best matching chord and the ranked notes.

    Attributes:
        chord: chord label such as "A:min", or "none"
        notes: tuple of (note_name, strength) sorted by strength descending
        score: cosine similarity of the chosen template
        chroma: the averaged, pitch-corrected chroma vector (or None)
        timestamp: wall-clock time of the detection (or None)
    """

    def __init__(self, chord=NO_CHORD, notes=(), score=0.0, chroma=None, timestamp=None):
        self.chord = chord
        self.notes = tuple((name, float(value)) for name, value in notes)
        self.score = float(score)
        self.chroma = chroma
        self.timestamp = timestamp

    @classmethod
    def detected(cls, chord, notes, score, chroma):
        """Create a result stamped with the current time."""
        return cls(chord, notes, score, chroma, timestamp=time.time())

    def describe(self):
        """Display line matching the web page, e.g. "Detected Chord: C:maj | Notes: ..."."""
        return f"Detected Chord: {self.chord} | Notes: {format_notes(self.notes)}"

    def to_dict(self, include_chroma=False):
        """JSON-ready form sent to web clients."""
        result = {
            "type": "chord",
            "chord": self.chord,
            "notes": [[name, value] for name, value in self.notes],
            "score": self.score,
            "timestamp": self.timestamp,
        }
        if include_chroma and self.chroma is not None:
            result["chroma"] = [float(v) for v in self.chroma]
        return result

    def __eq__(self, other):
        if not isinstance(other, DetectionResult):
            return NotImplemented
        return (self.chord, self.notes, self.score) == (other.chord, other.notes, other.score)

    def __repr__(self):
        return f"DetectionResult(chord={self.chord!r}, notes={self.notes!r}, score={self.score:.3f})"
