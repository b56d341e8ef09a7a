"""
Chroma post-processing: pitch correction and dominant note extraction.
"""
import numpy as np

from chord_listener.common import NOTES, NOTE_THRESHOLD


def rotate_chroma(chroma, shift):
    """
    Circularly shift a chroma vector by a number of semitones.

    The value at index i moves to index (i + shift) mod 12, so a shift of -3
    moves an A-referenced profile onto C.
    """
    chroma = np.asarray(chroma, dtype=np.float64)
    size = len(chroma)
    shifted = np.empty(size)
    for i in range(size):
        shifted[(i + shift) % size] = chroma[i]
    return shifted


def extract_dominant_notes(chroma, threshold=NOTE_THRESHOLD):
    """
    Rank pitch classes whose strength reaches the threshold.

    Args:
        chroma: 12-element chroma vector (index 0 = C)
        threshold: minimum value for a note to be included

    Returns:
        list of (note_name, value) sorted by value descending; equal values
        keep pitch-class order
    """
    notes = [(NOTES[i], float(value)) for i, value in enumerate(chroma)]
    notes = [n for n in notes if n[1] >= threshold]
    # sorted() is stable, so ties stay in index order
    return sorted(notes, key=lambda n: n[1], reverse=True)


def format_notes(notes):
    """Format ranked notes for display, e.g. "C (1.00), E (0.52)"."""
    if not notes:
        return "None"
    return ", ".join(f"{name} ({value:.2f})" for name, value in notes)


def format_chroma(chroma):
    """Format chroma vector for display."""
    if chroma is None:
        return ""
    chroma_values = [f"{val:.3f}" for val in chroma]
    return f"[{', '.join(chroma_values)}]"
