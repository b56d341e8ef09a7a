"""
Chord template library and cosine-similarity matching.
"""
import logging
from types import MappingProxyType

import numpy as np

from chord_listener.common import NOTES, CHORD_QUALITIES, NO_CHORD

logger = logging.getLogger("chord_listener.templates")


def generate_chord_template(root_index, intervals):
    """
    Build a binary 12-bin template for a chord.

    Args:
        root_index: pitch class of the root (0 = C)
        intervals: semitone offsets from the root

    Returns:
        12-element numpy array with 1.0 at every chord tone
    """
    template = np.zeros(12)
    for interval in intervals:
        template[(root_index + interval) % 12] = 1.0
    return template


def build_chord_templates(root_names=NOTES, qualities=CHORD_QUALITIES):
    """
    Build the read-only chord template library.

    Labels are "{root}:{quality}". Iteration order is root-major, then the
    order of ``qualities``; detect_chord breaks ties on that order.
    """
    templates = {}
    for root_index, root_name in enumerate(root_names):
        for quality, intervals in qualities.items():
            template = generate_chord_template(root_index, intervals)
            template.flags.writeable = False
            templates[f"{root_name}:{quality}"] = template
    return MappingProxyType(templates)


def cosine_similarity(a, b):
    """
    Cosine similarity of two vectors.

    Returns 0.0 when either vector has zero norm.
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    norm_product = np.linalg.norm(a) * np.linalg.norm(b)
    if norm_product == 0 or not np.isfinite(norm_product):
        return 0.0
    return float(np.dot(a, b) / norm_product)


def is_degenerate(chroma):
    """True for all-zero or non-finite chroma vectors."""
    chroma = np.asarray(chroma, dtype=np.float64)
    return not np.all(np.isfinite(chroma)) or not np.any(chroma)


def detect_chord(chroma, templates):
    """
    Find the template that best matches a chroma vector.

    Args:
        chroma: 12-element chroma vector
        templates: mapping of chord label to template

    Returns:
        (chord_label, similarity). A degenerate vector gives (NO_CHORD, 0.0).
    """
    if is_degenerate(chroma):
        logger.warning("Degenerate chroma vector, no chord scored")
        return NO_CHORD, 0.0

    best_chord = NO_CHORD
    best_score = float('-inf')
    for label, template in templates.items():
        score = cosine_similarity(chroma, template)
        # Strict comparison keeps the first template on ties
        if score > best_score:
            best_score = score
            best_chord = label

    if best_chord == NO_CHORD:
        return NO_CHORD, 0.0
    return best_chord, best_score
