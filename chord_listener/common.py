"""
Shared constants for the detection pipeline.
"""

# Analysis frame settings
BUFFER_SIZE = 8192  # Samples per analysis frame
HOP_SIZE = 512  # Passed through to the extractor; frames do not overlap

# Audio stream settings
RATE = 44100  # Default sample rate in Hz
CHANNELS = 1  # Mono audio
BLOCK_SIZE = 128  # Samples per delivered chunk (one AudioWorklet render quantum)

# Detection settings
SMOOTHING_INTERVAL_MS = 250  # Chroma averaging window
LOUDNESS_FLOOR = 0.05  # Minimum frame RMS
NOTE_THRESHOLD = 0.1  # Minimum chroma value for a dominant note
PITCH_SHIFT = -3  # Semitones; moves A-referenced chroma onto C

NOTES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

# Chord qualities: each maps a quality name to semitone intervals from root
CHORD_QUALITIES = {
    'maj':       [0, 4, 7],
    'min':       [0, 3, 7],
    'dim':       [0, 3, 6],
    'aug':       [0, 4, 8],
    'dominant7': [0, 4, 7, 10],
}

NO_CHORD = "none"


def clear_line():
    """Clear the current line by printing spaces and returning to start"""
    print(" " * 80, end='\r')
