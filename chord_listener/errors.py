"""
Exception types raised by the detection pipeline and its collaborators.
"""


class ChordListenerError(Exception):
    """Base class for chord listener errors."""


class AcquisitionError(ChordListenerError):
    """
    The audio source or the feature extractor could not be initialized.

    Fatal to DetectionPipeline.start(); the session stays idle.
    """

    def __init__(self, reason):
        super().__init__(reason)
        self.reason = reason


class FrameExtractionError(ChordListenerError):
    """Feature extraction failed for a single analysis frame."""
