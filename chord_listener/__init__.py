"""
Live chroma-based chord detection.
"""
from chord_listener.pipeline import DetectionPipeline
from chord_listener.result import DetectionResult
from chord_listener.errors import AcquisitionError, FrameExtractionError

__all__ = [
    'DetectionPipeline',
    'DetectionResult',
    'AcquisitionError',
    'FrameExtractionError',
]
