"""Text detection stage."""

from layout.box_decoder import BoundingBox, BoxDecoder
from layout.text_detector import TextDetector

__all__ = [
    'BoundingBox',
    'BoxDecoder',
    'TextDetector',
]
