"""OCR module.

This module provides:
- Recognizer stage (crop -> recognizer graph -> text)
- Greedy CTC decoder
- OCR pipeline orchestrator and the single-flight session
"""

from ocr.ctc_decoder import CTCDecoder
from ocr.pipeline import OCRPipeline, PipelineResult, RunContext
from ocr.session import OCRSession
from ocr.text_recognizer import Prediction, TextRecognizer

__all__ = [
    'CTCDecoder',
    'OCRPipeline',
    'OCRSession',
    'PipelineResult',
    'Prediction',
    'RunContext',
    'TextRecognizer',
]
