"""OCR Pipeline - linear orchestration of one upload.

1. Image ingestion (validate, decode, paint onto the run's surface)
2. Detection (surface -> boxes)
3. Recognition (box crops -> text, sequential)
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.logging import log
from core.utils import json_safe
from inference.model_loader import ModelHandles
from ingestion.image_ingestor import ImageIngestor, UploadedImage
from ingestion.surface import Surface
from layout.box_decoder import BoundingBox, BoxDecoder
from layout.text_detector import TextDetector
from ocr.ctc_decoder import CTCDecoder
from ocr.text_recognizer import Prediction, TextRecognizer


@dataclass
class RunContext:
    """State owned by a single pipeline run."""
    run_id: str
    generation: int
    upload: UploadedImage
    surface: Surface = field(default_factory=Surface)
    superseded: bool = False


@dataclass
class PipelineResult:
    """Outcome of one run. ``predictions`` is None when the models are unavailable."""
    run_id: str
    width: int
    height: int
    boxes: List[BoundingBox] = field(default_factory=list)
    predictions: Optional[List[Prediction]] = None

    @property
    def inert(self) -> bool:
        return self.predictions is None

    def to_dict(self) -> Dict[str, Any]:
        return json_safe({
            'run_id': self.run_id,
            'width': self.width,
            'height': self.height,
            'boxes': [b.to_dict() for b in self.boxes],
            'predictions': [p.to_dict() for p in (self.predictions or [])],
        })


class OCRPipeline:
    """Image ingestion -> detection -> recognition for one upload."""

    def __init__(self,
                 handles: ModelHandles,
                 ingestor: Optional[ImageIngestor] = None,
                 box_decoder: Optional[BoxDecoder] = None,
                 ctc_decoder: Optional[CTCDecoder] = None):
        """Initialize OCR pipeline.

        Args:
            handles: Loaded model handles (either may be None)
            ingestor: Upload ingestor. Defaults to one built from settings
            box_decoder: Detector output decoder
            ctc_decoder: Recognizer output decoder
        """
        self.handles = handles
        self.ingestor = ingestor or ImageIngestor()
        self.detector = TextDetector(handles.detector, box_decoder) if handles.detector else None
        self.recognizer = TextRecognizer(handles.recognizer, ctc_decoder) if handles.recognizer else None

        log.info("OCR Pipeline initialized")
        log.info(f"  Detector: {'available' if self.detector else 'unavailable'}")
        log.info(f"  Recognizer: {'available' if self.recognizer else 'unavailable'}")

    @property
    def ready(self) -> bool:
        return self.detector is not None and self.recognizer is not None

    async def run(self, context: RunContext) -> PipelineResult:
        """Process one upload on the run's own surface.

        With a model missing the image is still ingested, but no inference
        runs and the result carries no predictions.

        Raises:
            InputValidationError: If the upload is rejected or undecodable
            InferenceError: If a model call fails or its output can't be decoded
        """
        surface = await self.ingestor.ingest(context.upload, context.surface)

        if not self.ready:
            log.warning(f"[{context.run_id}] Models not loaded, skipping inference")
            return PipelineResult(run_id=context.run_id, width=surface.width, height=surface.height)

        boxes = await self.detector.detect(surface)
        predictions = await self.recognizer.recognize(boxes, surface)

        log.info(f"[{context.run_id}] OCR pipeline complete: {len(predictions)} text regions")
        return PipelineResult(
            run_id=context.run_id,
            width=surface.width,
            height=surface.height,
            boxes=boxes,
            predictions=predictions,
        )
