"""Recognizer stage: one crop per box, one string per crop."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import cv2
import numpy as np

from core.config import settings
from core.logging import log
from core.tensors import TensorScope
from core.utils import add_batch_dim
from inference.graph_model import GraphModel
from ingestion.surface import Surface
from layout.box_decoder import BoundingBox
from ocr.ctc_decoder import CTCDecoder


@dataclass(frozen=True)
class Prediction:
    """Recognized text for one box."""
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {'text': self.text}


def resize_to_height(crop: np.ndarray, target_height: int, max_width: int) -> np.ndarray:
    """Resize a crop to a fixed height keeping aspect ratio (width capped)."""
    h, w = crop.shape[:2]
    new_w = max(1, int(round(w * (target_height / float(h)))))
    new_w = min(new_w, max_width)
    return cv2.resize(crop, (new_w, target_height), interpolation=cv2.INTER_CUBIC)


class TextRecognizer:
    """Runs the recognizer graph over each detected box, sequentially."""

    def __init__(self,
                 model: GraphModel,
                 decoder: Optional[CTCDecoder] = None,
                 input_height: Optional[int] = None,
                 max_input_width: Optional[int] = None):
        """Initialize text recognizer.

        Args:
            model: Loaded recognizer graph
            decoder: Output decoder. Defaults to a CTCDecoder built from settings
            input_height: Resize crops to this height. None keeps native crops
            max_input_width: Width cap applied when resizing
        """
        self.model = model
        self.decoder = decoder or CTCDecoder()
        self.input_height = settings.RECOGNIZER_INPUT_HEIGHT if input_height is None else input_height
        self.max_input_width = max_input_width or settings.RECOGNIZER_MAX_INPUT_WIDTH

    def crop(self, surface: Surface, box: BoundingBox) -> np.ndarray:
        crop = surface.get_image_data(box.x, box.y, box.width, box.height)
        if self.input_height and crop.size:
            crop = resize_to_height(crop, self.input_height, self.max_input_width)
        return crop

    async def recognize_box(self, surface: Surface, box: BoundingBox) -> Prediction:
        """Recognize the text inside one box."""
        with TensorScope() as scope:
            pixels = scope.track(self.crop(surface, box))
            if pixels.size == 0:
                log.warning(f"Box {box.to_dict()} is empty after clipping, no text")
                return Prediction(text="")
            batch = scope.track(add_batch_dim(pixels, self.model.input_layout))
            normalized = scope.track(batch / np.float32(255.0))

            outputs = scope.track(await self.model.execute(normalized))
            text = self.decoder.decode(outputs[0])

        return Prediction(text=text)

    async def recognize(self, boxes: Sequence[BoundingBox], surface: Surface) -> List[Prediction]:
        """Recognize every box in order, one inference call at a time.

        Args:
            boxes: Boxes from the detector stage
            surface: Surface the boxes refer to

        Returns:
            list: One Prediction per box, in box order
        """
        predictions = []
        for i, box in enumerate(boxes):
            prediction = await self.recognize_box(surface, box)
            log.debug(f"Region {i + 1}/{len(boxes)}: '{prediction.text}'")
            predictions.append(prediction)

        log.info(f"Recognizer produced {len(predictions)} predictions")
        return predictions
