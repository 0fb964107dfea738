"""Detector stage: surface pixels in, text bounding boxes out."""

from typing import List, Optional

import numpy as np

from core.logging import log
from core.tensors import TensorScope
from core.utils import add_batch_dim
from inference.graph_model import GraphModel
from ingestion.surface import Surface
from layout.box_decoder import BoundingBox, BoxDecoder


class TextDetector:
    """Runs the detector graph over a whole surface."""

    def __init__(self, model: GraphModel, decoder: Optional[BoxDecoder] = None):
        """Initialize text detector.

        Args:
            model: Loaded detector graph
            decoder: Box decoder. Defaults to one built from settings
        """
        self.model = model
        self.decoder = decoder or BoxDecoder()

    async def detect(self, surface: Surface) -> List[BoundingBox]:
        """Detect text regions on the surface.

        Every tensor created here is released when the call returns,
        raises or is cancelled.

        Args:
            surface: Surface holding the uploaded image

        Returns:
            list: Boxes in surface pixel coordinates
        """
        if surface.is_empty:
            log.warning("Surface is empty, skipping detection")
            return []

        with TensorScope() as scope:
            pixels = scope.track(surface.to_array())
            batch = scope.track(add_batch_dim(pixels, self.model.input_layout))
            normalized = scope.track(batch / np.float32(255.0))

            outputs = scope.track(await self.model.execute(normalized))
            boxes = self.decoder.decode(outputs, surface.width, surface.height)

        log.info(f"Detector found {len(boxes)} text regions on {surface.width}x{surface.height} surface")
        return boxes
