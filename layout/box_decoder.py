"""Decoding of raw detector outputs into pixel-space bounding boxes."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import cv2
import numpy as np

from core.config import settings
from core.logging import log
from core.utils import sort_boxes_reading_order
from inference.contracts import BOXES, SCORES


@dataclass(frozen=True)
class BoundingBox:
    """Rectangle in surface pixel coordinates."""
    x: float
    y: float
    width: float
    height: float
    score: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'x': self.x,
            'y': self.y,
            'width': self.width,
            'height': self.height,
        }


class BoxDecoder:
    """Turns detector outputs into boxes.

    Rules, in order:
    1. Boxes are normalized [y1, x1, y2, x2]; rows with non-finite values are dropped
    2. If a scores output exists, rows below ``score_threshold`` are dropped
    3. Coordinates are clamped to [0, 1] and corner order is fixed
    4. Coordinates are scaled by surface width/height
    5. Boxes smaller than ``min_box_size`` pixels on either side are dropped
    6. With scores, overlapping boxes are suppressed (NMS at ``iou_threshold``)
    7. Survivors keep detector order, or reading order if requested
    """

    def __init__(self,
                 score_threshold: Optional[float] = None,
                 iou_threshold: Optional[float] = None,
                 min_box_size: Optional[float] = None,
                 reading_order: Optional[bool] = None,
                 row_tolerance: Optional[int] = None):
        self.score_threshold = settings.DETECTOR_SCORE_THRESHOLD if score_threshold is None else score_threshold
        self.iou_threshold = settings.DETECTOR_NMS_IOU_THRESHOLD if iou_threshold is None else iou_threshold
        self.min_box_size = settings.DETECTOR_MIN_BOX_SIZE if min_box_size is None else min_box_size
        self.reading_order = settings.DETECTOR_READING_ORDER if reading_order is None else reading_order
        self.row_tolerance = settings.DETECTOR_ROW_TOLERANCE if row_tolerance is None else row_tolerance

    def decode(self, outputs: Sequence[np.ndarray], width: int, height: int) -> List[BoundingBox]:
        """Decode detector outputs for a surface of the given size.

        Args:
            outputs: Detector outputs (already contract-validated)
            width: Surface width in pixels
            height: Surface height in pixels

        Returns:
            list: BoundingBox list, every box inside [0, width] x [0, height]
        """
        raw = np.asarray(BOXES.unbatch(outputs[0]), dtype=np.float64).reshape(-1, 4)
        scores = None
        if len(outputs) > 1:
            scores = np.asarray(SCORES.unbatch(outputs[1]), dtype=np.float64).reshape(-1)

        keep = np.all(np.isfinite(raw), axis=1)
        if scores is not None:
            keep &= np.isfinite(scores) & (scores >= self.score_threshold)

        candidates: List[BoundingBox] = []
        for index in np.flatnonzero(keep):
            box = self._denormalize(raw[index], width, height,
                                    None if scores is None else float(scores[index]))
            if box.width < self.min_box_size or box.height < self.min_box_size:
                continue
            candidates.append(box)

        if scores is not None and len(candidates) > 1:
            candidates = self._suppress(candidates)

        if self.reading_order:
            candidates = sort_boxes_reading_order(candidates, row_tol=self.row_tolerance)

        log.debug(f"Decoded {len(candidates)} boxes from {len(raw)} raw detections")
        return candidates

    @staticmethod
    def _denormalize(row: np.ndarray, width: int, height: int, score: Optional[float]) -> BoundingBox:
        y1, x1, y2, x2 = np.clip(row, 0.0, 1.0)
        top, bottom = min(y1, y2), max(y1, y2)
        left, right = min(x1, x2), max(x1, x2)
        return BoundingBox(
            x=float(left * width),
            y=float(top * height),
            width=float((right - left) * width),
            height=float((bottom - top) * height),
            score=score,
        )

    def _suppress(self, boxes: List[BoundingBox]) -> List[BoundingBox]:
        rects = [[b.x, b.y, b.width, b.height] for b in boxes]
        confidences = [b.score for b in boxes]
        picked = cv2.dnn.NMSBoxes(rects, confidences, self.score_threshold, self.iou_threshold)
        picked = sorted(int(i) for i in np.array(picked).flatten())
        return [boxes[i] for i in picked]
