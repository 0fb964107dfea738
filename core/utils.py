"""Utility functions for the OCR demo service."""

import secrets
from datetime import datetime
from typing import Any, List, Sequence, Tuple
import numpy as np
from PIL import Image


def generate_run_id() -> str:
    """Generate a unique pipeline run ID.

    Format: run_{timestamp}_{random}

    Returns:
        str: Unique run identifier
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    random_str = secrets.token_hex(4)
    return f"run_{timestamp}_{random_str}"


def is_image_media_type(media_type: str) -> bool:
    """Check that a declared media type is an image type (``image/*``).

    Args:
        media_type: Declared content type of the upload, e.g. 'image/png'

    Returns:
        bool: True if the type starts with 'image/'
    """
    if not media_type:
        return False
    return media_type.split(";")[0].strip().lower().startswith("image/")


def validate_payload_size(payload: bytes, max_size_mb: int) -> bool:
    """Validate that an in-memory payload is within size limits."""
    size_mb = len(payload) / (1024 * 1024)
    return size_mb <= max_size_mb


def image_to_array(image: Image.Image) -> np.ndarray:
    """Convert PIL Image to numpy array.

    Args:
        image: PIL Image object

    Returns:
        np.ndarray: Image as numpy array (RGB)
    """
    return np.array(image.convert('RGB'))


def add_batch_dim(array: np.ndarray, layout: str = "NHWC") -> np.ndarray:
    """Turn an HxWxC pixel array into a float32 batch of one.

    Args:
        array: Pixel array (H, W, C)
        layout: 'NHWC' keeps channel-last order, 'NCHW' moves channels first

    Returns:
        np.ndarray: float32 array of shape (1, H, W, C) or (1, C, H, W)
    """
    layout = layout.upper()
    if layout == "NCHW":
        array = np.transpose(array, (2, 0, 1))
    elif layout != "NHWC":
        raise ValueError(f"Unsupported tensor layout: {layout}")
    return np.expand_dims(array, axis=0).astype(np.float32)


def sort_boxes_reading_order(boxes: Sequence[Any], row_tol: float = 10) -> List[Any]:
    """Sort boxes top-to-bottom, then left-to-right within a line.

    Boxes are any objects with ``x`` and ``y`` attributes. Two boxes share a
    line when their top edge is within ``row_tol`` pixels of the line's
    average top edge.
    """
    ordered = sorted(boxes, key=lambda b: b.y)
    rows: List[List[Any]] = []
    current: List[Any] = []
    for box in ordered:
        if not current:
            current = [box]
            continue
        avg_y = sum(b.y for b in current) / len(current)
        if abs(box.y - avg_y) <= row_tol:
            current.append(box)
        else:
            rows.append(sorted(current, key=lambda b: b.x))
            current = [box]
    if current:
        rows.append(sorted(current, key=lambda b: b.x))
    return [box for row in rows for box in row]


def clamp_region(x: float, y: float, width: float, height: float,
                 max_width: int, max_height: int) -> Tuple[int, int, int, int]:
    """Round a region to integer pixels and clip it to the surface bounds.

    Returns:
        tuple: (x, y, width, height) in integer pixels; width/height may be 0
    """
    x0 = int(round(x))
    y0 = int(round(y))
    x1 = int(round(x + width))
    y1 = int(round(y + height))
    x0 = max(0, min(max_width, x0))
    y0 = max(0, min(max_height, y0))
    x1 = max(x0, min(max_width, x1))
    y1 = max(y0, min(max_height, y1))
    return x0, y0, x1 - x0, y1 - y0


def json_safe(obj: Any) -> Any:
    """Recursively convert numpy types to native Python types for JSON responses.

    Converts:
    - numpy.bool_ → bool
    - numpy.integer → int
    - numpy.floating → float
    - numpy.ndarray → list
    - Recursively processes dicts and lists

    Args:
        obj: Object to sanitize (can be dict, list, or any type)

    Returns:
        JSON-safe version of the object
    """
    if isinstance(obj, dict):
        return {k: json_safe(v) for k, v in obj.items()}

    if isinstance(obj, (list, tuple)):
        return [json_safe(v) for v in obj]

    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()

    return obj
