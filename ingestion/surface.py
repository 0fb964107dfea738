"""Offscreen drawable surface holding the current upload's pixels."""

import numpy as np
from PIL import Image

from core.utils import clamp_region, image_to_array


class Surface:
    """Mutable RGB pixel buffer, sized to the last drawn image."""

    def __init__(self, width: int = 0, height: int = 0):
        self._pixels = np.zeros((height, width, 3), dtype=np.uint8)

    @property
    def width(self) -> int:
        return self._pixels.shape[1]

    @property
    def height(self) -> int:
        return self._pixels.shape[0]

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    def resize(self, width: int, height: int):
        """Resize the buffer. Like a canvas, resizing clears its contents."""
        if width < 0 or height < 0:
            raise ValueError(f"Invalid surface size: {width}x{height}")
        self._pixels = np.zeros((height, width, 3), dtype=np.uint8)

    def draw_image(self, image: Image.Image, x: int = 0, y: int = 0):
        """Paint an image onto the surface at (x, y), clipped to the surface."""
        pixels = image_to_array(image)
        x0, y0, w, h = clamp_region(x, y, pixels.shape[1], pixels.shape[0], self.width, self.height)
        if w == 0 or h == 0:
            return
        self._pixels[y0:y0 + h, x0:x0 + w] = pixels[y0 - y:y0 - y + h, x0 - x:x0 - x + w]

    def get_image_data(self, x: float, y: float, width: float, height: float) -> np.ndarray:
        """Copy a region of the surface.

        Coordinates are rounded to whole pixels and clipped to the surface,
        so the returned array may be smaller than requested (or empty).

        Returns:
            np.ndarray: uint8 array of shape (h, w, 3)
        """
        x0, y0, w, h = clamp_region(x, y, width, height, self.width, self.height)
        return self._pixels[y0:y0 + h, x0:x0 + w].copy()

    def to_array(self) -> np.ndarray:
        """Copy of the full pixel buffer (H, W, 3)."""
        return self._pixels.copy()

    def __repr__(self) -> str:
        return f"Surface({self.width}x{self.height})"
