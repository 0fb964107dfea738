"""Upload validation and decoding onto a drawable surface."""

import asyncio
import io
from dataclasses import dataclass
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from core.config import settings
from core.errors import InputValidationError, UnsupportedMediaTypeError
from core.logging import log
from core.utils import is_image_media_type, validate_payload_size
from ingestion.surface import Surface


@dataclass(frozen=True)
class UploadedImage:
    """A user-selected file as received from the browser."""
    filename: str
    media_type: str
    content: bytes


class ImageIngestor:
    """Turns an uploaded file into pixels on a Surface."""

    def __init__(self, max_file_size_mb: Optional[int] = None, max_image_pixels: Optional[int] = None):
        self.max_file_size_mb = settings.MAX_FILE_SIZE_MB if max_file_size_mb is None else max_file_size_mb
        self.max_image_pixels = settings.MAX_IMAGE_PIXELS if max_image_pixels is None else max_image_pixels

    def validate(self, upload: UploadedImage):
        """Reject uploads that must never reach the pipeline.

        Raises:
            InputValidationError: If the declared media type is not image/*,
                                  or the payload is empty or too large
        """
        try:
            if not is_image_media_type(upload.media_type):
                raise UnsupportedMediaTypeError(
                    f"Uploaded file is not an image: {upload.filename} ({upload.media_type or 'unknown type'})",
                    media_type=upload.media_type,
                )
            if not upload.content:
                raise InputValidationError(f"Uploaded file is empty: {upload.filename}", media_type=upload.media_type)
            if not validate_payload_size(upload.content, self.max_file_size_mb):
                raise InputValidationError(
                    f"File too large. Maximum size: {self.max_file_size_mb}MB",
                    media_type=upload.media_type,
                )
        except InputValidationError as e:
            log.warning(f"Upload rejected: {e}")
            raise

    def decode(self, content: bytes) -> Image.Image:
        """Decode image bytes to an RGB bitmap with EXIF orientation applied.

        The pixel count is checked from the header, before any pixel data is
        decoded.

        Raises:
            InputValidationError: If Pillow cannot decode the payload or the
                                  image has more than ``max_image_pixels`` pixels
        """
        try:
            with Image.open(io.BytesIO(content)) as image:
                pixels = image.width * image.height
                if pixels > self.max_image_pixels:
                    raise InputValidationError(
                        f"Image too large: {image.width}x{image.height} "
                        f"({pixels} pixels, maximum {self.max_image_pixels})"
                    )
                image.load()
                image = ImageOps.exif_transpose(image)
                if image.mode != 'RGB':
                    image = image.convert('RGB')
                return image
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
            raise InputValidationError(f"Could not decode image: {e}") from e

    async def ingest(self, upload: UploadedImage, surface: Surface) -> Surface:
        """Validate, decode and draw an upload onto ``surface``.

        The surface is resized to the bitmap's native size before drawing.

        Args:
            upload: The uploaded file
            surface: Surface to paint onto (mutated in place)

        Returns:
            Surface: The same surface
        """
        self.validate(upload)
        try:
            image = await asyncio.to_thread(self.decode, upload.content)
        except InputValidationError as e:
            log.warning(f"Upload rejected: {upload.filename}: {e}")
            raise

        surface.resize(image.width, image.height)
        surface.draw_image(image)
        log.info(f"Image ingested: {upload.filename} ({surface.width}x{surface.height})")
        return surface
