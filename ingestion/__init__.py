"""Image ingestion: upload validation, decoding and the drawable surface."""

from ingestion.image_ingestor import ImageIngestor, UploadedImage
from ingestion.surface import Surface

__all__ = [
    'ImageIngestor',
    'UploadedImage',
    'Surface',
]
