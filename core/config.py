"""Configuration management for the OCR demo service."""

from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Settings
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_RELOAD: bool = False

    # Model Paths (relative to MODELS_ROOT)
    MODELS_ROOT: str = "./web_model"
    DETECTOR_MODEL_DIR: str = "detector_model"
    RECOGNIZER_MODEL_DIR: str = "recognizer_model"
    MODEL_FILENAME: str = "model.onnx"
    MODEL_PROBE_SIZE: int = 32  # Side of the dummy image used to check output contracts at load time

    # Upload Settings
    MAX_FILE_SIZE_MB: int = 20
    MAX_IMAGE_PIXELS: int = 40_000_000  # Max decoded width*height

    # Detector Settings
    DETECTOR_INPUT_LAYOUT: str = "NHWC"  # NHWC (browser-style pixels) or NCHW
    DETECTOR_SCORE_THRESHOLD: float = 0.5
    DETECTOR_NMS_IOU_THRESHOLD: float = 0.4
    DETECTOR_MIN_BOX_SIZE: float = 1.0  # Minimum box width/height in pixels
    DETECTOR_READING_ORDER: bool = False  # Reorder boxes top-to-bottom, left-to-right
    DETECTOR_ROW_TOLERANCE: int = 10  # Pixel tolerance when grouping boxes into lines

    # Recognizer Settings
    RECOGNIZER_INPUT_LAYOUT: str = "NHWC"
    RECOGNIZER_INPUT_HEIGHT: Optional[int] = None  # Resize crops to this height (None = native crop)
    RECOGNIZER_MAX_INPUT_WIDTH: int = 1024
    RECOGNIZER_CHARSET: str = "0123456789abcdefghijklmnopqrstuvwxyz"
    RECOGNIZER_BLANK_INDEX: int = 0

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "./logs/app.log"
    LOG_ROTATION: str = "10 MB"
    LOG_RETENTION: str = "7 days"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    @property
    def detector_model_path(self) -> Path:
        return Path(self.MODELS_ROOT) / self.DETECTOR_MODEL_DIR / self.MODEL_FILENAME

    @property
    def recognizer_model_path(self) -> Path:
        return Path(self.MODELS_ROOT) / self.RECOGNIZER_MODEL_DIR / self.MODEL_FILENAME


# Global settings instance
settings = Settings()


def ensure_directories():
    """Create all required directories if they don't exist."""
    directories = [
        Path(settings.MODELS_ROOT) / settings.DETECTOR_MODEL_DIR,
        Path(settings.MODELS_ROOT) / settings.RECOGNIZER_MODEL_DIR,
        Path(settings.LOG_FILE).parent,
    ]

    for directory in directories:
        Path(directory).mkdir(parents=True, exist_ok=True)
