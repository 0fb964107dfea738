"""Error taxonomy for the OCR pipeline.

The API layer maps each of these to an HTTP status; the pipeline itself
only raises them.
"""


class OCRAppError(Exception):
    """Base class for all pipeline errors."""


class ModelLoadError(OCRAppError):
    """An inference graph could not be loaded or violates its output contract."""

    def __init__(self, model_name: str, reason: str):
        self.model_name = model_name
        self.reason = reason
        super().__init__(f"Failed to load {model_name} model: {reason}")


class InputValidationError(OCRAppError):
    """The uploaded file was rejected before any inference ran."""

    def __init__(self, message: str, media_type: str = ""):
        self.media_type = media_type
        super().__init__(message)


class UnsupportedMediaTypeError(InputValidationError):
    """The declared media type of the upload is not image/*."""


class InferenceError(OCRAppError):
    """A model call failed or produced output that could not be decoded."""


class OutputContractError(InferenceError):
    """Model outputs do not match the documented rank/shape contract."""


class RunSupersededError(OCRAppError):
    """The run was cancelled because a newer upload started."""

    def __init__(self, run_id: str):
        self.run_id = run_id
        super().__init__(f"Run {run_id} was superseded by a newer upload")
