"""Upload and OCR endpoints (HTML demo page and JSON API)."""

from typing import List, Optional, Tuple

from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from fastapi.responses import HTMLResponse
from pydantic import BaseModel

from core.errors import (
    InferenceError,
    InputValidationError,
    OCRAppError,
    RunSupersededError,
    UnsupportedMediaTypeError,
)
from core.logging import log
from ingestion.image_ingestor import UploadedImage
from ocr.pipeline import PipelineResult
from ocr.session import OCRSession
from presentation.page import render_page

router = APIRouter(tags=["ocr"])

MODELS_NOT_LOADED = "Models are not loaded; text recognition is unavailable."


class PredictionModel(BaseModel):
    """One recognized string."""
    text: str


class BoxModel(BaseModel):
    """Detected box in image pixel coordinates."""
    x: float
    y: float
    width: float
    height: float


class OCRResponse(BaseModel):
    """Response model for an OCR run."""
    run_id: str
    width: int
    height: int
    boxes: List[BoxModel]
    predictions: List[PredictionModel]


class PredictionsResponse(BaseModel):
    """Currently displayed predictions."""
    run_id: Optional[str] = None
    predictions: List[PredictionModel]


def get_session(request: Request) -> OCRSession:
    return request.app.state.session


async def read_upload(file: UploadFile) -> UploadedImage:
    content = await file.read()
    return UploadedImage(
        filename=file.filename or "upload",
        media_type=file.content_type or "",
        content=content,
    )


def error_status(error: OCRAppError) -> int:
    """HTTP status for each pipeline error."""
    if isinstance(error, UnsupportedMediaTypeError):
        return 415
    if isinstance(error, InputValidationError):
        return 400
    if isinstance(error, RunSupersededError):
        return 409
    return 500


async def run_upload(session: OCRSession, file: UploadFile) -> Tuple[Optional[PipelineResult], Optional[OCRAppError]]:
    """Submit an upload, returning either the result or the pipeline error."""
    upload = await read_upload(file)
    try:
        return await session.submit(upload), None
    except InputValidationError as e:
        return None, e
    except RunSupersededError as e:
        log.info(str(e))
        return None, e
    except InferenceError as e:
        log.opt(exception=e).error(f"OCR pipeline failed: {e}")
        return None, e


@router.get("/", response_class=HTMLResponse)
async def index(request: Request):
    """Demo page: upload form and the current predictions."""
    session = get_session(request)
    message = None if session.ready else MODELS_NOT_LOADED
    return HTMLResponse(render_page(session.predictions, message))


@router.post("/upload", response_class=HTMLResponse)
async def upload_page(request: Request, file: UploadFile = File(...)):
    """Form target of the demo page; renders the page with the new predictions."""
    session = get_session(request)
    result, error = await run_upload(session, file)

    if error is not None:
        return HTMLResponse(render_page(session.predictions, str(error)), status_code=error_status(error))
    if result.inert:
        return HTMLResponse(render_page(session.predictions, MODELS_NOT_LOADED), status_code=503)
    return HTMLResponse(render_page(session.predictions))


@router.post("/api/ocr", response_model=OCRResponse)
async def ocr_upload(request: Request, file: UploadFile = File(...)):
    """Run OCR on an uploaded image.

    Args:
        file: Uploaded image (any image/* media type)

    Returns:
        OCRResponse: Detected boxes and recognized text, in box order

    Raises:
        HTTPException: 415 non-image, 400 invalid image, 409 superseded,
                       500 inference failure, 503 models not loaded
    """
    session = get_session(request)
    result, error = await run_upload(session, file)

    if error is not None:
        raise HTTPException(status_code=error_status(error), detail=str(error))
    if result.inert:
        raise HTTPException(status_code=503, detail=MODELS_NOT_LOADED)
    return OCRResponse(**result.to_dict())


@router.get("/api/predictions", response_model=PredictionsResponse)
async def current_predictions(request: Request):
    """Predictions of the last committed run."""
    session = get_session(request)
    return PredictionsResponse(
        run_id=session.last_run_id,
        predictions=[PredictionModel(**p.to_dict()) for p in session.predictions],
    )

