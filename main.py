"""Main FastAPI application for the OCR demo service."""

from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import settings, ensure_directories
from core.logging import log
from api import health, ocr as ocr_api
from inference.model_loader import ModelHandles, load_models
from ocr.pipeline import OCRPipeline
from ocr.session import OCRSession

HandlesFactory = Callable[[], Awaitable[ModelHandles]]


def create_app(handles_factory: Optional[HandlesFactory] = None) -> FastAPI:
    """Build the application.

    Args:
        handles_factory: Coroutine function returning loaded model handles.
                         Defaults to loading the graphs configured in settings

    Returns:
        FastAPI: Configured application
    """
    handles_factory = handles_factory or load_models

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Load both models once, then serve until shutdown."""
        log.info("OCR demo starting up...")
        log.info(f"Models root: {settings.MODELS_ROOT}")
        handles = await handles_factory()
        app.state.session = OCRSession(OCRPipeline(handles))
        log.info(f"API running on {settings.API_HOST}:{settings.API_PORT}")
        yield
        log.info("OCR demo shutting down...")

    app = FastAPI(
        title="OCR Demo",
        description="Text detection and recognition over two pre-trained inference graphs",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(ocr_api.router)
    return app


ensure_directories()
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.API_RELOAD,
    )
