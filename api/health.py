"""Health check endpoint."""

from fastapi import APIRouter, Request
from pydantic import BaseModel
from typing import Dict, Any

import cv2

from core.tensors import registry

router = APIRouter(prefix="/api", tags=["health"])


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str
    version: str
    models: Dict[str, str]
    tensors: Dict[str, int]
    dependencies: Dict[str, Any]


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Health check endpoint.

    Returns:
        HealthResponse: Model readiness, live tensor counters and dependency checks
    """
    session = request.app.state.session
    handles = session.pipeline.handles
    models = {
        name: 'loaded' if getattr(handles, name) else f"unavailable: {handles.errors.get(name, 'not loaded')}"
        for name in ('detector', 'recognizer')
    }

    return HealthResponse(
        status="healthy" if session.ready else "degraded",
        version="1.0.0",
        models=models,
        tensors=registry.snapshot(),
        dependencies={
            "opencv": cv2.__version__,
            "pillow": "available",
        },
    )
