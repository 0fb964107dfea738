"""Per-app OCR session with a single-flight, last-writer-wins run policy.

At most one pipeline run is active. A newly accepted upload marks the
in-flight run as superseded and cancels it; only the newest run may
commit its surface and predictions, and it commits both at once.
Rejected uploads never touch the active run or the committed state.
"""

import asyncio
from typing import List, Optional, Tuple

from core.errors import RunSupersededError
from core.logging import log
from core.utils import generate_run_id
from ingestion.image_ingestor import UploadedImage
from ingestion.surface import Surface
from ocr.pipeline import OCRPipeline, PipelineResult, RunContext
from ocr.text_recognizer import Prediction


class OCRSession:
    """Committed UI state (surface, predictions) plus the active run."""

    def __init__(self, pipeline: OCRPipeline):
        self.pipeline = pipeline
        self.surface = Surface()
        self.predictions: List[Prediction] = []
        self.last_run_id: Optional[str] = None
        self._generation = 0
        self._active: Optional[Tuple[RunContext, asyncio.Task]] = None

    @property
    def ready(self) -> bool:
        return self.pipeline.ready

    @property
    def busy(self) -> bool:
        return self._active is not None and not self._active[1].done()

    def _supersede_active(self):
        if self._active is None:
            return
        context, task = self._active
        if not task.done():
            log.info(f"[{context.run_id}] Superseded by a newer upload, cancelling")
            context.superseded = True
            task.cancel()

    async def submit(self, upload: UploadedImage) -> PipelineResult:
        """Run the pipeline for an upload.

        Args:
            upload: The uploaded file

        Returns:
            PipelineResult: Result of this run (already committed)

        Raises:
            InputValidationError: Upload rejected; nothing was cancelled or changed
            RunSupersededError: A newer upload cancelled this run
            InferenceError: A model call failed; committed state is unchanged
        """
        self.pipeline.ingestor.validate(upload)

        self._generation += 1
        context = RunContext(run_id=generate_run_id(), generation=self._generation, upload=upload)
        self._supersede_active()

        task = asyncio.create_task(self._run(context))
        self._active = (context, task)
        log.info(f"[{context.run_id}] Started run for {upload.filename}")

        try:
            return await task
        except asyncio.CancelledError:
            if context.superseded:
                raise RunSupersededError(context.run_id) from None
            raise
        finally:
            if self._active is not None and self._active[1] is task:
                self._active = None

    async def _run(self, context: RunContext) -> PipelineResult:
        result = await self.pipeline.run(context)

        if context.superseded or context.generation != self._generation:
            raise RunSupersededError(context.run_id)

        self.surface = context.surface
        if not result.inert:
            self.predictions = list(result.predictions)
        self.last_run_id = context.run_id
        log.info(f"[{context.run_id}] Committed {len(self.predictions)} predictions")
        return result
