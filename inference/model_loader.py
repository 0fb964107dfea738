"""Loads the detector and recognizer graphs once at startup."""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Optional

import cv2
import numpy as np

from core.config import Settings, settings as default_settings
from core.errors import ModelLoadError, OutputContractError, InferenceError
from core.logging import log
from core.tensors import TensorScope
from core.utils import add_batch_dim
from inference.contracts import DETECTOR_CONTRACT, RECOGNIZER_CONTRACT, OutputContract
from inference.graph_model import GraphModel


@dataclass
class ModelHandles:
    """The two loaded graphs. Either handle is None if its load failed."""
    detector: Optional[GraphModel] = None
    recognizer: Optional[GraphModel] = None
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def ready(self) -> bool:
        return self.detector is not None and self.recognizer is not None


class ModelLoader:
    """Reads serialized graphs from disk and checks their output contracts."""

    def __init__(self, config: Optional[Settings] = None,
                 reader: Callable[[str], object] = cv2.dnn.readNet):
        """Initialize model loader.

        Args:
            config: Settings to read model paths from. Defaults to global settings
            reader: Function turning a model path into a network object
        """
        self.config = config or default_settings
        self.reader = reader

    def load_graph(self, name: str, model_path: Path, contract: OutputContract,
                   input_layout: str, probe_shape: tuple) -> GraphModel:
        """Load one graph and probe it.

        Args:
            name: Model name ('detector' or 'recognizer')
            model_path: Path to the serialized graph
            contract: Output contract the graph must satisfy
            input_layout: 'NHWC' or 'NCHW'
            probe_shape: (height, width) of the dummy probe image

        Returns:
            GraphModel: Loaded and validated handle

        Raises:
            ModelLoadError: If the file is missing, unreadable or the probe
                            outputs violate the contract
        """
        model_path = Path(model_path)
        if not model_path.exists():
            raise ModelLoadError(name, f"file not found: {model_path}")

        log.info(f"Loading {name} model from: {model_path}")
        try:
            net = self.reader(str(model_path))
        except cv2.error as e:
            raise ModelLoadError(name, f"malformed graph ({e})") from e

        model = GraphModel(name=name, net=net, contract=contract, input_layout=input_layout)
        self._probe(model, probe_shape)
        log.info(f"{name.capitalize()} model loaded successfully")
        return model

    def _probe(self, model: GraphModel, probe_shape: tuple):
        height, width = probe_shape
        with TensorScope() as scope:
            pixels = scope.track(np.zeros((height, width, 3), dtype=np.uint8))
            batch = scope.track(add_batch_dim(pixels, model.input_layout))
            try:
                scope.track(model.run(batch))
            except OutputContractError as e:
                raise ModelLoadError(model.name, f"output contract violated: {e}") from e
            except InferenceError as e:
                raise ModelLoadError(model.name, f"probe inference failed: {e}") from e

    def _load_or_none(self, handles: ModelHandles, name: str, model_path: Path,
                      contract: OutputContract, input_layout: str,
                      probe_shape: tuple) -> Optional[GraphModel]:
        try:
            return self.load_graph(name, model_path, contract, input_layout, probe_shape)
        except ModelLoadError as e:
            log.error(f"Error loading models: {e}")
            handles.errors[name] = e.reason
            return None

    async def load(self) -> ModelHandles:
        """Load both graphs off the event loop.

        Failures are logged and recorded in ``ModelHandles.errors``; the
        corresponding handle stays None. There is no retry.
        """
        config = self.config
        probe = config.MODEL_PROBE_SIZE
        recognizer_probe = (config.RECOGNIZER_INPUT_HEIGHT or probe, probe)
        handles = ModelHandles()

        handles.detector = await asyncio.to_thread(
            self._load_or_none, handles, "detector", config.detector_model_path,
            DETECTOR_CONTRACT, config.DETECTOR_INPUT_LAYOUT, (probe, probe)
        )
        handles.recognizer = await asyncio.to_thread(
            self._load_or_none, handles, "recognizer", config.recognizer_model_path,
            RECOGNIZER_CONTRACT, config.RECOGNIZER_INPUT_LAYOUT, recognizer_probe
        )

        if handles.ready:
            log.info("Both models loaded; OCR pipeline is ready")
        else:
            log.warning(f"OCR pipeline is inert, models unavailable: {handles.errors}")
        return handles


async def load_models(config: Optional[Settings] = None) -> ModelHandles:
    """Load the detector and recognizer graphs configured in settings."""
    return await ModelLoader(config).load()
