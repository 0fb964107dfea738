"""Opaque handle around a loaded inference graph (OpenCV DNN)."""

import asyncio
import threading
from typing import List, Optional

import cv2
import numpy as np

from core.errors import InferenceError
from core.logging import log
from inference.contracts import OutputContract


class GraphModel:
    """A loaded inference graph that can be awaited from the event loop.

    The handle is immutable after loading. Forward passes run on a worker
    thread; a lock serializes them because a ``cv2.dnn.Net`` keeps its
    input blob as internal state.
    """

    def __init__(self, name: str, net, contract: OutputContract,
                 input_layout: str = "NHWC", output_names: Optional[List[str]] = None):
        """Wrap a loaded network.

        Args:
            name: Model name used in logs and errors ('detector', 'recognizer')
            net: Object with the cv2.dnn.Net interface (setInput / forward)
            contract: Output contract validated on every call
            input_layout: Layout the graph expects its input in
            output_names: Output layer names; defaults to all unconnected outputs
        """
        self.name = name
        self.contract = contract
        self.input_layout = input_layout.upper()
        self._net = net
        self._lock = threading.Lock()
        self._output_names = output_names
        self.calls = 0

    def _resolve_output_names(self) -> List[str]:
        if self._output_names is None:
            self._output_names = list(self._net.getUnconnectedOutLayersNames())
        return self._output_names

    def run(self, tensor: np.ndarray) -> List[np.ndarray]:
        """Run one synchronous forward pass and validate the outputs.

        Raises:
            InferenceError: If the graph fails or its outputs break the contract
        """
        with self._lock:
            self.calls += 1
            try:
                self._net.setInput(tensor)
                outputs = self._net.forward(self._resolve_output_names())
            except cv2.error as e:
                raise InferenceError(f"{self.name} forward pass failed: {e}") from e

        if isinstance(outputs, np.ndarray):
            outputs = [outputs]
        return self.contract.validate(outputs)

    async def execute(self, tensor: np.ndarray) -> List[np.ndarray]:
        """Run a forward pass without blocking the event loop."""
        log.debug(f"Executing {self.name} on tensor {tuple(tensor.shape)}")
        return await asyncio.to_thread(self.run, tensor)

    def __repr__(self) -> str:
        return f"GraphModel(name={self.name!r}, layout={self.input_layout!r})"
