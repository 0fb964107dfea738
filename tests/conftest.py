"""Shared fixtures: fake inference graphs and in-memory images."""

import io
import threading
import time
from typing import Callable, List, Optional

import numpy as np
import pytest
from PIL import Image

from core.tensors import registry
from inference.contracts import DETECTOR_CONTRACT, RECOGNIZER_CONTRACT
from inference.graph_model import GraphModel
from inference.model_loader import ModelHandles

# Default charset: digits then lowercase letters, blank at index 0
CHARSET = "0123456789abcdefghijklmnopqrstuvwxyz"


class FakeNet:
    """Stands in for a cv2.dnn.Net: setInput / forward / getUnconnectedOutLayersNames."""

    def __init__(self, respond: Callable[[np.ndarray], List[np.ndarray]], delay: float = 0.0,
                 error: Optional[Exception] = None):
        self.respond = respond
        self.delay = delay
        self.error = error
        self.inputs: List[np.ndarray] = []
        self.started = threading.Event()
        self._input = None

    def getUnconnectedOutLayersNames(self):
        return ["output"]

    def setInput(self, blob):
        self._input = blob

    def forward(self, names):
        self.inputs.append(self._input)
        self.started.set()
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.respond(self._input)


def encode_text(text: str, charset: str = CHARSET) -> np.ndarray:
    """Logits [1, T, C] whose greedy CTC decoding is ``text``.

    Each character is emitted twice followed by a blank, so repeats in
    ``text`` survive collapsing.
    """
    steps = []
    for char in text:
        index = charset.index(char) + 1
        steps.extend([index, index, 0])
    steps = steps or [0]
    logits = np.zeros((1, len(steps), len(charset) + 1), dtype=np.float32)
    for t, index in enumerate(steps):
        logits[0, t, index] = 1.0
    return logits


def full_image_detector(batch: np.ndarray) -> List[np.ndarray]:
    """One box covering the whole image, with a high score."""
    boxes = np.array([[[0.0, 0.0, 1.0, 1.0]]], dtype=np.float32)
    scores = np.array([[0.9]], dtype=np.float32)
    return [boxes, scores]


def brightness_recognizer(batch: np.ndarray) -> List[np.ndarray]:
    """Reads 'light' for bright crops and 'dark' for dark ones."""
    text = "light" if float(batch.mean()) > 0.5 else "dark"
    return [encode_text(text)]


def make_detector(respond=full_image_detector, **kwargs) -> GraphModel:
    net = FakeNet(respond, **kwargs)
    return GraphModel("detector", net, DETECTOR_CONTRACT, output_names=["output"])


def make_recognizer(respond=brightness_recognizer, **kwargs) -> GraphModel:
    net = FakeNet(respond, **kwargs)
    return GraphModel("recognizer", net, RECOGNIZER_CONTRACT, output_names=["output"])


def image_bytes(width: int, height: int, color=(255, 255, 255), fmt: str = "PNG") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color=color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture(autouse=True)
def reset_tensor_registry():
    registry.reset()
    yield
    registry.reset()


@pytest.fixture
def detector():
    return make_detector()


@pytest.fixture
def recognizer():
    return make_recognizer()


@pytest.fixture
def handles(detector, recognizer):
    return ModelHandles(detector=detector, recognizer=recognizer)
