"""HTTP tests for the demo page, the OCR API and the health endpoint."""

import cv2
import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from core.config import settings
from inference.model_loader import ModelHandles
from main import create_app
from ocr.text_recognizer import Prediction
from conftest import encode_text, image_bytes, make_detector, make_recognizer


def client_for(handles: ModelHandles) -> TestClient:
    async def factory():
        return handles
    return TestClient(create_app(factory))


@pytest.fixture
def client(handles):
    with client_for(handles) as test_client:
        yield test_client


def png_file(width=100, height=50, color=(255, 255, 255), name="page.png"):
    return {"file": (name, image_bytes(width, height, color=color), "image/png")}


class TestOCREndpoint:
    """POST /api/ocr"""

    def test_ocr_returns_boxes_and_predictions(self, client):
        response = client.post("/api/ocr", files=png_file())

        assert response.status_code == 200
        data = response.json()
        assert data["run_id"].startswith("run_")
        assert (data["width"], data["height"]) == (100, 50)
        assert data["boxes"] == [{"x": 0.0, "y": 0.0, "width": 100.0, "height": 50.0}]
        assert data["predictions"] == [{"text": "light"}]

    def test_non_image_is_415_and_changes_nothing(self, client, handles):
        client.post("/api/ocr", files=png_file())
        response = client.post("/api/ocr", files={"file": ("notes.txt", b"hello", "text/plain")})

        assert response.status_code == 415
        assert "not an image" in response.json()["detail"]
        assert client.get("/api/predictions").json()["predictions"] == [{"text": "light"}]
        assert handles.detector.calls == 1

    def test_undecodable_image_is_400(self, client):
        response = client.post("/api/ocr", files={"file": ("x.png", b"garbage", "image/png")})
        assert response.status_code == 400

    def test_decompression_bomb_is_400(self, handles, monkeypatch):
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)
        with client_for(handles) as test_client:
            response = test_client.post("/api/ocr", files=png_file(width=20, height=10))
        assert response.status_code == 400
        assert handles.detector.calls == 0

    def test_too_many_pixels_is_400(self, handles, monkeypatch):
        monkeypatch.setattr(settings, "MAX_IMAGE_PIXELS", 100)
        with client_for(handles) as test_client:
            response = test_client.post("/api/ocr", files=png_file(width=20, height=10))
        assert response.status_code == 400
        assert "Image too large" in response.json()["detail"]

    def test_inference_failure_is_500(self):
        handles = ModelHandles(detector=make_detector(),
                               recognizer=make_recognizer(error=cv2.error("crash")))
        with client_for(handles) as test_client:
            response = test_client.post("/api/ocr", files=png_file())
        assert response.status_code == 500

    def test_models_not_loaded_is_503(self):
        handles = ModelHandles(errors={'detector': 'file not found', 'recognizer': 'file not found'})
        with client_for(handles) as test_client:
            response = test_client.post("/api/ocr", files=png_file())
            predictions = test_client.get("/api/predictions").json()
        assert response.status_code == 503
        assert predictions == {"run_id": None, "predictions": []}

    def test_predictions_in_box_order(self):
        def detector_fn(batch):
            boxes = np.array([[0.0, 0.0, 1.0, 0.5], [0.0, 0.5, 1.0, 1.0]], dtype=np.float32)
            return [boxes]

        texts = iter(["first", "second"])
        handles = ModelHandles(detector=make_detector(detector_fn),
                               recognizer=make_recognizer(lambda batch: [encode_text(next(texts))]))
        with client_for(handles) as test_client:
            data = test_client.post("/api/ocr", files=png_file()).json()
        assert [p["text"] for p in data["predictions"]] == ["first", "second"]


class TestDemoPage:
    """GET / and the form target."""

    def test_index_has_image_only_file_input(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert 'type="file"' in response.text
        assert 'accept="image/*"' in response.text

    def test_upload_form_renders_predictions(self, client):
        response = client.post("/upload", files=png_file(color=(0, 0, 0)))
        assert response.status_code == 200
        assert "<p>dark</p>" in response.text
        assert "<p>dark</p>" in client.get("/").text

    def test_upload_form_rejects_non_image(self, client):
        response = client.post("/upload", files={"file": ("a.txt", b"hi", "text/plain")})
        assert response.status_code == 415
        assert "not an image" in response.text

    def test_prediction_text_is_escaped(self):
        handles = ModelHandles(detector=make_detector(),
                               recognizer=make_recognizer(lambda batch: [encode_text("b")]))
        with client_for(handles) as test_client:
            session = test_client.app.state.session
            session.predictions = [Prediction(text="<script>")]
            assert "&lt;script&gt;" in test_client.get("/").text

    def test_index_warns_when_models_missing(self):
        with client_for(ModelHandles()) as test_client:
            assert "Models are not loaded" in test_client.get("/").text


class TestHealth:
    """GET /api/health"""

    def test_healthy_with_models(self, client):
        client.post("/api/ocr", files=png_file())
        data = client.get("/api/health").json()

        assert data["status"] == "healthy"
        assert data["models"] == {"detector": "loaded", "recognizer": "loaded"}
        assert data["tensors"]["live"] == 0
        assert data["tensors"]["allocated"] == data["tensors"]["released"] > 0

    def test_degraded_without_models(self):
        handles = ModelHandles(errors={'detector': 'file not found'})
        with client_for(handles) as test_client:
            data = test_client.get("/api/health").json()
        assert data["status"] == "degraded"
        assert data["models"]["detector"] == "unavailable: file not found"
        assert data["models"]["recognizer"] == "unavailable: not loaded"
