import base64
import os

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import get_detector, get_storage
from app.config import settings
from app.main import app, install_google_credentials
from app.services.errors import DetectionError, StorageError
from app.services.label_detector import RekognitionDetector
from app.services.storage import S3Storage
from app.services.upload_validator import MAX_FILE_SIZE
from conftest import FakeDetector, FakeStorage

JPEG_10KB = b"\xff\xd8\xff\xe0" + b"\x00" * (10 * 1024 - 4)


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def detector():
    return FakeDetector(labels=["Cat", "Pet", "Mammal"])


@pytest.fixture
def client(storage, detector):
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_detector] = lambda: detector
    yield TestClient(app)
    app.dependency_overrides.clear()


# ─── POST /api/upload ────────────────────────────────────────────────────────

def test_upload_stores_and_analyzes(client, storage, detector):
    resp = client.post("/api/upload", files={"image": ("cat.jpg", JPEG_10KB, "image/jpeg")})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["message"] == "Image uploaded and analyzed successfully"
    assert body["url"].startswith(f"https://{settings.S3_BUCKET_NAME}.s3.us-east-1.amazonaws.com/")
    assert body["url"].endswith(".jpg")
    assert body["labels"] == ["Cat", "Pet", "Mammal"]
    assert body["description"] == "This image contains: Cat, Pet, Mammal."

    [call] = storage.calls
    assert call["bucket"] == settings.S3_BUCKET_NAME
    assert call["key"].endswith(".jpg")
    assert call["data"] == JPEG_10KB
    assert call["content_type"] == "image/jpeg"
    assert detector.calls == [(settings.S3_BUCKET_NAME, call["key"])]


def test_upload_without_labels(client, detector):
    detector.labels = []
    resp = client.post("/api/upload", files={"image": ("empty.png", b"\x89PNG", "image/png")})

    assert resp.status_code == 200
    assert resp.json()["labels"] == []
    assert resp.json()["description"] == "No clear objects detected in this image."


def test_upload_filename_without_extension(client, storage):
    resp = client.post("/api/upload", files={"image": ("snapshot", JPEG_10KB, "image/jpeg")})

    assert resp.status_code == 200
    key = storage.calls[0]["key"]
    assert "." not in key
    assert resp.json()["url"].endswith(f"/{key}")


def test_upload_missing_file(client, storage):
    resp = client.post("/api/upload", data={"note": "no file here"})

    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "no_file"
    assert body["details"] == "No image file provided"
    assert "url" not in body
    assert storage.calls == []


def test_upload_text_field_instead_of_file(client, storage):
    resp = client.post("/api/upload", data={"image": "not a file"})

    assert resp.status_code == 400
    assert resp.json()["error"] == "no_file"
    assert storage.calls == []


def test_upload_file_part_without_filename(client, storage):
    resp = client.post("/api/upload", files={"image": ("", JPEG_10KB, "image/jpeg")})

    assert resp.status_code == 400
    assert resp.json()["error"] == "no_file"
    assert storage.calls == []


@pytest.mark.parametrize("content_type", ["image/gif", "application/pdf", "text/plain"])
def test_upload_rejects_wrong_type_without_network_call(client, storage, detector, content_type):
    resp = client.post("/api/upload", files={"image": ("file.gif", b"GIF89a", content_type)})

    assert resp.status_code == 400
    assert resp.json()["error"] == "unsupported_media_type"
    assert storage.calls == []
    assert detector.calls == []


def test_upload_rejects_oversize_without_network_call(client, storage, detector):
    big = b"\x00" * (MAX_FILE_SIZE + 1)
    resp = client.post("/api/upload", files={"image": ("big.jpg", big, "image/jpeg")})

    assert resp.status_code == 400
    assert resp.json()["error"] == "payload_too_large"
    assert storage.calls == []
    assert detector.calls == []


def test_upload_storage_failure(client, storage, detector):
    storage.error = StorageError("An error occurred (AccessDenied) when calling the PutObject operation: Access Denied")
    resp = client.post("/api/upload", files={"image": ("cat.jpg", JPEG_10KB, "image/jpeg")})

    assert resp.status_code == 500
    body = resp.json()
    assert body["error"] == "storage_error"
    assert "AccessDenied" in body["details"]
    assert detector.calls == []


def test_upload_detection_failure_keeps_stored_object(client, storage, detector):
    detector.error = DetectionError("Rekognition unavailable")
    resp = client.post("/api/upload", files={"image": ("cat.png", JPEG_10KB, "image/png")})

    assert resp.status_code == 500
    assert resp.json() == {"error": "detection_error", "details": "Rekognition unavailable"}
    assert len(storage.calls) == 1


class ExplodingDetector(FakeDetector):
    async def detect(self, bucket, key):
        raise RuntimeError("boom")


def test_unexpected_exception_is_internal_error(storage):
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_detector] = lambda: ExplodingDetector()
    try:
        resp = TestClient(app).post("/api/upload", files={"image": ("cat.jpg", JPEG_10KB, "image/jpeg")})
    finally:
        app.dependency_overrides.clear()

    assert resp.status_code == 500
    assert resp.json() == {"error": "internal_error", "details": "boom"}


# ─── POST /api/analyze ───────────────────────────────────────────────────────

def test_analyze_existing_object(client, storage, detector):
    resp = client.post("/api/analyze", json={"bucket": "other-bucket", "key": "dog.png"})

    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "description": "This image contains: Cat, Pet, Mammal.",
        "labels": ["Cat", "Pet", "Mammal"],
    }
    assert detector.calls == [("other-bucket", "dog.png")]
    assert storage.calls == []


@pytest.mark.parametrize(
    "payload", [{"bucket": "photos"}, {"key": "dog.png"}, {}, {"bucket": "", "key": "dog.png"}]
)
def test_analyze_missing_parameters(client, detector, payload):
    resp = client.post("/api/analyze", json=payload)

    assert resp.status_code == 400
    assert resp.json()["error"] == "missing_parameters"
    assert detector.calls == []


def test_analyze_invalid_json_is_bad_request(client):
    resp = client.post(
        "/api/analyze", content=b"{not json", headers={"Content-Type": "application/json"}
    )

    assert resp.status_code == 400
    assert resp.json()["error"] == "bad_request"


def test_analyze_detection_failure(client, detector):
    detector.error = DetectionError("Unable to get object metadata from S3.")
    resp = client.post("/api/analyze", json={"bucket": "photos", "key": "missing.jpg"})

    assert resp.status_code == 500
    assert resp.json()["error"] == "detection_error"
    assert resp.json()["details"] == "Unable to get object metadata from S3."


# ─── Divers ──────────────────────────────────────────────────────────────────

def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_form_is_served(client):
    resp = client.get("/")

    assert resp.status_code == 200
    assert "text/html" in resp.headers["content-type"]
    assert 'formData.append("image"' in resp.text
    assert "/api/upload" in resp.text


# ─── Cycle de vie ────────────────────────────────────────────────────────────

def test_lifespan_builds_and_closes_gateways(aws_credentials, monkeypatch):
    monkeypatch.setattr(settings, "LABEL_PROVIDER", "rekognition")
    closed = []

    async def close_storage(self):
        closed.append("storage")

    async def close_detector(self):
        closed.append("detector")

    monkeypatch.setattr(S3Storage, "close", close_storage)
    monkeypatch.setattr(RekognitionDetector, "close", close_detector)

    with TestClient(app) as c:
        assert c.get("/health").json() == {"status": "ok"}
        assert isinstance(app.state.storage, S3Storage)
        assert app.state.storage.region == settings.AWS_REGION
        assert app.state.detector.name == "rekognition"
        assert closed == []

    assert sorted(closed) == ["detector", "storage"]


def test_google_credentials_from_base64(monkeypatch, tmp_path):
    payload = b'{"type": "service_account", "project_id": "demo"}'
    target = tmp_path / "google-vision.json"
    monkeypatch.setenv("GOOGLE_CREDENTIALS_BASE64", base64.b64encode(payload).decode())
    monkeypatch.delenv("GOOGLE_APPLICATION_CREDENTIALS", raising=False)

    assert install_google_credentials(str(target)) == str(target)
    assert target.read_bytes() == payload
    assert os.environ["GOOGLE_APPLICATION_CREDENTIALS"] == str(target)


def test_google_credentials_absent(monkeypatch, tmp_path):
    monkeypatch.delenv("GOOGLE_CREDENTIALS_BASE64", raising=False)
    target = tmp_path / "google-vision.json"

    assert install_google_credentials(str(target)) is None
    assert not target.exists()
