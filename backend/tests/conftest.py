import os

# Configuration minimale avant l'import de app.config
os.environ.setdefault("S3_BUCKET_NAME", "test-bucket")
os.environ.setdefault("AWS_REGION", "us-east-1")

import boto3
import pytest

from app.services.errors import DetectionError, StorageError
from app.services.results import Err, Ok
from app.services.storage import StoredObject, object_url


class FakeStorage:
    """Storage en mémoire qui enregistre les appels."""

    def __init__(self, region: str = "us-east-1", error: StorageError | None = None):
        self.region = region
        self.error = error
        self.calls = []

    async def put(self, bucket, key, data, content_type):
        self.calls.append({"bucket": bucket, "key": key, "data": data, "content_type": content_type})
        if self.error:
            return Err(self.error)
        return Ok(StoredObject(bucket=bucket, key=key, url=object_url(bucket, self.region, key)))

    async def close(self):
        pass


class FakeDetector:
    name = "fake"

    def __init__(self, labels=None, error: DetectionError | None = None):
        self.labels = labels if labels is not None else []
        self.error = error
        self.calls = []

    async def detect(self, bucket, key):
        self.calls.append((bucket, key))
        if self.error:
            return Err(self.error)
        return Ok(list(self.labels))

    async def close(self):
        pass


@pytest.fixture
def aws_credentials(monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.delenv("AWS_SESSION_TOKEN", raising=False)


@pytest.fixture
def s3_client(aws_credentials):
    return boto3.client("s3", region_name="eu-west-3")


@pytest.fixture
def rekognition_client(aws_credentials):
    return boto3.client("rekognition", region_name="us-east-1")
