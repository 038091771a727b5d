import asyncio
import logging

from botocore.exceptions import BotoCoreError, ClientError
from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud import vision_v1
from google.oauth2 import service_account

from app.config import Settings
from app.services.errors import DetectionError
from app.services.results import Err, Ok, Result
from app.services.storage import aws_client, object_url

logger = logging.getLogger("uvicorn.error")

# Politique fixe : précision et verbosité des résultats
MAX_LABELS = 10
MIN_CONFIDENCE = 80  # sur 100


class RekognitionDetector:
    """Détection de labels via AWS Rekognition sur un objet déjà présent dans S3."""

    name = "rekognition"

    def __init__(self, client, timeout: float = 30.0):
        self._client = client
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "RekognitionDetector":
        return cls(aws_client("rekognition", settings), settings.SERVICE_TIMEOUT)

    async def detect(self, bucket: str, key: str) -> Result[list[str]]:
        logger.info(f"Rekognition detect_labels → s3://{bucket}/{key}")
        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(
                    self._client.detect_labels,
                    Image={"S3Object": {"Bucket": bucket, "Name": key}},
                    MaxLabels=MAX_LABELS,
                    MinConfidence=float(MIN_CONFIDENCE),
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Rekognition timeout après {self.timeout}s : {key}")
            return Err(DetectionError(f"Label detection timed out after {self.timeout:g}s"))
        except (BotoCoreError, ClientError) as exc:
            logger.warning(f"Rekognition detect_labels échoué : {exc}")
            return Err(DetectionError(str(exc)))

        labels = [label["Name"] for label in response.get("Labels", [])]
        logger.info(f"Labels détectés : {', '.join(labels) or 'aucun'}")
        return Ok(labels)

    async def close(self) -> None:
        self._client.close()


def _get_vision_client(settings: Settings) -> vision_v1.ImageAnnotatorAsyncClient:
    """Crée un client Vision API avec les credentials configurées."""
    if settings.GOOGLE_APPLICATION_CREDENTIALS:
        creds = service_account.Credentials.from_service_account_file(
            settings.GOOGLE_APPLICATION_CREDENTIALS
        )
        return vision_v1.ImageAnnotatorAsyncClient(credentials=creds)
    return vision_v1.ImageAnnotatorAsyncClient()


class GoogleVisionDetector:
    """Détection de labels via Google Vision, à partir de l'URL publique de l'objet S3.

    Vision renvoie des scores entre 0 et 1 : le seuil MIN_CONFIDENCE est ramené
    à cette échelle et appliqué côté client.
    """

    name = "google"

    def __init__(self, client, region: str, timeout: float = 30.0):
        self._client = client
        self.region = region
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "GoogleVisionDetector":
        return cls(_get_vision_client(settings), settings.AWS_REGION, settings.SERVICE_TIMEOUT)

    async def detect(self, bucket: str, key: str) -> Result[list[str]]:
        url = object_url(bucket, self.region, key)
        logger.info(f"Google Vision label_detection → {url}")

        image = vision_v1.Image(source=vision_v1.ImageSource(image_uri=url))
        feature = vision_v1.Feature(
            type_=vision_v1.Feature.Type.LABEL_DETECTION, max_results=MAX_LABELS
        )
        request = vision_v1.AnnotateImageRequest(image=image, features=[feature])
        try:
            batch_response = await asyncio.wait_for(
                self._client.batch_annotate_images(requests=[request], timeout=self.timeout),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Google Vision timeout après {self.timeout}s : {key}")
            return Err(DetectionError(f"Label detection timed out after {self.timeout:g}s"))
        except (GoogleAPIError, GoogleAuthError) as exc:
            logger.warning(f"Google Vision échoué : {exc}")
            return Err(DetectionError(str(exc)))

        response = batch_response.responses[0]
        if response.error.message:
            logger.warning(f"Google Vision a répondu une erreur : {response.error.message}")
            return Err(DetectionError(response.error.message))

        threshold = MIN_CONFIDENCE / 100
        labels = [
            label.description
            for label in response.label_annotations
            if label.score >= threshold
        ][:MAX_LABELS]
        logger.info(f"Labels détectés : {', '.join(labels) or 'aucun'}")
        return Ok(labels)

    async def close(self) -> None:
        await self._client.transport.close()


def build_detector(settings: Settings) -> RekognitionDetector | GoogleVisionDetector:
    if settings.LABEL_PROVIDER == "google":
        return GoogleVisionDetector.from_settings(settings)
    if settings.LABEL_PROVIDER != "rekognition":
        raise ValueError(f"Unknown LABEL_PROVIDER: {settings.LABEL_PROVIDER!r}")
    return RekognitionDetector.from_settings(settings)
