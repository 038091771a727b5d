import asyncio
import logging
from dataclasses import dataclass
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.config import Settings
from app.services.errors import StorageError
from app.services.results import Err, Ok, Result

logger = logging.getLogger("uvicorn.error")


@dataclass(frozen=True)
class StoredObject:
    bucket: str
    key: str
    url: str


def object_url(bucket: str, region: str, key: str) -> str:
    """URL virtual-hosted S3, construite sans appel réseau."""
    return f"https://{bucket}.s3.{region}.amazonaws.com/{quote(key)}"


def aws_client(service: str, settings: Settings):
    """Crée un client boto3 avec la région, les credentials et les timeouts configurés."""
    return boto3.client(
        service,
        region_name=settings.AWS_REGION,
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
        aws_session_token=settings.AWS_SESSION_TOKEN or None,
        config=Config(
            connect_timeout=settings.SERVICE_TIMEOUT,
            read_timeout=settings.SERVICE_TIMEOUT,
        ),
    )


class S3Storage:
    def __init__(self, client, region: str, timeout: float = 30.0):
        self._client = client
        self.region = region
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3Storage":
        return cls(aws_client("s3", settings), settings.AWS_REGION, settings.SERVICE_TIMEOUT)

    async def put(
        self, bucket: str, key: str, data: bytes, content_type: str
    ) -> Result[StoredObject]:
        """Écrit un objet dans S3 et retourne sa référence (bucket, clé, URL).

        Réécrire la même clé écrase l'objet existant.
        """
        logger.info(f"S3 put_object → s3://{bucket}/{key} ({len(data)} octets, {content_type})")
        try:
            await asyncio.wait_for(
                asyncio.to_thread(
                    self._client.put_object,
                    Bucket=bucket,
                    Key=key,
                    Body=data,
                    ContentType=content_type,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"S3 put_object timeout après {self.timeout}s : {key}")
            return Err(StorageError(f"Storage request timed out after {self.timeout:g}s"))
        except (BotoCoreError, ClientError) as exc:
            logger.warning(f"S3 put_object échoué : {exc}")
            return Err(StorageError(str(exc)))

        return Ok(StoredObject(bucket=bucket, key=key, url=object_url(bucket, self.region, key)))

    async def close(self) -> None:
        self._client.close()
