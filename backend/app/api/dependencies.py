from fastapi import Request

from app.services.label_detector import GoogleVisionDetector, RekognitionDetector
from app.services.storage import S3Storage


async def get_storage(request: Request) -> S3Storage:
    return request.app.state.storage


async def get_detector(request: Request) -> RekognitionDetector | GoogleVisionDetector:
    return request.app.state.detector
