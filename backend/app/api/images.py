import logging

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import JSONResponse

from app.api.dependencies import get_detector, get_storage
from app.config import settings
from app.schemas.image import AnalyzeRequest, AnalyzeResponse, ErrorResponse, UploadResponse
from app.services.description import generate_description
from app.services.errors import BadRequest, MissingParameters, NoFileProvided, ServiceError
from app.services.naming import generate_storage_key
from app.services.results import Err
from app.services.upload_validator import MAX_FILE_SIZE, validate_upload

logger = logging.getLogger("uvicorn.error")

router = APIRouter(tags=["images"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def error_response(exc: ServiceError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@router.post("/upload", response_model=UploadResponse, responses=ERROR_RESPONSES)
async def upload_image(
    image: UploadFile | str | None = File(default=None),
    storage=Depends(get_storage),
    detector=Depends(get_detector),
):
    """Upload une image dans S3 puis lance la détection de labels dessus."""
    # Champ texte ou partie fichier sans nom : aucun fichier choisi
    if not isinstance(image, UploadFile) or not image.filename:
        return error_response(NoFileProvided())

    # Lire un octet de plus que la limite suffit pour détecter un dépassement
    content = await image.read(MAX_FILE_SIZE + 1)
    try:
        validate_upload(content, image.content_type)
    except BadRequest as exc:
        logger.warning(f"Upload refusé ({exc.code}) : {image.filename!r}, {image.content_type}")
        return error_response(exc)

    key = generate_storage_key(image.filename)
    stored = await storage.put(settings.S3_BUCKET_NAME, key, content, image.content_type)
    if isinstance(stored, Err):
        return error_response(stored.error)

    # Pas de suppression de l'objet si la détection échoue ensuite
    detected = await detector.detect(stored.value.bucket, stored.value.key)
    if isinstance(detected, Err):
        return error_response(detected.error)

    labels = detected.value
    return UploadResponse(
        url=stored.value.url,
        description=generate_description(labels),
        labels=labels,
    )


@router.post("/analyze", response_model=AnalyzeResponse, responses=ERROR_RESPONSES)
async def analyze_image(data: AnalyzeRequest, detector=Depends(get_detector)):
    """Analyse une image déjà présente dans un bucket S3."""
    if not data.bucket or not data.key:
        return error_response(MissingParameters())

    detected = await detector.detect(data.bucket, data.key)
    if isinstance(detected, Err):
        return error_response(detected.error)

    labels = detected.value
    return AnalyzeResponse(description=generate_description(labels), labels=labels)
