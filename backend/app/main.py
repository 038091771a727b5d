import base64
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path


def install_google_credentials(target: str = "/tmp/google-vision.json") -> str | None:
    """Google Vision credentials depuis base64 (Docker / VPS)."""
    creds_b64 = os.environ.get("GOOGLE_CREDENTIALS_BASE64")
    if not creds_b64:
        return None
    Path(target).write_bytes(base64.b64decode(creds_b64))
    os.environ["GOOGLE_APPLICATION_CREDENTIALS"] = target
    return target


# Avant la lecture des settings
install_google_credentials()

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse

from app.api.router import api_router
from app.config import settings
from app.services.errors import BadRequest, InternalError
from app.services.label_detector import build_detector
from app.services.storage import S3Storage

logger = logging.getLogger("uvicorn.error")

STATIC_DIR = Path(__file__).resolve().parent / "static"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- Startup ---
    app.state.storage = S3Storage.from_settings(settings)
    app.state.detector = build_detector(settings)
    logger.info(
        f"Clients initialisés : bucket={settings.S3_BUCKET_NAME}, region={settings.AWS_REGION}, "
        f"labels={app.state.detector.name}"
    )

    yield

    # --- Shutdown ---
    await app.state.storage.close()
    await app.state.detector.close()


app = FastAPI(
    title="Image Label API",
    version="0.1.0",
    lifespan=lifespan,
)

allowed_origins = [settings.FRONTEND_URL]
if settings.APP_ENV != "development":
    allowed_origins.append("*")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"{request.method} {request.url.path}")
    try:
        response = await call_next(request)
        if response.status_code >= 400:
            logger.warning(f"{request.method} {request.url.path} → {response.status_code}")
        return response
    except Exception as exc:
        logger.exception(f"{request.method} {request.url.path} → Exception: {exc}")
        return JSONResponse(status_code=500, content=InternalError(str(exc)).to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    # Corps JSON absent ou invalide : 400 plutôt que le 422 par défaut de FastAPI
    errors = exc.errors()
    message = f"Invalid request: {errors[0]['msg']}" if errors else None
    return JSONResponse(status_code=400, content=BadRequest(message).to_dict())


app.include_router(api_router)


@app.get("/health")
async def health_check():
    return {"status": "ok"}


@app.get("/", include_in_schema=False)
async def serve_form():
    """Sert le formulaire d'upload."""
    return FileResponse(STATIC_DIR / "index.html")


if __name__ == "__main__":
    uvicorn.run("app.main:app", host=settings.API_HOST, port=settings.API_PORT)
