from fastapi import APIRouter

from app.api.images import router as images_router

api_router = APIRouter(prefix="/api")
api_router.include_router(images_router)
