from fastapi import APIRouter

from app.api.v1 import preview

api_router = APIRouter()
api_router.include_router(preview.router)

__all__ = ["api_router"]
