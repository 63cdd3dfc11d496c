from fastapi import Request

from app.config import Settings
from app.services.preview import PreviewService


async def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_preview_service(request: Request) -> PreviewService:
    """Get the preview service created for the application lifespan."""
    return request.app.state.preview_service
