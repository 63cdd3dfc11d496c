from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from app.api.deps import get_app_settings, get_preview_service
from app.config import Settings
from app.schemas import PreviewRequest, PreviewResult, TimeoutResponse
from app.services.preview import PreviewService

router = APIRouter(tags=["preview"])

INVALID_REQUEST_MESSAGE = "Invalid request format. Expected JSON with 'url' field."


@router.post(
    "/preview",
    response_model=PreviewResult,
    responses={
        status.HTTP_400_BAD_REQUEST: {"description": "Missing or empty url"},
        status.HTTP_408_REQUEST_TIMEOUT: {"model": TimeoutResponse},
    },
)
async def create_preview(
    payload: PreviewRequest,
    service: Annotated[PreviewService, Depends(get_preview_service)],
    app_settings: Annotated[Settings, Depends(get_app_settings)],
) -> JSONResponse:
    """Fetch a page and return its link preview.

    Remote failures are still answered with 200 and an ``error`` field; only
    running out of time is reported with a different status.
    """
    url = payload.url.strip()
    if not url:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "URL cannot be empty"},
        )

    outcome = await service.resolve(url)
    if outcome.timed_out:
        return JSONResponse(
            status_code=status.HTTP_408_REQUEST_TIMEOUT,
            content=TimeoutResponse(url=url).model_dump(),
        )

    headers = {"Cache-Control": app_settings.cache_control} if outcome.cacheable else None
    return JSONResponse(content=outcome.result.to_envelope(), headers=headers)
