import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api import api_router
from app.api.v1.preview import INVALID_REQUEST_MESSAGE
from app.config import Settings, get_settings
from app.logging_config import configure_logging
from app.services.fetcher import Fetcher, build_client
from app.services.preview import PreviewService

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the application; ``transport`` replaces the outbound network."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan context manager for startup and shutdown events."""
        # Startup
        client = build_client(settings.fetch_timeout, transport=transport)
        fetcher = Fetcher(
            client,
            timeout=settings.fetch_timeout,
            max_body_bytes=settings.max_body_bytes,
            user_agent=settings.user_agent,
        )
        app.state.preview_service = PreviewService(
            fetcher, budget=settings.preview_timeout
        )
        logger.info(
            "%s listening on port %d, allowed origins: %s",
            settings.app_name,
            settings.port,
            ", ".join(settings.origins),
        )
        yield
        # Shutdown
        await client.aclose()

    app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)
    app.state.settings = settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.origins,
        allow_credentials=not settings.allows_any_origin,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.include_router(api_router)

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        if request.url.path != "/preview":
            return await request_validation_exception_handler(request, exc)
        return JSONResponse(
            status_code=400,
            content={"error": INVALID_REQUEST_MESSAGE, "details": str(exc)},
        )

    @app.get("/health", tags=["system"])
    async def healthcheck() -> dict[str, str]:
        return {
            "status": "healthy",
            "service": settings.service_name,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/", tags=["system"])
    async def api_docs() -> dict[str, Any]:
        """Describe the API for humans poking at the root URL."""
        return {
            "service": settings.app_name,
            "version": settings.version,
            "description": "API for fetching website metadata and link previews",
            "endpoints": {
                "POST /preview": {
                    "description": "Fetch link preview for a given URL",
                    "body": {"url": "The URL to fetch preview for (required)"},
                    "response": {
                        "url": "Original URL",
                        "title": "Page title",
                        "description": "Page description",
                        "image": "Preview image URL",
                        "site_name": "Site name",
                        "error": "Error message (if any)",
                    },
                },
                "GET /health": "Health check endpoint",
            },
            "examples": {"request": {"url": "https://github.com"}},
        }

    return app


app = create_app()


def run() -> None:
    """Run the API server with uvicorn."""
    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
