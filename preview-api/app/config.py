from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.services.fetcher import (
    DEFAULT_FETCH_TIMEOUT,
    DEFAULT_USER_AGENT,
    MAX_BODY_BYTES,
)
from app.services.preview import DEFAULT_PREVIEW_BUDGET

DEFAULT_ALLOWED_ORIGINS = (
    "https://localhost:3000",
    "http://localhost:3000",
    "http://localhost:5173",
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    app_name: str = Field(
        default="Link Preview API",
        description="Application name",
    )
    service_name: str = Field(
        default="link-preview-api",
        description="Service identifier reported by the health check",
    )
    version: str = Field(default="1.0.0", description="API version")
    allowed_origins: str = Field(
        default=",".join(DEFAULT_ALLOWED_ORIGINS),
        description="Comma-separated list of CORS origins, '*' allows any",
    )
    host: str = Field(default="0.0.0.0", description="Interface to bind")
    port: int = Field(default=5465, description="Port to listen on")
    log_level: str = Field(default="INFO", description="Root log level")
    preview_timeout: float = Field(
        default=DEFAULT_PREVIEW_BUDGET,
        gt=0,
        description="End-to-end budget for one preview, in seconds",
    )
    fetch_timeout: float = Field(
        default=DEFAULT_FETCH_TIMEOUT,
        gt=0,
        description="Transport-level timeout for the outbound GET, in seconds",
    )
    max_body_bytes: int = Field(
        default=MAX_BODY_BYTES,
        gt=0,
        description="Response bytes kept from the remote page",
    )
    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        description="User-Agent sent with outbound requests",
    )
    cache_control: str = Field(
        default="public, max-age=3600, s-maxage=3600, stale-while-revalidate=86400",
        description="Cache-Control directive attached to successful previews",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,  # Allow both PORT and port
        extra="ignore",  # Ignore extra environment variables
    )

    @field_validator("port", mode="before")
    @classmethod
    def strip_port_prefix(cls, value: object) -> object:
        # PORT=":5465" is accepted as well as PORT="5465"
        if isinstance(value, str):
            return value.strip().lstrip(":")
        return value

    @property
    def origins(self) -> list[str]:
        origins = [
            origin.strip()
            for origin in self.allowed_origins.split(",")
            if origin.strip()
        ]
        return origins or list(DEFAULT_ALLOWED_ORIGINS)

    @property
    def allows_any_origin(self) -> bool:
        return self.origins == ["*"]


@lru_cache()
def get_settings() -> Settings:
    return Settings()

