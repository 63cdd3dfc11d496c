from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PreviewRequest(BaseModel):
    url: str = Field(..., description="The URL to fetch preview for")


class PartialMetadata(BaseModel):
    """Metadata fields pulled out of a page; empty strings when unknown."""

    title: str = ""
    description: str = ""
    image: str = ""
    site_name: str = ""

    model_config = ConfigDict(frozen=True)


class PreviewResult(BaseModel):
    url: str
    title: str = ""
    description: str = ""
    image: str = ""
    site_name: str = ""
    error: str = ""

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_metadata(cls, url: str, metadata: PartialMetadata) -> "PreviewResult":
        return cls(url=url, **metadata.model_dump())

    def to_envelope(self) -> dict[str, Any]:
        """Response body for the preview endpoint; ``error`` only when set."""
        return self.model_dump(exclude={"error"} if not self.error else None)


class TimeoutResponse(BaseModel):
    error: str = "Request timed out while fetching link preview"
    url: str
