from app.schemas.preview import (
    PartialMetadata,
    PreviewRequest,
    PreviewResult,
    TimeoutResponse,
)

__all__ = [
    "PartialMetadata",
    "PreviewRequest",
    "PreviewResult",
    "TimeoutResponse",
]
