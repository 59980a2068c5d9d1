"""Health check endpoint."""

from datetime import UTC, datetime

from fastapi import APIRouter
from pydantic import BaseModel, Field

from knowledge_gateway import __version__


router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str = Field(description="Service health status")
    version: str
    timestamp: str = Field(description="Current server timestamp")


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=__version__,
        timestamp=datetime.now(UTC).isoformat(),
    )
