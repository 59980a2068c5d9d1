"""Search collaborator configuration."""

from pydantic import BaseModel, Field


class SearchSettings(BaseModel):
    """Connection settings for the external similarity search service."""

    url: str | None = Field(
        default=None,
        description="Endpoint receiving search queries (search is unavailable when unset)",
    )

    api_key: str | None = Field(
        default=None, description="Bearer token sent to the search service"
    )

    timeout: float = Field(
        default=10.0, gt=0, description="Search request timeout in seconds"
    )
