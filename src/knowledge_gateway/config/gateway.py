"""Protocol gateway configuration."""

from pydantic import BaseModel, Field


class GatewaySettings(BaseModel):
    """MCP gateway behaviour."""

    server_name: str = Field(
        default="knowledge-gateway",
        description="Prefix of the serverInfo name reported by initialize",
    )

    server_version: str = Field(default="1.0.0", description="serverInfo version")

    protocol_version: str = Field(
        default="2024-11-05", description="MCP protocol version announced to clients"
    )

    keepalive_interval: float = Field(
        default=30.0,
        gt=0,
        description="Seconds between keep-alive comments on streaming connections",
    )

    search_default_limit: int = Field(
        default=5, ge=1, description="Results returned by search when no limit is given"
    )

    search_max_limit: int = Field(
        default=10, ge=1, description="Upper bound on search results per call"
    )
