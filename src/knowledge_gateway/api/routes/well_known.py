"""Discovery documents."""

from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from knowledge_gateway.api.dependencies import SettingsDep
from knowledge_gateway.oauth import build_server_metadata


router = APIRouter(prefix="/.well-known", tags=["discovery"])


@router.get("/oauth-authorization-server", response_model=None)
async def authorization_server_metadata(settings: SettingsDep) -> JSONResponse:
    """RFC 8414 authorization server metadata."""
    metadata: dict[str, Any] = build_server_metadata(settings.issuer)
    return JSONResponse(metadata, headers={"Cache-Control": "public, max-age=3600"})
