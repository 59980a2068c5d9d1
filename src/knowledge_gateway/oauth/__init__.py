"""OAuth 2.1 authorization server."""

from knowledge_gateway.oauth.authorization import AuthorizationRequest, AuthorizationService
from knowledge_gateway.oauth.clients import ClientService
from knowledge_gateway.oauth.grants import TokenService
from knowledge_gateway.oauth.install import InstallTokenService
from knowledge_gateway.oauth.metadata import build_server_metadata
from knowledge_gateway.oauth.revocation import RevocationService


__all__ = [
    "AuthorizationRequest",
    "AuthorizationService",
    "ClientService",
    "InstallTokenService",
    "RevocationService",
    "TokenService",
    "build_server_metadata",
]
