"""Authorization server metadata (RFC 8414)."""

from typing import Any

from knowledge_gateway.auth.scopes import ALL_SCOPES


def build_server_metadata(issuer: str) -> dict[str, Any]:
    return {
        "issuer": issuer,
        "authorization_endpoint": f"{issuer}/authorize",
        "token_endpoint": f"{issuer}/token",
        "revocation_endpoint": f"{issuer}/revoke",
        "registration_endpoint": f"{issuer}/clients",
        "token_endpoint_auth_methods_supported": ["none", "client_secret_post"],
        "revocation_endpoint_auth_methods_supported": ["none"],
        "response_types_supported": ["code"],
        "grant_types_supported": ["authorization_code", "refresh_token"],
        "code_challenge_methods_supported": ["S256"],
        "scopes_supported": [str(s) for s in ALL_SCOPES],
        "service_documentation": f"{issuer}/docs",
        "ui_locales_supported": ["en"],
    }
