"""Token endpoint grants: authorization_code and refresh_token.

Both grants are single-shot. A code is consumed and a refresh token is
rotated with conditional updates, so of two concurrent requests presenting
the same credential exactly one succeeds.
"""

from datetime import UTC, datetime

import structlog

from knowledge_gateway.auth.scopes import format_scopes
from knowledge_gateway.auth.tokens import TokenCodec, TokenKind, verify_code_challenge
from knowledge_gateway.config.oauth import OAuthSettings
from knowledge_gateway.core.timeutils import is_past
from knowledge_gateway.db.models import OAuthClient
from knowledge_gateway.db.repositories import (
    AuthorizationCodeRepository,
    ClientRepository,
    TokenRepository,
)
from knowledge_gateway.entitlements import EntitlementResolver
from knowledge_gateway.exceptions import (
    InvalidClientError,
    InvalidGrantError,
    OAuthErrorCode,
    OAuthProtocolError,
)
from knowledge_gateway.oauth.models import TokenResponse


logger = structlog.get_logger(__name__)


class TokenService:
    """Implements the grants accepted by ``POST /token``."""

    def __init__(
        self,
        codec: TokenCodec,
        settings: OAuthSettings,
        resolver: EntitlementResolver | None = None,
        clients: ClientRepository | None = None,
        codes: AuthorizationCodeRepository | None = None,
        tokens: TokenRepository | None = None,
    ) -> None:
        self.codec = codec
        self.settings = settings
        self.resolver = resolver or EntitlementResolver()
        self.clients = clients or ClientRepository()
        self.codes = codes or AuthorizationCodeRepository()
        self.tokens = tokens or TokenRepository()

    async def exchange_code(
        self,
        *,
        code: str | None,
        redirect_uri: str | None,
        client_id: str | None,
        code_verifier: str | None,
        client_secret: str | None = None,
    ) -> TokenResponse:
        """Exchange an authorization code for a token pair."""
        if not code or not redirect_uri or not client_id or not code_verifier:
            raise OAuthProtocolError(
                OAuthErrorCode.INVALID_REQUEST,
                "code, redirect_uri, client_id and code_verifier are required",
            )

        stored = await self.codes.get_by_hash(self.codec.hash(code))
        if stored is None or stored.used_at is not None:
            raise InvalidGrantError("Invalid or already used authorization code")

        if is_past(stored.expires_at):
            await self.codes.consume(stored.id)
            raise InvalidGrantError("Authorization code has expired")

        if stored.client_id != client_id:
            raise InvalidGrantError("Authorization code was issued to another client")

        client = await self.clients.get_active(client_id)
        if client is None:
            raise InvalidClientError("Unknown or revoked client")
        self._check_client_secret(client, client_secret)

        if stored.redirect_uri != redirect_uri:
            raise InvalidGrantError("redirect_uri does not match the authorization request")

        if not verify_code_challenge(
            code_verifier, stored.code_challenge, stored.code_challenge_method
        ):
            raise InvalidGrantError("Invalid code_verifier")

        if not await self.codes.consume(stored.id):
            logger.warning("oauth_code_replay", client_id=client_id)
            raise InvalidGrantError("Invalid or already used authorization code")

        decision = await self.resolver.resolve(stored.repository_id, stored.principal_id)
        if not decision.allowed:
            raise InvalidGrantError("Access to this repository is no longer permitted")

        access_token = self.codec.generate(TokenKind.ACCESS, stored.repository_id)
        refresh_token = self.codec.generate(TokenKind.REFRESH, stored.repository_id)
        now = datetime.now(UTC)
        await self.tokens.create(
            client_id=client_id,
            repository_id=stored.repository_id,
            principal_id=stored.principal_id,
            access_token_hash=self.codec.hash(access_token),
            refresh_token_hash=self.codec.hash(refresh_token),
            scopes=list(stored.scopes),
            expires_at=now + self.settings.access_token_lifetime,
            refresh_expires_at=now + self.settings.refresh_token_lifetime,
            subscription_id=decision.subscription_id,
        )
        logger.info(
            "oauth_tokens_issued",
            client_id=client_id,
            repository_id=stored.repository_id,
            grant_type="authorization_code",
        )
        return TokenResponse(
            access_token=access_token,
            expires_in=self.settings.access_token_ttl,
            refresh_token=refresh_token,
            scope=format_scopes(stored.scopes),
        )

    async def refresh(
        self, *, refresh_token: str | None, client_id: str | None = None
    ) -> TokenResponse:
        """Rotate a token pair. The presented refresh token stops working."""
        if not refresh_token:
            raise OAuthProtocolError(
                OAuthErrorCode.INVALID_REQUEST, "refresh_token is required"
            )

        old_hash = self.codec.hash(refresh_token)
        stored = await self.tokens.get_by_refresh_hash(old_hash)
        if stored is None:
            raise InvalidGrantError("Invalid refresh token")

        if stored.refresh_expires_at is None or is_past(stored.refresh_expires_at):
            await self.tokens.delete(stored.id)
            raise InvalidGrantError("Refresh token has expired")

        if client_id and stored.client_id != client_id:
            raise InvalidGrantError("Refresh token was issued to another client")

        if await self.clients.get_active(stored.client_id) is None:
            raise InvalidGrantError("Client has been revoked")

        access_token = self.codec.generate(TokenKind.ACCESS, stored.repository_id)
        new_refresh_token = self.codec.generate(TokenKind.REFRESH, stored.repository_id)
        now = datetime.now(UTC)
        rotated = await self.tokens.rotate(
            stored.id,
            old_refresh_hash=old_hash,
            access_token_hash=self.codec.hash(access_token),
            refresh_token_hash=self.codec.hash(new_refresh_token),
            expires_at=now + self.settings.access_token_lifetime,
            refresh_expires_at=now + self.settings.refresh_token_lifetime,
        )
        if not rotated:
            logger.warning("oauth_refresh_replay", client_id=stored.client_id)
            raise InvalidGrantError("Invalid refresh token")

        logger.info(
            "oauth_tokens_issued",
            client_id=stored.client_id,
            repository_id=stored.repository_id,
            grant_type="refresh_token",
        )
        return TokenResponse(
            access_token=access_token,
            expires_in=self.settings.access_token_ttl,
            refresh_token=new_refresh_token,
            scope=format_scopes(stored.scopes),
        )

    def _check_client_secret(self, client: OAuthClient, client_secret: str | None) -> None:
        # Public clients authenticate with PKCE alone; a presented secret must match
        if client_secret is not None and not self.codec.matches(
            client_secret, client.client_secret_hash
        ):
            raise InvalidClientError("Invalid client credentials")
