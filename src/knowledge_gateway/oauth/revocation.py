"""Token revocation (RFC 7009)."""

import structlog

from knowledge_gateway.auth.tokens import TokenCodec
from knowledge_gateway.db.repositories import TokenRepository
from knowledge_gateway.exceptions import OAuthErrorCode, OAuthProtocolError


logger = structlog.get_logger(__name__)


class RevocationService:
    """Deletes token pairs by access or refresh token."""

    def __init__(self, codec: TokenCodec, tokens: TokenRepository | None = None) -> None:
        self.codec = codec
        self.tokens = tokens or TokenRepository()

    async def revoke(self, token: str | None, token_type_hint: str | None = None) -> None:
        """Revoke the pair ``token`` belongs to.

        Unknown tokens are not an error: the caller always answers 200 so the
        endpoint cannot be used to probe for valid tokens.
        """
        if not token:
            raise OAuthProtocolError(OAuthErrorCode.INVALID_REQUEST, "token is required")

        token_hash = self.codec.hash(token)
        if token_type_hint == "refresh_token":
            revoked = await self.tokens.delete_by_refresh_hash(token_hash)
        else:
            revoked = await self.tokens.delete_by_access_hash(
                token_hash
            ) or await self.tokens.delete_by_refresh_hash(token_hash)

        logger.info("oauth_token_revoked", matched=revoked, hint=token_type_hint)
