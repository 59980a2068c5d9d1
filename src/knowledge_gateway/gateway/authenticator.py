"""Access token validation for gateway calls."""

import structlog

from knowledge_gateway.auth.sessions import extract_bearer_token
from knowledge_gateway.auth.tokens import TokenCodec, TokenKind
from knowledge_gateway.core.timeutils import is_past
from knowledge_gateway.db.models import OAuthToken, Repository
from knowledge_gateway.db.repositories import RepositoryRepository, TokenRepository
from knowledge_gateway.entitlements import EntitlementResolver
from knowledge_gateway.exceptions import (
    AuthenticationRequiredError,
    InsufficientPermissionsError,
    InvalidTokenError,
    RepositoryNotFoundError,
)
from knowledge_gateway.gateway.dispatcher import CallContext


logger = structlog.get_logger(__name__)


class GatewayAuthenticator:
    """Turns a bearer token and a slug into an authorized call context."""

    def __init__(
        self,
        codec: TokenCodec,
        resolver: EntitlementResolver | None = None,
        repositories: RepositoryRepository | None = None,
        tokens: TokenRepository | None = None,
    ) -> None:
        self.codec = codec
        self.resolver = resolver or EntitlementResolver()
        self.repositories = repositories or RepositoryRepository()
        self.tokens = tokens or TokenRepository()

    @staticmethod
    def bearer_token(authorization: str | None) -> str:
        token = extract_bearer_token(authorization)
        if token is None:
            raise AuthenticationRequiredError("Missing or invalid authorization header")
        return token

    async def resolve_repository(self, slug: str) -> Repository:
        repository = await self.repositories.get_served_by_slug(slug)
        if repository is None:
            raise RepositoryNotFoundError(slug)
        return repository

    async def authenticate(self, repository: Repository, access_token: str) -> CallContext:
        """Validate ``access_token`` for ``repository``.

        Raises:
            InvalidTokenError: unknown, expired, revoked, or bound elsewhere
            InsufficientPermissionsError: the caller is no longer entitled
        """
        if not TokenCodec.has_kind(access_token, TokenKind.ACCESS):
            raise InvalidTokenError("Invalid access token")

        token = await self.tokens.get_by_access_hash(self.codec.hash(access_token))
        if token is None:
            raise InvalidTokenError("Invalid access token")
        if is_past(token.expires_at):
            raise InvalidTokenError("Access token has expired")
        if token.repository_id != repository.id:
            logger.warning(
                "gateway_token_repository_mismatch",
                token_repository_id=token.repository_id,
                repository_id=repository.id,
            )
            raise InvalidTokenError("Token is not valid for this repository")

        if token.principal_id != repository.owner_id:
            await self._check_entitlement(repository, token)

        await self.tokens.touch(token.id)
        return CallContext(
            repository=repository,
            principal_id=token.principal_id,
            client_id=token.client_id,
            scopes=list(token.scopes),
        )

    async def _check_entitlement(self, repository: Repository, token: OAuthToken) -> None:
        # Paid access is tied to the subscription the token was issued against
        if repository.is_paid and token.subscription_id:
            allowed = await self.resolver.verify_subscription(
                token.subscription_id, repository.id, token.principal_id
            )
            if repository.is_public and allowed:
                return
            logger.info(
                "gateway_entitlement_denied",
                repository_id=repository.id,
                subscription_id=token.subscription_id,
            )
            raise InsufficientPermissionsError("Subscription is not active")

        decision = await self.resolver.resolve_for(repository, token.principal_id)
        if not decision.allowed:
            logger.info(
                "gateway_entitlement_denied",
                repository_id=repository.id,
                reason=decision.reason,
            )
            raise InsufficientPermissionsError("Access to this repository is not permitted")
        if decision.subscription_id and decision.subscription_id != token.subscription_id:
            await self.tokens.set_subscription(token.id, decision.subscription_id)
