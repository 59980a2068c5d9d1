"""Install tokens: access-only credentials for subscribers.

A subscriber who is not the repository owner cannot complete the
authorization code flow (consent is owner-only), so the dashboard mints an
access token bound to the subscriber's entitlement instead. These tokens
have no refresh token and expire after ``install_token_ttl``.
"""

from datetime import UTC, datetime

import structlog

from knowledge_gateway.auth.scopes import ALL_SCOPES
from knowledge_gateway.auth.tokens import TokenCodec, TokenKind
from knowledge_gateway.config.oauth import OAuthSettings
from knowledge_gateway.db.repositories import (
    ClientRepository,
    RepositoryRepository,
    TokenRepository,
)
from knowledge_gateway.entitlements import EntitlementResolver
from knowledge_gateway.exceptions import (
    InsufficientPermissionsError,
    RepositoryNotFoundError,
    ValidationError,
)
from knowledge_gateway.oauth.models import InstallToken, RepositorySummary


logger = structlog.get_logger(__name__)


class InstallTokenService:
    def __init__(
        self,
        codec: TokenCodec,
        settings: OAuthSettings,
        issuer: str,
        resolver: EntitlementResolver | None = None,
        repositories: RepositoryRepository | None = None,
        clients: ClientRepository | None = None,
        tokens: TokenRepository | None = None,
    ) -> None:
        self.codec = codec
        self.settings = settings
        self.issuer = issuer
        self.resolver = resolver or EntitlementResolver()
        self.repositories = repositories or RepositoryRepository()
        self.clients = clients or ClientRepository()
        self.tokens = tokens or TokenRepository()

    async def create(self, slug: str, principal_id: str, client_type: str) -> InstallToken:
        """Mint an install token for ``principal_id`` on repository ``slug``."""
        repository = await self.repositories.get_by_slug(slug)
        if repository is None or not repository.is_public:
            raise RepositoryNotFoundError(slug)
        if not repository.gateway_enabled:
            raise ValidationError("MCP access is not enabled for this repository")

        decision = await self.resolver.resolve_for(repository, principal_id)
        if not decision.allowed:
            raise InsufficientPermissionsError("An active subscription is required")

        scopes = [str(s) for s in ALL_SCOPES]
        client = await self.clients.create(
            client_id=self.codec.generate(TokenKind.CLIENT_ID),
            client_secret_hash=self.codec.hash(self.codec.generate(TokenKind.CLIENT_SECRET)),
            repository_id=repository.id,
            owner_id=principal_id,
            name=f"{repository.name} - {client_type}",
            redirect_uris=[],
            scopes=scopes,
        )

        token = self.codec.generate(TokenKind.ACCESS, repository.id)
        expires_at = datetime.now(UTC) + self.settings.install_token_lifetime
        await self.tokens.create(
            client_id=client.client_id,
            repository_id=repository.id,
            principal_id=principal_id,
            access_token_hash=self.codec.hash(token),
            refresh_token_hash=None,
            scopes=scopes,
            expires_at=expires_at,
            refresh_expires_at=None,
            subscription_id=decision.subscription_id,
        )
        logger.info(
            "install_token_issued",
            repository_id=repository.id,
            client_id=client.client_id,
            client_type=client_type,
            reason=decision.reason,
        )
        return InstallToken(
            token=token,
            client_type=client_type,
            expires_at=expires_at,
            repository=RepositorySummary(
                id=repository.id, name=repository.name, slug=repository.slug
            ),
            mcp_url=f"{self.issuer}/mcp/{repository.slug}",
        )
