"""Client registration and management for repository owners."""

import structlog

from knowledge_gateway.auth.redirects import is_absolute_url
from knowledge_gateway.auth.scopes import DEFAULT_SCOPES, filter_scopes
from knowledge_gateway.auth.tokens import TokenCodec, TokenKind
from knowledge_gateway.core.timeutils import ensure_utc
from knowledge_gateway.db.models import OAuthClient
from knowledge_gateway.db.repositories import ClientRepository, RepositoryRepository
from knowledge_gateway.exceptions import (
    NotFoundError,
    OAuthErrorCode,
    OAuthProtocolError,
)
from knowledge_gateway.oauth.models import (
    ClientCreate,
    ClientInfo,
    ClientRegistration,
    RepositorySummary,
)


logger = structlog.get_logger(__name__)


def client_info(client: OAuthClient) -> ClientInfo:
    return ClientInfo(
        client_id=client.client_id,
        name=client.name,
        repository_id=client.repository_id,
        redirect_uris=list(client.redirect_uris),
        scopes=list(client.scopes),
        created_at=client.created_at,
        revoked=client.is_revoked,
        revoked_at=client.revoked_at,
    )


class ClientService:
    """Registers, lists and revokes OAuth clients."""

    def __init__(
        self,
        codec: TokenCodec,
        issuer: str,
        clients: ClientRepository | None = None,
        repositories: RepositoryRepository | None = None,
    ) -> None:
        self.codec = codec
        self.issuer = issuer
        self.clients = clients or ClientRepository()
        self.repositories = repositories or RepositoryRepository()

    async def register(self, principal_id: str, request: ClientCreate) -> ClientRegistration:
        """Register a client for a repository owned by ``principal_id``.

        Raises:
            OAuthProtocolError: access_denied when the repository is not owned
        """
        repository = await self.repositories.get_owned(request.repository_id, principal_id)
        if repository is None:
            raise OAuthProtocolError(
                OAuthErrorCode.ACCESS_DENIED,
                "Repository not found or not owned by you",
                status_code=403,
            )

        scopes = filter_scopes(request.scopes or []) or list(DEFAULT_SCOPES)
        redirect_uris = [uri for uri in request.redirect_uris if is_absolute_url(uri)]

        client_id = self.codec.generate(TokenKind.CLIENT_ID)
        client_secret = self.codec.generate(TokenKind.CLIENT_SECRET)
        client = await self.clients.create(
            client_id=client_id,
            client_secret_hash=self.codec.hash(client_secret),
            repository_id=repository.id,
            owner_id=principal_id,
            name=request.name,
            redirect_uris=redirect_uris,
            scopes=[str(s) for s in scopes],
        )
        logger.info(
            "oauth_client_registered",
            client_id=client_id,
            repository_id=repository.id,
            redirect_uri_count=len(redirect_uris),
        )
        return ClientRegistration(
            client_id=client_id,
            client_secret=client_secret,
            client_id_issued_at=int(ensure_utc(client.created_at).timestamp()),
            name=client.name,
            redirect_uris=redirect_uris,
            scopes=list(client.scopes),
            repository=RepositorySummary(
                id=repository.id, name=repository.name, slug=repository.slug
            ),
            mcp_url=f"{self.issuer}/mcp/{repository.slug}",
        )

    async def list_clients(
        self, principal_id: str, repository_id: str | None = None
    ) -> list[ClientInfo]:
        clients = await self.clients.list_for_owner(principal_id, repository_id)
        return [client_info(client) for client in clients]

    async def revoke(self, principal_id: str, client_id: str) -> None:
        """Revoke a client and its tokens.

        Raises:
            NotFoundError: unknown, not owned or already revoked
        """
        if not await self.clients.revoke(client_id, principal_id):
            raise NotFoundError("Client not found")
        logger.info("oauth_client_revoked", client_id=client_id)
