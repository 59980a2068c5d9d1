"""OAuth client repository for database operations."""

from datetime import UTC, datetime

from sqlalchemy import delete, update
from sqlmodel import col, select

from knowledge_gateway.db.engine import get_session
from knowledge_gateway.db.models import OAuthClient, OAuthToken


class ClientRepository:
    """Repository for registered OAuth clients."""

    async def create(
        self,
        *,
        client_id: str,
        client_secret_hash: str,
        repository_id: str,
        owner_id: str,
        name: str,
        redirect_uris: list[str],
        scopes: list[str],
    ) -> OAuthClient:
        """Register a new client."""
        async with get_session() as session:
            client = OAuthClient(
                client_id=client_id,
                client_secret_hash=client_secret_hash,
                repository_id=repository_id,
                owner_id=owner_id,
                name=name,
                redirect_uris=redirect_uris,
                scopes=scopes,
            )
            session.add(client)
            await session.commit()
            await session.refresh(client)
            return client

    async def get(self, client_id: str) -> OAuthClient | None:
        """Get a client by its public client_id, revoked or not."""
        async with get_session() as session:
            result = await session.execute(
                select(OAuthClient).where(OAuthClient.client_id == client_id)
            )
            return result.scalar_one_or_none()

    async def get_active(self, client_id: str) -> OAuthClient | None:
        """Get a client that has not been revoked."""
        async with get_session() as session:
            result = await session.execute(
                select(OAuthClient).where(
                    OAuthClient.client_id == client_id,
                    col(OAuthClient.revoked_at).is_(None),
                )
            )
            return result.scalar_one_or_none()

    async def list_for_owner(
        self, owner_id: str, repository_id: str | None = None
    ) -> list[OAuthClient]:
        """List an owner's clients, newest first."""
        async with get_session() as session:
            query = (
                select(OAuthClient)
                .where(OAuthClient.owner_id == owner_id)
                .order_by(col(OAuthClient.created_at).desc())
            )
            if repository_id is not None:
                query = query.where(OAuthClient.repository_id == repository_id)
            result = await session.execute(query)
            return list(result.scalars().all())

    async def revoke(self, client_id: str, owner_id: str) -> bool:
        """Soft-revoke a client and drop every token issued to it.

        Returns False when the client does not exist, belongs to someone
        else, or is already revoked.
        """
        async with get_session() as session:
            result = await session.execute(
                update(OAuthClient)
                .where(
                    col(OAuthClient.client_id) == client_id,
                    col(OAuthClient.owner_id) == owner_id,
                    col(OAuthClient.revoked_at).is_(None),
                )
                .values(revoked_at=datetime.now(UTC))
            )
            if result.rowcount != 1:
                return False
            await session.execute(
                delete(OAuthToken).where(col(OAuthToken.client_id) == client_id)
            )
            await session.commit()
            return True
