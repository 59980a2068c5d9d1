"""OAuth token repository for database operations.

Only hashes are stored. Lookups used for authentication join the issuing
client so that revoking a client invalidates its tokens immediately.
"""

from datetime import UTC, datetime

from sqlalchemy import delete, update
from sqlmodel import col, select

from knowledge_gateway.db.engine import get_session
from knowledge_gateway.db.models import OAuthClient, OAuthToken


class TokenRepository:
    """Repository for issued access/refresh token pairs."""

    async def create(
        self,
        *,
        client_id: str,
        repository_id: str,
        principal_id: str,
        access_token_hash: str,
        refresh_token_hash: str | None,
        scopes: list[str],
        expires_at: datetime,
        refresh_expires_at: datetime | None,
        subscription_id: str | None = None,
    ) -> OAuthToken:
        """Store a new token pair."""
        async with get_session() as session:
            token = OAuthToken(
                client_id=client_id,
                repository_id=repository_id,
                principal_id=principal_id,
                access_token_hash=access_token_hash,
                refresh_token_hash=refresh_token_hash,
                scopes=scopes,
                expires_at=expires_at,
                refresh_expires_at=refresh_expires_at,
                subscription_id=subscription_id,
            )
            session.add(token)
            await session.commit()
            await session.refresh(token)
            return token

    async def get_by_access_hash(self, access_token_hash: str) -> OAuthToken | None:
        """Get a token whose client is still active."""
        async with get_session() as session:
            result = await session.execute(
                select(OAuthToken)
                .join(
                    OAuthClient,
                    col(OAuthClient.client_id) == col(OAuthToken.client_id),
                )
                .where(
                    OAuthToken.access_token_hash == access_token_hash,
                    col(OAuthClient.revoked_at).is_(None),
                )
            )
            return result.scalar_one_or_none()

    async def get_by_refresh_hash(self, refresh_token_hash: str) -> OAuthToken | None:
        async with get_session() as session:
            result = await session.execute(
                select(OAuthToken).where(
                    OAuthToken.refresh_token_hash == refresh_token_hash
                )
            )
            return result.scalar_one_or_none()

    async def rotate(
        self,
        token_id: str,
        *,
        old_refresh_hash: str,
        access_token_hash: str,
        refresh_token_hash: str,
        expires_at: datetime,
        refresh_expires_at: datetime,
    ) -> bool:
        """Replace both hashes if the refresh token is still the current one.

        Returns False when another request rotated the pair first.
        """
        async with get_session() as session:
            result = await session.execute(
                update(OAuthToken)
                .where(
                    col(OAuthToken.id) == token_id,
                    col(OAuthToken.refresh_token_hash) == old_refresh_hash,
                )
                .values(
                    access_token_hash=access_token_hash,
                    refresh_token_hash=refresh_token_hash,
                    expires_at=expires_at,
                    refresh_expires_at=refresh_expires_at,
                    last_used_at=datetime.now(UTC),
                )
            )
            await session.commit()
            return result.rowcount == 1

    async def touch(self, token_id: str) -> None:
        """Record that a token was just used."""
        async with get_session() as session:
            await session.execute(
                update(OAuthToken)
                .where(col(OAuthToken.id) == token_id)
                .values(last_used_at=datetime.now(UTC))
            )
            await session.commit()

    async def set_subscription(self, token_id: str, subscription_id: str) -> None:
        async with get_session() as session:
            await session.execute(
                update(OAuthToken)
                .where(col(OAuthToken.id) == token_id)
                .values(subscription_id=subscription_id)
            )
            await session.commit()

    async def delete(self, token_id: str) -> bool:
        async with get_session() as session:
            result = await session.execute(
                delete(OAuthToken).where(col(OAuthToken.id) == token_id)
            )
            await session.commit()
            return result.rowcount == 1

    async def delete_by_access_hash(self, access_token_hash: str) -> bool:
        async with get_session() as session:
            result = await session.execute(
                delete(OAuthToken).where(
                    col(OAuthToken.access_token_hash) == access_token_hash
                )
            )
            await session.commit()
            return bool(result.rowcount)

    async def delete_by_refresh_hash(self, refresh_token_hash: str) -> bool:
        async with get_session() as session:
            result = await session.execute(
                delete(OAuthToken).where(
                    col(OAuthToken.refresh_token_hash) == refresh_token_hash
                )
            )
            await session.commit()
            return bool(result.rowcount)

    async def cleanup_expired(self) -> int:
        """Delete pairs that can no longer be used or refreshed. Returns count deleted."""
        now = datetime.now(UTC)
        async with get_session() as session:
            result = await session.execute(
                delete(OAuthToken).where(
                    col(OAuthToken.expires_at) <= now,
                    (col(OAuthToken.refresh_expires_at).is_(None))
                    | (col(OAuthToken.refresh_expires_at) <= now),
                )
            )
            await session.commit()
            return result.rowcount or 0
