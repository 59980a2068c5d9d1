"""Authorization code repository for database operations."""

from datetime import UTC, datetime, timedelta

from sqlalchemy import delete, update
from sqlmodel import col, select

from knowledge_gateway.db.engine import get_session
from knowledge_gateway.db.models import AuthorizationCode


class AuthorizationCodeRepository:
    """Repository for single-use authorization codes."""

    async def create(
        self,
        *,
        code_hash: str,
        client_id: str,
        repository_id: str,
        principal_id: str,
        redirect_uri: str,
        scopes: list[str],
        code_challenge: str,
        code_challenge_method: str,
        ttl: timedelta,
    ) -> AuthorizationCode:
        """Store a new authorization code."""
        now = datetime.now(UTC)
        async with get_session() as session:
            code = AuthorizationCode(
                code_hash=code_hash,
                client_id=client_id,
                repository_id=repository_id,
                principal_id=principal_id,
                redirect_uri=redirect_uri,
                scopes=scopes,
                code_challenge=code_challenge,
                code_challenge_method=code_challenge_method,
                created_at=now,
                expires_at=now + ttl,
            )
            session.add(code)
            await session.commit()
            await session.refresh(code)
            return code

    async def get_by_hash(self, code_hash: str) -> AuthorizationCode | None:
        """Get a code by hash regardless of expiry or use."""
        async with get_session() as session:
            result = await session.execute(
                select(AuthorizationCode).where(AuthorizationCode.code_hash == code_hash)
            )
            return result.scalar_one_or_none()

    async def consume(self, code_id: str) -> bool:
        """Mark a code used. Returns True only for the caller that flipped it."""
        async with get_session() as session:
            result = await session.execute(
                update(AuthorizationCode)
                .where(
                    col(AuthorizationCode.id) == code_id,
                    col(AuthorizationCode.used_at).is_(None),
                )
                .values(used_at=datetime.now(UTC))
            )
            await session.commit()
            return result.rowcount == 1

    async def cleanup_expired(self) -> int:
        """Delete all expired codes. Returns count deleted."""
        async with get_session() as session:
            result = await session.execute(
                delete(AuthorizationCode).where(
                    col(AuthorizationCode.expires_at) <= datetime.now(UTC)
                )
            )
            await session.commit()
            return result.rowcount or 0
