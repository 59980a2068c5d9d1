"""Content repository records (owned by the dashboard, read by the gateway)."""

from datetime import UTC, datetime

from sqlalchemy import delete as sa_delete
from sqlmodel import col, select

from knowledge_gateway.db.engine import get_session
from knowledge_gateway.db.models import (
    AuthorizationCode,
    OAuthClient,
    OAuthToken,
    PricingModel,
    Repository,
    RequestLog,
    Source,
    Subscription,
    Visibility,
)


class RepositoryRepository:
    """Repository for content repository lookups."""

    async def create(
        self,
        *,
        owner_id: str,
        name: str,
        slug: str,
        description: str | None = None,
        visibility: Visibility = Visibility.PRIVATE,
        pricing_model: PricingModel = PricingModel.FREE,
        price_cents: int | None = None,
        gateway_enabled: bool = False,
    ) -> Repository:
        """Create a repository."""
        async with get_session() as session:
            repository = Repository(
                owner_id=owner_id,
                name=name,
                slug=slug,
                description=description,
                visibility=visibility,
                pricing_model=pricing_model,
                price_cents=price_cents,
                gateway_enabled=gateway_enabled,
            )
            session.add(repository)
            await session.commit()
            await session.refresh(repository)
            return repository

    async def get(self, repository_id: str) -> Repository | None:
        async with get_session() as session:
            return await session.get(Repository, repository_id)

    async def get_by_slug(self, slug: str) -> Repository | None:
        async with get_session() as session:
            result = await session.execute(
                select(Repository).where(Repository.slug == slug)
            )
            return result.scalar_one_or_none()

    async def get_served_by_slug(self, slug: str) -> Repository | None:
        """Get a repository by slug only if the gateway is enabled for it."""
        async with get_session() as session:
            result = await session.execute(
                select(Repository).where(
                    Repository.slug == slug,
                    col(Repository.gateway_enabled).is_(True),
                )
            )
            return result.scalar_one_or_none()

    async def get_owned(self, repository_id: str, owner_id: str) -> Repository | None:
        """Get a repository if it belongs to ``owner_id``."""
        async with get_session() as session:
            result = await session.execute(
                select(Repository).where(
                    Repository.id == repository_id,
                    Repository.owner_id == owner_id,
                )
            )
            return result.scalar_one_or_none()

    async def list_all(self, owner_id: str | None = None) -> list[Repository]:
        async with get_session() as session:
            query = select(Repository).order_by(col(Repository.created_at).desc())
            if owner_id is not None:
                query = query.where(Repository.owner_id == owner_id)
            result = await session.execute(query)
            return list(result.scalars().all())

    async def set_gateway_enabled(self, slug: str, enabled: bool) -> Repository | None:
        async with get_session() as session:
            result = await session.execute(
                select(Repository).where(Repository.slug == slug)
            )
            repository = result.scalar_one_or_none()
            if repository is None:
                return None
            repository.gateway_enabled = enabled
            repository.updated_at = datetime.now(UTC)
            session.add(repository)
            await session.commit()
            await session.refresh(repository)
            return repository

    async def delete(self, repository_id: str) -> bool:
        """Delete a repository and everything issued against it."""
        async with get_session() as session:
            repository = await session.get(Repository, repository_id)
            if repository is None:
                return False
            for model in (
                OAuthToken,
                AuthorizationCode,
                OAuthClient,
                Subscription,
                Source,
                RequestLog,
            ):
                await session.execute(
                    sa_delete(model).where(col(model.repository_id) == repository_id)
                )
            await session.delete(repository)
            await session.commit()
            return True
