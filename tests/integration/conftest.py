"""Fixtures driving the full application through its lifespan."""

from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import timedelta
from pathlib import Path
from typing import Any

import httpx
import pytest
from fastapi import FastAPI

from knowledge_gateway.api import create_app
from knowledge_gateway.auth import SessionTokenHandler
from knowledge_gateway.config import Settings
from knowledge_gateway.db.models import PricingModel, Repository, Visibility
from knowledge_gateway.db.repositories import RepositoryRepository
from knowledge_gateway.services.search import HttpSearchBackend


SESSION_SECRET = "integration-session-secret-0123456789"
WEBHOOK_SECRET = "whsec_integration"
SEARCH_URL = "http://search.test/v1/search"
BASE_URL = "http://testserver"


def search_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "results": [
                {
                    "content": "Employees get 25 days of leave.",
                    "similarity": 0.91,
                    "source_name": "handbook.pdf",
                }
            ]
        },
    )


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        server={"public_url": BASE_URL},
        database={"path": tmp_path / "gateway.db"},
        security={
            "token_pepper": "integration-pepper",
            "session_secret": SESSION_SECRET,
        },
        search={"url": SEARCH_URL},
        billing={"webhook_secret": WEBHOOK_SECRET},
    )


@pytest.fixture
async def app(settings: Settings) -> AsyncIterator[FastAPI]:
    """Application with services started and the search backend mocked."""
    application = create_app(settings)
    async with application.router.lifespan_context(application):
        tools = application.state.dispatcher.tools
        await tools.search_backend.aclose()
        tools.search_backend = HttpSearchBackend(
            SEARCH_URL,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(search_handler)),
        )
        yield application


@pytest.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as http:
        yield http


@pytest.fixture
def session_headers() -> Callable[[str], dict[str, str]]:
    """Authorization header carrying a principal session token."""
    handler = SessionTokenHandler(SESSION_SECRET)

    def build(principal_id: str) -> dict[str, str]:
        token = handler.issue(principal_id, timedelta(hours=1))
        return {"Authorization": f"Bearer {token}"}

    return build


@pytest.fixture
def create_repository(app: FastAPI) -> Callable[..., Awaitable[Repository]]:
    async def factory(slug: str = "handbook", **overrides: Any) -> Repository:
        values: dict[str, Any] = {
            "owner_id": "owner-1",
            "name": "Handbook",
            "slug": slug,
            "description": "Company handbook",
            "visibility": Visibility.PUBLIC,
            "pricing_model": PricingModel.FREE,
            "gateway_enabled": True,
        }
        values.update(overrides)
        return await RepositoryRepository().create(**values)

    return factory
