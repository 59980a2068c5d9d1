"""Repository layer for database operations."""

from knowledge_gateway.db.repositories.client_repo import ClientRepository
from knowledge_gateway.db.repositories.code_repo import AuthorizationCodeRepository
from knowledge_gateway.db.repositories.repository_repo import RepositoryRepository
from knowledge_gateway.db.repositories.request_log_repo import RequestLogRepository
from knowledge_gateway.db.repositories.source_repo import SourceRepository
from knowledge_gateway.db.repositories.subscription_repo import SubscriptionRepository
from knowledge_gateway.db.repositories.token_repo import TokenRepository


__all__ = [
    "AuthorizationCodeRepository",
    "ClientRepository",
    "RepositoryRepository",
    "RequestLogRepository",
    "SourceRepository",
    "SubscriptionRepository",
    "TokenRepository",
]
