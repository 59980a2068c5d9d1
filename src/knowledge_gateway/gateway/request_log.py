"""Request logging for gateway calls.

Entries are written after the response has been sent. A failed write is
logged and dropped; it never affects the caller.
"""

from dataclasses import dataclass

import structlog
from sqlalchemy.exc import SQLAlchemyError

from knowledge_gateway.db.models import RequestLog
from knowledge_gateway.db.repositories import RequestLogRepository


logger = structlog.get_logger(__name__)

MAX_QUERY_LENGTH = 1000
MAX_USER_AGENT_LENGTH = 512


@dataclass
class RequestLogEntry:
    repository_id: str
    method: str
    status_code: int
    duration_ms: int
    client_id: str | None = None
    query: str | None = None
    error_message: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None


class RequestLogWriter:
    def __init__(self, repository: RequestLogRepository | None = None) -> None:
        self.repository = repository or RequestLogRepository()

    async def write(self, entry: RequestLogEntry) -> None:
        record = RequestLog(
            repository_id=entry.repository_id,
            client_id=entry.client_id,
            method=entry.method,
            query=entry.query[:MAX_QUERY_LENGTH] if entry.query else None,
            duration_ms=entry.duration_ms,
            status_code=entry.status_code,
            error_message=entry.error_message,
            ip_address=entry.ip_address,
            user_agent=entry.user_agent[:MAX_USER_AGENT_LENGTH] if entry.user_agent else None,
        )
        try:
            await self.repository.append(record)
        except (SQLAlchemyError, OSError, RuntimeError) as e:
            logger.warning(
                "request_log_write_failed",
                repository_id=entry.repository_id,
                method=entry.method,
                error=str(e),
            )
