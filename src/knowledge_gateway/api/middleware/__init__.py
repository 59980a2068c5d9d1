"""API middleware for the knowledge gateway."""

from knowledge_gateway.api.middleware.cors import get_cors_config, setup_cors_middleware
from knowledge_gateway.api.middleware.errors import setup_error_handlers
from knowledge_gateway.api.middleware.logging import AccessLogMiddleware
from knowledge_gateway.api.middleware.request_id import RequestIDMiddleware


__all__ = [
    "AccessLogMiddleware",
    "RequestIDMiddleware",
    "get_cors_config",
    "setup_cors_middleware",
    "setup_error_handlers",
]
