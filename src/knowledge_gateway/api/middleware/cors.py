"""CORS middleware setup."""

from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from structlog import get_logger

from knowledge_gateway.config.settings import Settings


logger = get_logger(__name__)


def get_cors_config(settings: Settings) -> dict[str, Any]:
    """Keyword arguments for Starlette's CORSMiddleware."""
    cors = settings.cors
    return {
        "allow_origins": cors.origins,
        "allow_credentials": cors.credentials,
        "allow_methods": cors.methods,
        "allow_headers": cors.headers,
        "expose_headers": cors.expose_headers,
        "max_age": cors.max_age,
    }


def setup_cors_middleware(app: FastAPI, settings: Settings) -> None:
    config = get_cors_config(settings)
    app.add_middleware(CORSMiddleware, **config)
    logger.debug(
        "cors_middleware_configured",
        origins=config["allow_origins"],
        credentials=config["allow_credentials"],
    )
