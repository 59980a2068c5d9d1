"""HTTP API for the knowledge gateway."""

from knowledge_gateway.api.app import create_app, get_app


__all__ = ["create_app", "get_app"]
