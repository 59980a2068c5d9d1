"""Knowledge Gateway: OAuth-protected MCP access to content repositories."""

from knowledge_gateway._version import __version__


__all__ = ["__version__"]
