"""Credential primitives: tokens, scopes, redirect rules and sessions."""

from knowledge_gateway.auth.redirects import (
    append_query,
    is_absolute_url,
    is_redirect_allowed,
)
from knowledge_gateway.auth.scopes import (
    ALL_SCOPES,
    DEFAULT_SCOPES,
    Scope,
    filter_scopes,
    format_scopes,
    intersect_scopes,
    parse_scopes,
)
from knowledge_gateway.auth.sessions import SessionTokenHandler, extract_bearer_token
from knowledge_gateway.auth.tokens import (
    ChallengeMethod,
    TokenCodec,
    TokenKind,
    compute_code_challenge,
    verify_code_challenge,
)


__all__ = [
    "ALL_SCOPES",
    "DEFAULT_SCOPES",
    "ChallengeMethod",
    "Scope",
    "SessionTokenHandler",
    "TokenCodec",
    "TokenKind",
    "append_query",
    "compute_code_challenge",
    "extract_bearer_token",
    "filter_scopes",
    "format_scopes",
    "intersect_scopes",
    "is_absolute_url",
    "is_redirect_allowed",
    "parse_scopes",
    "verify_code_challenge",
]
