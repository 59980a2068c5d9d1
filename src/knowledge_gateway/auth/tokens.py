"""Credential generation, hashing and PKCE verification.

Every credential the gateway hands out is an opaque random string with a
kind prefix. Only keyed hashes are persisted, so a leaked database does
not leak usable tokens.
"""

import base64
import hashlib
import hmac
import secrets
from enum import StrEnum


class TokenKind(StrEnum):
    """Credential kinds and their prefixes."""

    CLIENT_ID = "kbgw_client_"
    CLIENT_SECRET = "kbgw_secret_"
    ACCESS = "kbgw_at_"
    REFRESH = "kbgw_rt_"
    CODE = "kbgw_code_"


class ChallengeMethod(StrEnum):
    S256 = "S256"
    PLAIN = "plain"


# Random bytes per kind; client ids are public and shorter
_ENTROPY_BYTES: dict[TokenKind, int] = {
    TokenKind.CLIENT_ID: 16,
    TokenKind.CLIENT_SECRET: 32,
    TokenKind.ACCESS: 32,
    TokenKind.REFRESH: 32,
    TokenKind.CODE: 32,
}

_REPOSITORY_SCOPED = frozenset({TokenKind.ACCESS, TokenKind.REFRESH})


class TokenCodec:
    """Generates and hashes credentials with a server-side pepper."""

    def __init__(self, pepper: str) -> None:
        if not pepper:
            raise ValueError("Token pepper must not be empty")
        self._key = pepper.encode()

    def generate(self, kind: TokenKind, repository_id: str | None = None) -> str:
        """Generate a new credential of ``kind``.

        Access and refresh tokens embed the first segment of the repository
        id after the prefix, which helps when reading logs and support tickets.
        """
        random_part = secrets.token_urlsafe(_ENTROPY_BYTES[kind])
        if kind in _REPOSITORY_SCOPED and repository_id:
            return f"{kind}{repository_id.split('-')[0]}_{random_part}"
        return f"{kind}{random_part}"

    def hash(self, token: str) -> str:
        """Deterministic keyed hash used as the storage/lookup key."""
        return hmac.new(self._key, token.encode(), hashlib.sha256).hexdigest()

    def matches(self, token: str, stored_hash: str) -> bool:
        return hmac.compare_digest(self.hash(token), stored_hash)

    @staticmethod
    def has_kind(token: str, kind: TokenKind) -> bool:
        return token.startswith(kind.value) and len(token) > len(kind.value)


def compute_code_challenge(
    verifier: str, method: ChallengeMethod = ChallengeMethod.S256
) -> str:
    """Derive the PKCE challenge for ``verifier`` (RFC 7636 section 4.2)."""
    if method == ChallengeMethod.PLAIN:
        return verifier
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def verify_code_challenge(verifier: str, challenge: str, method: str) -> bool:
    """Check a PKCE verifier against the stored challenge.

    Unknown methods and non-ASCII verifiers never verify.
    """
    try:
        challenge_method = ChallengeMethod(method)
        expected = compute_code_challenge(verifier, challenge_method)
    except (ValueError, UnicodeEncodeError):
        return False
    return hmac.compare_digest(expected, challenge)
