"""Principal sessions.

The dashboard that owns principal identity hands the gateway a signed
session token (HS256 JWT), either as a cookie or as a bearer token. The
gateway only verifies it and reads the subject.
"""

from datetime import UTC, datetime, timedelta

import jwt
from structlog import get_logger


logger = get_logger(__name__)


class SessionTokenHandler:
    """Issues and validates principal session tokens."""

    ALGORITHM = "HS256"
    ISSUER = "knowledge-gateway"

    def __init__(self, secret_key: str) -> None:
        """Initialize handler with the signing secret.

        Args:
            secret_key: Secret key for signing tokens (min 32 chars recommended)

        """
        if len(secret_key) < 32:
            logger.warning("session_secret_key_short", length=len(secret_key))
        self.secret_key = secret_key

    def issue(self, principal_id: str, ttl: timedelta) -> str:
        """Issue a session token for ``principal_id``."""
        now = datetime.now(UTC)
        payload = {
            "sub": principal_id,
            "iat": now,
            "exp": now + ttl,
            "iss": self.ISSUER,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.ALGORITHM)

    def verify(self, token: str) -> str:
        """Return the principal id carried by a valid token.

        Raises:
            ValueError: If token is invalid or expired

        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.ALGORITHM],
                issuer=self.ISSUER,
                options={"require": ["sub", "exp", "iss"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise ValueError("Session has expired") from e
        except jwt.InvalidTokenError as e:
            raise ValueError(f"Invalid session: {e}") from e
        return str(payload["sub"])


def extract_bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]
