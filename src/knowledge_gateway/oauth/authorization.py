"""Authorization endpoint logic (authorization code grant with PKCE)."""

from dataclasses import dataclass

import structlog

from knowledge_gateway.auth.redirects import (
    append_query,
    is_absolute_url,
    is_redirect_allowed,
)
from knowledge_gateway.auth.scopes import intersect_scopes, parse_scopes
from knowledge_gateway.auth.tokens import ChallengeMethod, TokenCodec, TokenKind
from knowledge_gateway.config.oauth import OAuthSettings
from knowledge_gateway.db.repositories import (
    AuthorizationCodeRepository,
    ClientRepository,
    RepositoryRepository,
)
from knowledge_gateway.exceptions import OAuthErrorCode, OAuthProtocolError


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AuthorizationRequest:
    """Query parameters of ``GET /authorize``."""

    client_id: str | None = None
    redirect_uri: str | None = None
    response_type: str | None = None
    scope: str | None = None
    state: str | None = None
    code_challenge: str | None = None
    code_challenge_method: str | None = None


class AuthorizationService:
    """Validates authorization requests and issues authorization codes."""

    def __init__(
        self,
        codec: TokenCodec,
        settings: OAuthSettings,
        clients: ClientRepository | None = None,
        codes: AuthorizationCodeRepository | None = None,
        repositories: RepositoryRepository | None = None,
    ) -> None:
        self.codec = codec
        self.settings = settings
        self.clients = clients or ClientRepository()
        self.codes = codes or AuthorizationCodeRepository()
        self.repositories = repositories or RepositoryRepository()

    def validate_request(self, request: AuthorizationRequest) -> None:
        """Checks that do not need an authenticated principal.

        Raises:
            OAuthProtocolError: JSON error while the redirect URI is unknown,
                redirect error afterwards
        """
        if not request.client_id:
            raise OAuthProtocolError(
                OAuthErrorCode.INVALID_REQUEST, "client_id is required"
            )
        if not request.redirect_uri:
            raise OAuthProtocolError(
                OAuthErrorCode.INVALID_REQUEST, "redirect_uri is required"
            )
        if not is_absolute_url(request.redirect_uri):
            raise OAuthProtocolError(
                OAuthErrorCode.INVALID_REQUEST, "redirect_uri must be an absolute URL"
            )

        redirect = {"redirect_uri": request.redirect_uri, "state": request.state}

        if request.response_type != "code":
            raise OAuthProtocolError(
                OAuthErrorCode.UNSUPPORTED_RESPONSE_TYPE,
                "Only response_type=code is supported",
                **redirect,
            )
        if not request.code_challenge:
            raise OAuthProtocolError(
                OAuthErrorCode.INVALID_REQUEST,
                "code_challenge is required (PKCE)",
                **redirect,
            )
        if request.code_challenge_method != ChallengeMethod.S256:
            raise OAuthProtocolError(
                OAuthErrorCode.INVALID_REQUEST,
                "code_challenge_method must be S256",
                **redirect,
            )

    async def authorize(self, request: AuthorizationRequest, principal_id: str) -> str:
        """Issue a code for an authenticated principal.

        Runs :meth:`validate_request` again so it is safe to call directly.

        Returns:
            URL to redirect the user agent to, carrying the code and state
        """
        self.validate_request(request)
        assert request.client_id and request.redirect_uri and request.code_challenge
        redirect = {"redirect_uri": request.redirect_uri, "state": request.state}

        client = await self.clients.get_active(request.client_id)
        if client is None:
            raise OAuthProtocolError(
                OAuthErrorCode.INVALID_CLIENT, "Unknown or revoked client", **redirect
            )

        repository = await self.repositories.get_owned(client.repository_id, principal_id)
        if repository is None:
            logger.warning(
                "oauth_authorize_not_owner",
                client_id=client.client_id,
                principal_id=principal_id,
            )
            raise OAuthProtocolError(
                OAuthErrorCode.ACCESS_DENIED,
                "You do not have access to this repository",
                **redirect,
            )

        # Never redirect to a URI the client did not register
        if not is_redirect_allowed(request.redirect_uri, client.redirect_uris):
            raise OAuthProtocolError(
                OAuthErrorCode.INVALID_REQUEST, "redirect_uri is not registered"
            )

        scopes = intersect_scopes(parse_scopes(request.scope), client.scopes)
        if not scopes:
            raise OAuthProtocolError(
                OAuthErrorCode.INVALID_SCOPE,
                "None of the requested scopes are granted to this client",
                **redirect,
            )

        code = self.codec.generate(TokenKind.CODE)
        await self.codes.create(
            code_hash=self.codec.hash(code),
            client_id=client.client_id,
            repository_id=repository.id,
            principal_id=principal_id,
            redirect_uri=request.redirect_uri,
            scopes=[str(s) for s in scopes],
            code_challenge=request.code_challenge,
            code_challenge_method=ChallengeMethod.S256,
            ttl=self.settings.code_lifetime,
        )
        logger.info(
            "oauth_code_issued",
            client_id=client.client_id,
            repository_id=repository.id,
            scopes=[str(s) for s in scopes],
        )
        return append_query(request.redirect_uri, {"code": code, "state": request.state})
