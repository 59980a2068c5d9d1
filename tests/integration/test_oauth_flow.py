"""End-to-end OAuth flows through the HTTP API."""

from urllib.parse import parse_qs, urlsplit

import pytest

from knowledge_gateway.auth import compute_code_challenge


pytestmark = pytest.mark.integration

VERIFIER = "integration-code-verifier-with-enough-entropy-0123456789"
REDIRECT_URI = "https://app.example.com/callback"


async def register_client(client, session_headers, repository_id: str) -> dict:
    response = await client.post(
        "/clients",
        json={
            "repository_id": repository_id,
            "name": "Desktop assistant",
            "redirect_uris": [REDIRECT_URI],
        },
        headers=session_headers("owner-1"),
    )
    assert response.status_code == 201, response.text
    return response.json()


def authorize_params(client_id: str, **overrides) -> dict:
    params = {
        "client_id": client_id,
        "redirect_uri": REDIRECT_URI,
        "response_type": "code",
        "scope": "search list_sources get_info",
        "state": "state-123",
        "code_challenge": compute_code_challenge(VERIFIER),
        "code_challenge_method": "S256",
    }
    params.update(overrides)
    return params


async def obtain_code(client, session_headers, client_id: str) -> str:
    response = await client.get(
        "/authorize", params=authorize_params(client_id), headers=session_headers("owner-1")
    )
    assert response.status_code == 302, response.text
    location = response.headers["location"]
    assert location.startswith(REDIRECT_URI)
    query = parse_qs(urlsplit(location).query)
    assert query["state"] == ["state-123"]
    return query["code"][0]


async def exchange(client, client_id: str, code: str):
    return await client.post(
        "/token",
        data={
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": REDIRECT_URI,
            "client_id": client_id,
            "code_verifier": VERIFIER,
        },
    )


class TestAuthorizationCodeFlow:
    """Register, authorize, exchange, call, refresh and revoke."""

    @pytest.mark.asyncio
    async def test_full_flow(self, client, session_headers, create_repository):
        repository = await create_repository()
        registration = await register_client(client, session_headers, repository.id)
        assert registration["mcp_url"] == "http://testserver/mcp/handbook"
        client_id = registration["client_id"]

        code = await obtain_code(client, session_headers, client_id)

        response = await exchange(client, client_id, code)
        assert response.status_code == 200, response.text
        assert response.headers["cache-control"] == "no-store"
        tokens = response.json()
        assert tokens["token_type"] == "Bearer"
        assert tokens["expires_in"] == 3600
        assert tokens["scope"] == "search list_sources get_info"

        response = await client.post(
            "/mcp/handbook",
            json={"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}},
            headers={"Authorization": f"Bearer {tokens['access_token']}"},
        )
        assert response.status_code == 200
        assert response.json()["result"]["protocolVersion"] == "2024-11-05"

        # Refresh rotates the pair; the old refresh token stops working
        response = await client.post(
            "/token",
            data={"grant_type": "refresh_token", "refresh_token": tokens["refresh_token"]},
        )
        assert response.status_code == 200, response.text
        rotated = response.json()
        assert rotated["refresh_token"] != tokens["refresh_token"]

        response = await client.post(
            "/token",
            data={"grant_type": "refresh_token", "refresh_token": tokens["refresh_token"]},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_grant"

        response = await client.post(
            "/mcp/handbook",
            json={"jsonrpc": "2.0", "id": 2, "method": "ping"},
            headers={"Authorization": f"Bearer {tokens['access_token']}"},
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_code_cannot_be_exchanged_twice(
        self, client, session_headers, create_repository
    ):
        repository = await create_repository()
        client_id = (await register_client(client, session_headers, repository.id))["client_id"]
        code = await obtain_code(client, session_headers, client_id)

        first = await exchange(client, client_id, code)
        second = await exchange(client, client_id, code)

        assert first.status_code == 200
        assert second.status_code == 400
        assert second.json() == {
            "error": "invalid_grant",
            "error_description": "Invalid or already used authorization code",
        }

    @pytest.mark.asyncio
    async def test_token_endpoint_accepts_json(
        self, client, session_headers, create_repository
    ):
        repository = await create_repository()
        client_id = (await register_client(client, session_headers, repository.id))["client_id"]
        code = await obtain_code(client, session_headers, client_id)

        response = await client.post(
            "/token",
            json={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": REDIRECT_URI,
                "client_id": client_id,
                "code_verifier": VERIFIER,
            },
        )
        assert response.status_code == 200, response.text

    @pytest.mark.asyncio
    async def test_revoke_then_gateway_rejects(
        self, client, session_headers, create_repository
    ):
        repository = await create_repository()
        client_id = (await register_client(client, session_headers, repository.id))["client_id"]
        code = await obtain_code(client, session_headers, client_id)
        tokens = (await exchange(client, client_id, code)).json()

        response = await client.post("/revoke", data={"token": tokens["access_token"]})
        assert response.status_code == 200

        response = await client.post(
            "/mcp/handbook",
            json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"},
            headers={"Authorization": f"Bearer {tokens['access_token']}"},
        )
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"
        assert response.json()["error"]["code"] == -32000

        response = await client.post("/revoke", data={"token": tokens["access_token"]})
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_revoke_requires_token(self, client):
        response = await client.post("/revoke", data={})
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_request"


class TestAuthorizeEndpoint:
    @pytest.mark.asyncio
    async def test_anonymous_user_sent_to_login(
        self, client, session_headers, create_repository
    ):
        repository = await create_repository()
        client_id = (await register_client(client, session_headers, repository.id))["client_id"]

        response = await client.get("/authorize", params=authorize_params(client_id))

        assert response.status_code == 302
        location = response.headers["location"]
        assert location.startswith("/login?returnTo=")
        return_to = parse_qs(urlsplit(location).query)["returnTo"][0]
        assert return_to.startswith("http://testserver/authorize?")

    @pytest.mark.asyncio
    async def test_missing_client_id_is_json_error(self, client):
        response = await client.get("/authorize", params={"redirect_uri": REDIRECT_URI})
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_request"

    @pytest.mark.asyncio
    async def test_plain_pkce_redirects_with_error(self, client):
        response = await client.get(
            "/authorize",
            params=authorize_params("kbgw_client_x", code_challenge_method="plain"),
        )
        assert response.status_code == 302
        query = parse_qs(urlsplit(response.headers["location"]).query)
        assert query["error"] == ["invalid_request"]
        assert query["state"] == ["state-123"]

    @pytest.mark.asyncio
    async def test_revoked_client(self, client, session_headers, create_repository):
        repository = await create_repository()
        client_id = (await register_client(client, session_headers, repository.id))["client_id"]
        code = await obtain_code(client, session_headers, client_id)

        response = await client.delete(
            f"/clients/{client_id}", headers=session_headers("owner-1")
        )
        assert response.status_code == 204

        response = await client.get(
            "/authorize", params=authorize_params(client_id), headers=session_headers("owner-1")
        )
        assert response.status_code == 302
        assert parse_qs(urlsplit(response.headers["location"]).query)["error"] == [
            "invalid_client"
        ]

        response = await exchange(client, client_id, code)
        assert response.status_code == 401
        assert response.json()["error"] == "invalid_client"

    @pytest.mark.asyncio
    async def test_consent_denied(self, client):
        response = await client.post(
            "/authorize",
            data={"redirect_uri": REDIRECT_URI, "state": "s1", "approve": "false"},
        )
        assert response.status_code == 302
        query = parse_qs(urlsplit(response.headers["location"]).query)
        assert query["error"] == ["access_denied"]
        assert query["state"] == ["s1"]

    @pytest.mark.asyncio
    async def test_consent_approved_resumes_flow(self, client):
        response = await client.post(
            "/authorize",
            data={**authorize_params("kbgw_client_x"), "approve": "true"},
        )
        assert response.status_code == 302
        location = response.headers["location"]
        assert location.startswith("/authorize?")
        assert parse_qs(urlsplit(location).query)["client_id"] == ["kbgw_client_x"]


class TestTokenEndpoint:
    @pytest.mark.asyncio
    async def test_unsupported_grant_type(self, client):
        response = await client.post("/token", data={"grant_type": "password"})
        assert response.status_code == 400
        assert response.json()["error"] == "unsupported_grant_type"

    @pytest.mark.asyncio
    async def test_missing_grant_type(self, client):
        response = await client.post("/token", data={"code": "x"})
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_request"

    @pytest.mark.asyncio
    async def test_unsupported_content_type(self, client):
        response = await client.post(
            "/token", content=b"grant_type=x", headers={"Content-Type": "text/plain"}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_request"


class TestClientsApi:
    @pytest.mark.asyncio
    async def test_requires_session(self, client):
        response = await client.get("/clients")
        assert response.status_code == 401
        assert response.json()["error"]["type"] == "authentication_error"

    @pytest.mark.asyncio
    async def test_register_for_foreign_repository(
        self, client, session_headers, create_repository
    ):
        repository = await create_repository()
        response = await client.post(
            "/clients",
            json={"repository_id": repository.id, "name": "Mine"},
            headers=session_headers("someone-else"),
        )
        assert response.status_code == 403
        assert response.json()["error"] == "access_denied"

    @pytest.mark.asyncio
    async def test_register_invalid_body(self, client, session_headers):
        response = await client.post(
            "/clients", json={"name": "No repository"}, headers=session_headers("owner-1")
        )
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_request"

    @pytest.mark.asyncio
    async def test_list_hides_secrets(self, client, session_headers, create_repository):
        repository = await create_repository()
        registration = await register_client(client, session_headers, repository.id)

        response = await client.get(
            "/clients",
            params={"repository_id": repository.id},
            headers=session_headers("owner-1"),
        )

        assert response.status_code == 200
        (listed,) = response.json()
        assert listed["client_id"] == registration["client_id"]
        assert "client_secret" not in listed
        assert listed["revoked"] is False

    @pytest.mark.asyncio
    async def test_revoke_unknown_client(self, client, session_headers):
        response = await client.delete(
            "/clients/kbgw_client_nope", headers=session_headers("owner-1")
        )
        assert response.status_code == 404


class TestDiscovery:
    @pytest.mark.asyncio
    async def test_server_metadata(self, client):
        response = await client.get("/.well-known/oauth-authorization-server")

        assert response.status_code == 200
        assert response.headers["cache-control"] == "public, max-age=3600"
        metadata = response.json()
        assert metadata["issuer"] == "http://testserver"
        assert metadata["token_endpoint"] == "http://testserver/token"
        assert metadata["code_challenge_methods_supported"] == ["S256"]
        assert metadata["scopes_supported"] == ["search", "list_sources", "get_info"]

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert "x-request-id" in response.headers
