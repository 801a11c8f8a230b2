"""
Tests for the OAuth2 authorization and token endpoints.
"""

from dataclasses import dataclass

import pytest

from authgate.errors import AuthorizationException, ErrorCode, ErrorResponse
from authgate.http import RequestContext, ResponseContext
from authgate.oauth2 import AuthorizationServer, AuthorizationTokenResponse
from authgate.util import encode_basic_credentials

REDIRECT_URI = "https://app.example.com/callback"


@dataclass
class Client:
    id: str
    secret: str


CLIENTS = {"client1": Client("client1", "secret1")}


class BareServer(AuthorizationServer):
    """Knows its clients but supports no grants"""

    async def find_client(self, client_id):
        return CLIENTS.get(client_id)

    async def verify_client(self, client, client_secret):
        return client.secret == client_secret


class ExampleServer(BareServer):
    """Supports every built-in grant plus one extension grant"""

    def __init__(self):
        self.calls = []

    @property
    def extension_grants(self):
        return {"urn:example:device": self.device_grant}

    async def device_grant(self, req, res):
        body = await req.parse_body()
        return AuthorizationTokenResponse(f"device-{body.get('device_code')}")

    async def request_authorization_code(self, client, redirect_uri, scopes, state, req, res):
        self.calls.append(("code", client.id, redirect_uri, scopes, state))
        return {"consent": client.id, "scopes": scopes}

    async def implicit_grant(self, client, redirect_uri, scopes, state, req, res):
        return AuthorizationTokenResponse("implicit-token", expires_in=3600, scope=scopes)

    async def exchange_authorization_code_for_token(self, auth_code, redirect_uri, req, res):
        if auth_code == "boom":
            raise RuntimeError("database unavailable")
        return AuthorizationTokenResponse(f"access-{auth_code}", refresh_token="refresh-1")

    async def refresh_authorization_token(self, client, refresh_token, scopes, req, res):
        self.calls.append(("refresh", client.id, refresh_token, scopes))
        return AuthorizationTokenResponse("refreshed", scope=scopes)

    async def resource_owner_password_credentials_grant(
        self, client, username, password, scopes, req, res
    ):
        if (username, password) != ("alice", "wonderland"):
            body = await req.parse_body()
            raise AuthorizationException(
                ErrorResponse(ErrorCode.ACCESS_DENIED, "Invalid credentials.", body.get("state", "")),
                status_code=401,
            )
        return AuthorizationTokenResponse("password-token", refresh_token="refresh-2", expires_in=60)

    async def client_credentials_grant(self, client, req, res):
        return AuthorizationTokenResponse(f"client-{client.id}", refresh_token="must-be-dropped")


def authorize_request(**query):
    return RequestContext(method="GET", path="/oauth2/authorize", query=query)


def token_request(body, client_id="client1", client_secret="secret1"):
    headers = {}
    if client_id is not None:
        headers["Authorization"] = encode_basic_credentials(client_id, client_secret)
    return RequestContext(method="POST", path="/oauth2/token", headers=headers, body=body)


@pytest.fixture
def server():
    return ExampleServer()


class TestAuthorizationEndpoint:
    """Test response_type=code and response_type=token"""

    @pytest.mark.asyncio
    async def test_authorization_code_request(self, server):
        req = authorize_request(
            response_type="code",
            client_id="client1",
            redirect_uri=REDIRECT_URI,
            scope="read  write",
            state="xyz",
        )

        result = await server.authorization_endpoint(req, ResponseContext())

        assert result == {"consent": "client1", "scopes": ["read", "write"]}
        assert server.calls == [("code", "client1", REDIRECT_URI, ["read", "write"], "xyz")]

    @pytest.mark.asyncio
    async def test_unknown_client(self, server):
        req = authorize_request(
            response_type="code", client_id="nobody", redirect_uri=REDIRECT_URI, state="xyz"
        )

        with pytest.raises(AuthorizationException) as exc_info:
            await server.authorization_endpoint(req, ResponseContext())

        error = exc_info.value
        assert error.code is ErrorCode.UNAUTHORIZED_CLIENT
        assert error.status_code == 400
        assert error.to_dict() == {
            "error": "unauthorized_client",
            "error_description": 'Unknown client "nobody".',
            "state": "xyz",
        }

    @pytest.mark.asyncio
    async def test_missing_response_type(self, server):
        with pytest.raises(AuthorizationException) as exc_info:
            await server.authorization_endpoint(authorize_request(state="s1"), ResponseContext())

        assert exc_info.value.code is ErrorCode.INVALID_REQUEST
        assert exc_info.value.message == 'Missing required parameter "response_type".'
        assert exc_info.value.state == "s1"

    @pytest.mark.asyncio
    async def test_invalid_response_type(self, server):
        req = authorize_request(response_type="id_token", client_id="client1")

        with pytest.raises(AuthorizationException) as exc_info:
            await server.authorization_endpoint(req, ResponseContext())

        assert exc_info.value.code is ErrorCode.INVALID_REQUEST
        assert exc_info.value.message == 'Invalid or no "response_type" parameter provided'

    @pytest.mark.asyncio
    async def test_missing_redirect_uri(self, server):
        req = authorize_request(response_type="code", client_id="client1")

        with pytest.raises(AuthorizationException) as exc_info:
            await server.authorization_endpoint(req, ResponseContext())

        assert exc_info.value.message == 'Missing required parameter "redirect_uri".'

    @pytest.mark.asyncio
    async def test_implicit_grant_redirect(self, server):
        req = authorize_request(
            response_type="token",
            client_id="client1",
            redirect_uri=REDIRECT_URI,
            scope="read write",
            state="a b&c",
        )
        res = ResponseContext()

        assert await server.authorization_endpoint(req, res) is None

        assert res.status == 302
        assert res.location == (
            REDIRECT_URI
            + "#access_token=implicit-token&token_type=bearer&state=a%20b%26c"
            + "&expires_in=3600&scope=read%20write"
        )

    @pytest.mark.asyncio
    async def test_implicit_grant_keeps_redirect_query(self, server):
        req = authorize_request(
            response_type="token",
            client_id="client1",
            redirect_uri="https://app.example.com/cb?lang=en",
        )
        res = ResponseContext()

        await server.authorization_endpoint(req, res)

        assert res.location.startswith("https://app.example.com/cb?lang=en#access_token=implicit-token")

    @pytest.mark.parametrize("redirect_uri", ["not a uri", "https://app.example.com:99999/cb"])
    @pytest.mark.asyncio
    async def test_implicit_grant_invalid_redirect_uri(self, server, redirect_uri):
        req = authorize_request(response_type="token", client_id="client1", redirect_uri=redirect_uri)

        with pytest.raises(AuthorizationException) as exc_info:
            await server.authorization_endpoint(req, ResponseContext())

        assert exc_info.value.message == 'Invalid URI provided as "redirect_uri" parameter'

    @pytest.mark.asyncio
    async def test_unsupported_by_default(self):
        req = authorize_request(response_type="token", client_id="client1", redirect_uri=REDIRECT_URI)

        with pytest.raises(AuthorizationException) as exc_info:
            await BareServer().authorization_endpoint(req, ResponseContext())

        assert exc_info.value.code is ErrorCode.UNSUPPORTED_RESPONSE_TYPE
        assert exc_info.value.status_code == 400


class TestTokenEndpoint:
    """Test grant_type dispatch"""

    @pytest.mark.asyncio
    async def test_password_grant(self, server):
        req = token_request({"grant_type": "password", "username": "alice", "password": "wonderland"})

        result = await server.token_endpoint(req, ResponseContext())

        assert result == {
            "token_type": "bearer",
            "access_token": "password-token",
            "refresh_token": "refresh-2",
            "expires_in": 60,
        }

    @pytest.mark.asyncio
    async def test_password_grant_rejected_by_hook(self, server):
        req = token_request(
            {"grant_type": "password", "username": "alice", "password": "nope", "state": "s2"}
        )

        with pytest.raises(AuthorizationException) as exc_info:
            await server.token_endpoint(req, ResponseContext())

        assert exc_info.value.status_code == 401
        assert exc_info.value.to_dict()["state"] == "s2"

    @pytest.mark.asyncio
    async def test_password_grant_missing_username(self, server):
        with pytest.raises(AuthorizationException) as exc_info:
            await server.token_endpoint(
                token_request({"grant_type": "password", "password": "x"}), ResponseContext()
            )

        assert exc_info.value.message == 'Missing required parameter "username".'

    @pytest.mark.asyncio
    async def test_missing_client_credentials(self, server):
        req = token_request({"grant_type": "client_credentials"}, client_id=None)

        with pytest.raises(AuthorizationException) as exc_info:
            await server.token_endpoint(req, ResponseContext())

        assert exc_info.value.code is ErrorCode.UNAUTHORIZED_CLIENT
        assert exc_info.value.message == 'Invalid or no "Authorization" header.'

    @pytest.mark.asyncio
    async def test_refresh_token_requires_client_auth(self, server):
        req = token_request({"grant_type": "refresh_token", "refresh_token": "r1"}, client_id=None)

        with pytest.raises(AuthorizationException) as exc_info:
            await server.token_endpoint(req, ResponseContext())

        assert exc_info.value.code is ErrorCode.UNAUTHORIZED_CLIENT
        assert exc_info.value.status_code == 400
        assert server.calls == []

    @pytest.mark.asyncio
    async def test_unknown_client_id(self, server):
        req = token_request({"grant_type": "client_credentials"}, client_id="nobody")

        with pytest.raises(AuthorizationException) as exc_info:
            await server.token_endpoint(req, ResponseContext())

        assert exc_info.value.message == 'Invalid "client_id" parameter.'

    @pytest.mark.asyncio
    async def test_wrong_client_secret(self, server):
        req = token_request({"grant_type": "client_credentials"}, client_secret="wrong")

        with pytest.raises(AuthorizationException) as exc_info:
            await server.token_endpoint(req, ResponseContext())

        assert exc_info.value.code is ErrorCode.UNAUTHORIZED_CLIENT
        assert exc_info.value.message == 'Invalid "client_secret" parameter.'

    @pytest.mark.asyncio
    async def test_client_credentials_drops_refresh_token(self, server):
        result = await server.token_endpoint(
            token_request({"grant_type": "client_credentials"}), ResponseContext()
        )

        assert result == {"token_type": "bearer", "access_token": "client-client1"}

    @pytest.mark.asyncio
    async def test_refresh_token_grant(self, server):
        req = token_request({"grant_type": "refresh_token", "refresh_token": "r1", "scope": "read"})

        result = await server.token_endpoint(req, ResponseContext())

        assert result == {"token_type": "bearer", "access_token": "refreshed", "scope": "read"}
        assert server.calls == [("refresh", "client1", "r1", ["read"])]

    @pytest.mark.asyncio
    async def test_authorization_code_grant(self, server):
        req = token_request(
            {"grant_type": "authorization_code", "code": "abc", "redirect_uri": REDIRECT_URI},
            client_id=None,
        )

        result = await server.token_endpoint(req, ResponseContext())

        assert result == {
            "token_type": "bearer",
            "access_token": "access-abc",
            "refresh_token": "refresh-1",
        }

    @pytest.mark.asyncio
    async def test_extension_grant_skips_client_auth(self, server):
        req = token_request({"grant_type": "urn:example:device", "device_code": "d1"}, client_id=None)

        result = await server.token_endpoint(req, ResponseContext())

        assert result == {"token_type": "bearer", "access_token": "device-d1"}

    @pytest.mark.asyncio
    async def test_missing_grant_type(self, server):
        with pytest.raises(AuthorizationException) as exc_info:
            await server.token_endpoint(token_request({"state": "s3"}), ResponseContext())

        assert exc_info.value.code is ErrorCode.INVALID_REQUEST
        assert exc_info.value.message == 'Missing required parameter "grant_type".'
        assert exc_info.value.state == "s3"

    @pytest.mark.asyncio
    async def test_unknown_grant_type(self, server):
        req = token_request({"grant_type": "urn:unknown"}, client_id=None)

        with pytest.raises(AuthorizationException) as exc_info:
            await server.token_endpoint(req, ResponseContext())

        assert exc_info.value.code is ErrorCode.INVALID_REQUEST
        assert exc_info.value.message == 'Invalid or no "grant_type" parameter provided'

    @pytest.mark.asyncio
    async def test_unsupported_by_default(self):
        req = token_request({"grant_type": "client_credentials", "state": "s4"})

        with pytest.raises(AuthorizationException) as exc_info:
            await BareServer().token_endpoint(req, ResponseContext())

        assert exc_info.value.code is ErrorCode.UNSUPPORTED_RESPONSE_TYPE
        assert exc_info.value.state == "s4"

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_server_error(self, server):
        req = token_request(
            {"grant_type": "authorization_code", "code": "boom", "redirect_uri": REDIRECT_URI, "state": "s5"}
        )

        with pytest.raises(AuthorizationException) as exc_info:
            await server.token_endpoint(req, ResponseContext())

        error = exc_info.value
        assert error.code is ErrorCode.SERVER_ERROR
        assert error.status_code == 500
        assert error.state == "s5"
        assert error.message == "An internal server error occurred."
        assert isinstance(error.cause, RuntimeError)
        assert "database unavailable" not in str(error.to_dict())
