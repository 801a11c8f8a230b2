"""
OAuth2 authorization server (RFC 6749) endpoints.

``AuthorizationServer`` implements the authorization endpoint and the token
endpoint state machines. It supports no grants by itself: every grant hook
answers ``unsupported_response_type`` until a subclass overrides it.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Mapping, Optional, TypeVar
from urllib.parse import urlsplit, urlunsplit

from ..errors import AuthGateError, AuthorizationException, ErrorCode, ErrorResponse
from ..http.context import RequestContext, ResponseContext
from ..util.aio import maybe_await
from ..util.encoding import decode_basic_credentials, encode_uri_component
from .types import (
    AuthorizationTokenResponse,
    AuthorizationTokenType,
    ExtensionGrant,
    GrantType,
    ResponseType,
)

logger = logging.getLogger(__name__)

Client = TypeVar("Client")
User = TypeVar("User")

INTERNAL_SERVER_ERROR = "An internal server error occurred."

_CLIENT_AUTHENTICATED_GRANTS = (
    GrantType.REFRESH_TOKEN,
    GrantType.PASSWORD,
    GrantType.CLIENT_CREDENTIALS,
)


def _error(code: ErrorCode, description: str, state: str, status_code: int = 400) -> AuthorizationException:
    return AuthorizationException(ErrorResponse(code, description, state), status_code=status_code)


def _unsupported(description: str, state: str) -> AuthorizationException:
    return _error(ErrorCode.UNSUPPORTED_RESPONSE_TYPE, description, state)


def _get_param(data: Mapping[str, Any], name: str, state: str) -> str:
    value = data.get(name)
    value = str(value) if value is not None else ""

    if not value:
        raise _error(ErrorCode.INVALID_REQUEST, f'Missing required parameter "{name}".', state)

    return value


def _get_scopes(data: Mapping[str, Any]) -> List[str]:
    scope = data.get("scope")
    if scope is None:
        return []
    return [s for s in str(scope).split(" ") if s]


async def _request_state(req: RequestContext) -> str:
    body = await req.parse_body()
    state = body.get("state", req.query.get("state"))
    return str(state) if state is not None else ""


class AuthorizationServer(ABC, Generic[Client, User]):
    """An OAuth2 authorization server, which issues access tokens to third parties."""

    @property
    def extension_grants(self) -> Dict[str, ExtensionGrant]:
        """Custom grant types, keyed by ``grant_type`` value.

        Extension grants receive the raw request and response and bypass the
        built-in client authentication; they must check credentials themselves.
        """
        return {}

    @abstractmethod
    async def find_client(self, client_id: str) -> Optional[Client]:
        """Find the client application associated with ``client_id``."""

    @abstractmethod
    async def verify_client(self, client: Client, client_secret: str) -> bool:
        """Verify that ``client`` is the one identified by ``client_secret``."""

    # Grant hooks

    async def request_authorization_code(
        self,
        client: Client,
        redirect_uri: str,
        scopes: List[str],
        state: str,
        req: RequestContext,
        res: ResponseContext,
    ) -> Any:
        """
        Prompt the currently logged-in user to grant or deny access to ``client``.

        In many applications this means rendering a consent page.
        """
        raise _unsupported("Authorization code grants are not supported.", state)

    async def implicit_grant(
        self,
        client: Client,
        redirect_uri: str,
        scopes: List[str],
        state: str,
        req: RequestContext,
        res: ResponseContext,
    ) -> AuthorizationTokenResponse:
        """
        Create an implicit authorization token.

        There is no guarantee that the user agent has not been compromised.
        """
        raise _unsupported("Implicit grants are not supported.", state)

    async def exchange_authorization_code_for_token(
        self,
        auth_code: str,
        redirect_uri: str,
        req: RequestContext,
        res: ResponseContext,
    ) -> AuthorizationTokenResponse:
        """Exchange an authorization code for an authorization token."""
        raise _unsupported("Authorization code grants are not supported.", await _request_state(req))

    async def refresh_authorization_token(
        self,
        client: Client,
        refresh_token: str,
        scopes: List[str],
        req: RequestContext,
        res: ResponseContext,
    ) -> AuthorizationTokenResponse:
        """Refresh an authorization token."""
        raise _unsupported(
            "Refreshing authorization tokens is not supported.", await _request_state(req)
        )

    async def resource_owner_password_credentials_grant(
        self,
        client: Client,
        username: str,
        password: str,
        scopes: List[str],
        req: RequestContext,
        res: ResponseContext,
    ) -> AuthorizationTokenResponse:
        """Issue a token to a user authenticated by ``username`` and ``password``."""
        raise _unsupported(
            "Resource owner password credentials grants are not supported.",
            await _request_state(req),
        )

    async def client_credentials_grant(
        self,
        client: Client,
        req: RequestContext,
        res: ResponseContext,
    ) -> AuthorizationTokenResponse:
        """Issue a token representing ``client`` itself. Only for fully trusted clients."""
        raise _unsupported("Client credentials grants are not supported.", await _request_state(req))

    # Endpoints

    async def authorization_endpoint(self, req: RequestContext, res: ResponseContext) -> Any:
        """Handle ``response_type=code`` and ``response_type=token`` requests."""
        state = ""

        try:
            query = req.query
            state = str(query.get("state") or "")
            response_type = _get_param(query, "response_type", state)

            if response_type == ResponseType.CODE:
                client, redirect_uri, scopes = await self._authorization_params(query, state)
                return await self.request_authorization_code(
                    client, redirect_uri, scopes, state, req, res
                )

            if response_type == ResponseType.TOKEN:
                client, redirect_uri, scopes = await self._authorization_params(query, state)
                parts = self._parse_redirect_uri(redirect_uri, state)
                token = await self.implicit_grant(client, redirect_uri, scopes, state, req, res)

                params = {
                    "access_token": token.access_token,
                    "token_type": AuthorizationTokenType.bearer,
                    "state": state,
                }
                if token.expires_in is not None:
                    params["expires_in"] = str(token.expires_in)
                if token.scope is not None:
                    params["scope"] = " ".join(token.scope)

                fragment = "&".join(f"{k}={encode_uri_component(v)}" for k, v in params.items())
                res.redirect(urlunsplit((parts.scheme, parts.netloc, parts.path, parts.query, fragment)))
                return None

            raise _error(
                ErrorCode.INVALID_REQUEST,
                'Invalid or no "response_type" parameter provided',
                state,
            )
        except AuthGateError:
            raise
        except Exception as e:
            raise self._server_error(e, state) from e

    async def token_endpoint(self, req: RequestContext, res: ResponseContext) -> Dict[str, Any]:
        """Exchange authorization codes, refresh tokens or credentials for tokens."""
        state = ""

        try:
            body = await req.parse_body()
            state = str(body.get("state") or "")
            grant_type = _get_param(body, "grant_type", state)

            client = None
            if grant_type in _CLIENT_AUTHENTICATED_GRANTS:
                client = await self._authenticate_client(req, state)

            response: Optional[AuthorizationTokenResponse] = None

            if grant_type == GrantType.AUTHORIZATION_CODE:
                code = _get_param(body, "code", state)
                redirect_uri = _get_param(body, "redirect_uri", state)
                response = await self.exchange_authorization_code_for_token(
                    code, redirect_uri, req, res
                )
            elif grant_type == GrantType.REFRESH_TOKEN:
                refresh_token = _get_param(body, "refresh_token", state)
                response = await self.refresh_authorization_token(
                    client, refresh_token, _get_scopes(body), req, res
                )
            elif grant_type == GrantType.PASSWORD:
                username = _get_param(body, "username", state)
                password = _get_param(body, "password", state)
                response = await self.resource_owner_password_credentials_grant(
                    client, username, password, _get_scopes(body), req, res
                )
            elif grant_type == GrantType.CLIENT_CREDENTIALS:
                response = await self.client_credentials_grant(client, req, res)
                if response is not None and response.refresh_token is not None:
                    # Client credentials tokens represent the client, never a user
                    response = response.without_refresh_token()
            else:
                extension = self.extension_grants.get(grant_type)
                if extension is not None:
                    response = await maybe_await(extension(req, res))

            if response is not None:
                result: Dict[str, Any] = {"token_type": AuthorizationTokenType.bearer}
                result.update(response.to_dict())
                return result

            raise _error(
                ErrorCode.INVALID_REQUEST,
                'Invalid or no "grant_type" parameter provided',
                state,
            )
        except AuthGateError:
            raise
        except Exception as e:
            raise self._server_error(e, state) from e

    # Helpers

    async def _authorization_params(self, query: Mapping[str, Any], state: str):
        client_id = _get_param(query, "client_id", state)
        client = await maybe_await(self.find_client(client_id))

        if client is None:
            raise _error(ErrorCode.UNAUTHORIZED_CLIENT, f'Unknown client "{client_id}".', state)

        redirect_uri = _get_param(query, "redirect_uri", state)
        return client, redirect_uri, _get_scopes(query)

    async def _authenticate_client(self, req: RequestContext, state: str) -> Client:
        credentials = decode_basic_credentials(req.header("authorization"))

        if credentials is None:
            logger.warning("Token request without a valid Basic Authorization header")
            raise _error(ErrorCode.UNAUTHORIZED_CLIENT, 'Invalid or no "Authorization" header.', state)

        client_id, client_secret = credentials
        client = await maybe_await(self.find_client(client_id))

        if client is None:
            logger.warning(f"Token request from unknown client {client_id!r}")
            raise _error(ErrorCode.UNAUTHORIZED_CLIENT, 'Invalid "client_id" parameter.', state)

        if not await maybe_await(self.verify_client(client, client_secret)):
            logger.warning(f"Client {client_id!r} failed secret verification")
            raise _error(ErrorCode.UNAUTHORIZED_CLIENT, 'Invalid "client_secret" parameter.', state)

        return client

    @staticmethod
    def _parse_redirect_uri(redirect_uri: str, state: str):
        try:
            parts = urlsplit(redirect_uri)
            parts.port  # raises ValueError on an invalid port
        except ValueError:
            parts = None

        if parts is None or not parts.scheme:
            raise _error(
                ErrorCode.INVALID_REQUEST,
                'Invalid URI provided as "redirect_uri" parameter',
                state,
            )
        return parts

    @staticmethod
    def _server_error(error: Exception, state: str) -> AuthorizationException:
        logger.exception(f"Unexpected error in authorization server: {error}")
        return AuthorizationException(
            ErrorResponse(ErrorCode.SERVER_ERROR, INTERNAL_SERVER_ERROR, state),
            status_code=500,
            cause=error,
        )
