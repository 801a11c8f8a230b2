"""
OAuth2 wire types.
"""

from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..http.context import RequestContext, ResponseContext


class AuthorizationTokenType:
    """Token types issued by the authorization server."""
    bearer = "bearer"


class GrantType:
    AUTHORIZATION_CODE = "authorization_code"
    REFRESH_TOKEN = "refresh_token"
    PASSWORD = "password"
    CLIENT_CREDENTIALS = "client_credentials"


class ResponseType:
    CODE = "code"
    TOKEN = "token"


@dataclass(frozen=True)
class AuthorizationTokenResponse:
    """Result of any grant."""
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    scope: Optional[List[str]] = None

    def without_refresh_token(self) -> "AuthorizationTokenResponse":
        return replace(self, refresh_token=None)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        result: Dict[str, Any] = {'access_token': self.access_token}

        if self.refresh_token is not None:
            result['refresh_token'] = self.refresh_token
        if self.expires_in is not None:
            result['expires_in'] = self.expires_in
        if self.scope is not None:
            result['scope'] = ' '.join(self.scope)

        return result


# A request handler that performs an arbitrary token grant
ExtensionGrant = Callable[
    [RequestContext, ResponseContext],
    Awaitable[AuthorizationTokenResponse],
]
