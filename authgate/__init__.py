"""
AuthGate Python Package

Stateless bearer-token authentication and an OAuth2 authorization server
for asyncio web applications.
"""

__version__ = "0.1.0"

from .auth import AuthGate, AuthOptions, AuthStrategy, LocalStrategy, StrategyResult
from .core.config import AuthGateConfig
from .errors import (
    AuthGateError,
    AuthorizationException,
    ErrorCode,
    ErrorResponse,
    ExpiredTokenError,
    ForbiddenOriginError,
    MalformedTokenError,
    NotAuthenticatedError,
)
from .http.context import RequestContext, ResponseContext
from .oauth2 import AuthorizationServer, AuthorizationTokenResponse
from .token import AuthToken, SigningContext, TokenCodec, TokenValidityPolicy

__all__ = [
    "AuthGate",
    "AuthGateConfig",
    "AuthOptions",
    "AuthStrategy",
    "LocalStrategy",
    "StrategyResult",
    "AuthToken",
    "SigningContext",
    "TokenCodec",
    "TokenValidityPolicy",
    "AuthorizationServer",
    "AuthorizationTokenResponse",
    "RequestContext",
    "ResponseContext",
    "AuthGateError",
    "AuthorizationException",
    "ErrorCode",
    "ErrorResponse",
    "ExpiredTokenError",
    "ForbiddenOriginError",
    "MalformedTokenError",
    "NotAuthenticatedError",
]
