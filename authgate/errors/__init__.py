# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Error handling for AuthGate.

Every failure raised by the token engine, the authentication gate and the
OAuth2 authorization server is an ``AuthGateError`` carrying an
``ErrorCode`` and the HTTP status it maps to. OAuth2 protocol failures are
``AuthorizationException`` instances wrapping an ``ErrorResponse``, which
is what gets serialized at the endpoint boundary:

    {"error": "<code>", "error_description": "<text>", "state": "<state>"}
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Canonical error kinds."""

    # OAuth2 protocol errors (RFC 6749)
    INVALID_REQUEST = "invalid_request"
    UNAUTHORIZED_CLIENT = "unauthorized_client"
    UNSUPPORTED_RESPONSE_TYPE = "unsupported_response_type"
    INVALID_SCOPE = "invalid_scope"
    ACCESS_DENIED = "access_denied"
    SERVER_ERROR = "server_error"
    TEMPORARILY_UNAVAILABLE = "temporarily_unavailable"

    # Bearer token errors
    MALFORMED_TOKEN = "malformed_token"
    EXPIRED = "expired"
    FORBIDDEN_ORIGIN = "forbidden_origin"

    # Authentication errors
    NOT_AUTHENTICATED = "not_authenticated"

    # Configuration errors, never client facing
    UNKNOWN_STRATEGY = "unknown_strategy"
    CONFIGURATION_ERROR = "configuration_error"


STATUS_CODES: Dict[ErrorCode, int] = {
    ErrorCode.INVALID_REQUEST: 400,
    ErrorCode.UNAUTHORIZED_CLIENT: 400,
    ErrorCode.UNSUPPORTED_RESPONSE_TYPE: 400,
    ErrorCode.INVALID_SCOPE: 400,
    ErrorCode.ACCESS_DENIED: 403,
    ErrorCode.SERVER_ERROR: 500,
    ErrorCode.TEMPORARILY_UNAVAILABLE: 503,
    ErrorCode.MALFORMED_TOKEN: 400,
    ErrorCode.EXPIRED: 403,
    ErrorCode.FORBIDDEN_ORIGIN: 403,
    ErrorCode.NOT_AUTHENTICATED: 401,
    ErrorCode.UNKNOWN_STRATEGY: 500,
    ErrorCode.CONFIGURATION_ERROR: 500,
}


def status_for(code: ErrorCode) -> int:
    """Return the HTTP status code for an error kind."""
    return STATUS_CODES.get(code, 500)


class AuthGateError(Exception):
    """
    Base exception class for all AuthGate errors.

    Carries the error kind, a human readable message, the HTTP status to
    answer with, optional details and the underlying cause (kept for
    logging only, never serialized).
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code if status_code is not None else status_for(code)
        self.details = details or {}
        self.cause = cause

        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to its wire representation."""
        return {
            "error": self.code.value,
            "error_description": self.message,
        }

    def is_client_error(self) -> bool:
        """Check if this is a client-side error."""
        return 400 <= self.status_code < 500

    def is_server_error(self) -> bool:
        """Check if this is a server-side error."""
        return self.status_code >= 500


class TokenError(AuthGateError):
    """Errors related to bearer token verification."""


class MalformedTokenError(TokenError):
    """Token could not be decoded or its signature does not match."""

    def __init__(self, message: str = "Malformed token.", **kwargs):
        super().__init__(ErrorCode.MALFORMED_TOKEN, message, **kwargs)


class ExpiredTokenError(TokenError):
    """Token life span has elapsed."""

    def __init__(self, message: str = "Expired token.", **kwargs):
        super().__init__(ErrorCode.EXPIRED, message, **kwargs)


class ForbiddenOriginError(TokenError):
    """Token presented from an address other than the one it was issued to."""

    def __init__(
        self,
        message: str = "Token cannot be accessed from this address.",
        **kwargs,
    ):
        super().__init__(ErrorCode.FORBIDDEN_ORIGIN, message, **kwargs)


class NotAuthenticatedError(AuthGateError):
    """Credentials were missing or rejected."""

    def __init__(self, message: str = "Not authenticated.", **kwargs):
        super().__init__(ErrorCode.NOT_AUTHENTICATED, message, **kwargs)


class UnknownStrategyError(AuthGateError):
    """No strategy is registered under the requested name."""

    def __init__(self, name: str, **kwargs):
        self.name = name
        super().__init__(
            ErrorCode.UNKNOWN_STRATEGY,
            f"No authentication strategy registered as '{name}'",
            **kwargs,
        )


class ConfigurationError(AuthGateError):
    """Invalid AuthGate configuration."""

    def __init__(self, message: str, **kwargs):
        super().__init__(ErrorCode.CONFIGURATION_ERROR, message, **kwargs)


@dataclass(frozen=True)
class ErrorResponse:
    """A single OAuth2 protocol error."""

    code: ErrorCode
    description: str
    state: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code.value,
            "error_description": self.description,
            "state": self.state,
        }


class AuthorizationException(AuthGateError):
    """
    OAuth2 error raised by the authorization server.

    The ``state`` of the wrapped ``ErrorResponse`` is echoed back to the
    client verbatim.
    """

    def __init__(
        self,
        error_response: ErrorResponse,
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ):
        self.error_response = error_response
        super().__init__(
            error_response.code,
            error_response.description,
            status_code=status_code,
            cause=cause,
        )

    @property
    def state(self) -> str:
        return self.error_response.state

    def to_dict(self) -> Dict[str, Any]:
        return self.error_response.to_dict()


__all__ = [
    "ErrorCode",
    "STATUS_CODES",
    "status_for",
    "AuthGateError",
    "TokenError",
    "MalformedTokenError",
    "ExpiredTokenError",
    "ForbiddenOriginError",
    "NotAuthenticatedError",
    "UnknownStrategyError",
    "ConfigurationError",
    "ErrorResponse",
    "AuthorizationException",
]
