"""
Pluggable credential verification strategies.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from ..http.context import RequestContext, ResponseContext
from ..util.aio import maybe_await
from ..util.encoding import decode_basic_credentials

logger = logging.getLogger(__name__)


@dataclass
class AuthOptions:
    """Per-route options for ``AuthGate.authenticate`` and ``AuthGate.logout``."""
    # (req, res, compact_token) -> response
    callback: Optional[Callable[..., Any]] = None
    # (req, res, token, user) -> response or None to continue
    token_callback: Optional[Callable[..., Any]] = None
    success_redirect: Optional[str] = None
    failure_redirect: Optional[str] = None
    can_respond_with_json: bool = True


class Outcome(Enum):
    """What a strategy concluded about a request."""
    PASS_THROUGH = "pass_through"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class StrategyResult:
    """Outcome of ``AuthStrategy.check``."""
    outcome: Outcome
    principal: Any = None
    response: Any = None
    reason: Optional[str] = None

    @classmethod
    def success(cls, principal: Any) -> "StrategyResult":
        return cls(Outcome.SUCCESS, principal=principal)

    @classmethod
    def failure(cls, reason: Optional[str] = None) -> "StrategyResult":
        return cls(Outcome.FAILURE, reason=reason)

    @classmethod
    def pass_through(cls, response: Any = True) -> "StrategyResult":
        """The strategy already produced the full response (e.g. a redirect)."""
        return cls(Outcome.PASS_THROUGH, response=response)

    @property
    def succeeded(self) -> bool:
        return self.outcome is Outcome.SUCCESS


class AuthStrategy(ABC):
    """A credential verification backend registered with ``AuthGate``."""

    name: str = ""

    @abstractmethod
    async def check(
        self,
        req: RequestContext,
        res: ResponseContext,
        options: Optional[AuthOptions] = None,
    ) -> StrategyResult:
        """Verify the credentials carried by ``req``."""
        pass

    async def can_logout(self, req: RequestContext, res: ResponseContext) -> bool:
        """Whether the user may be logged out; providers may need a remote call first."""
        return True


Verifier = Callable[[str, str], Union[Any, Awaitable[Any]]]


class LocalStrategy(AuthStrategy):
    """
    Username/password authentication against a host-supplied verifier.

    ``verifier(username, password)`` returns the user, or ``None``/``False``
    when the credentials are wrong. Credentials are read from an HTTP Basic
    ``Authorization`` header when ``allow_basic`` is set, and otherwise from
    the form fields ``username_field`` and ``password_field``.
    """

    def __init__(
        self,
        verifier: Verifier,
        name: str = "local",
        username_field: str = "username",
        password_field: str = "password",
        allow_basic: bool = True,
        force_basic: bool = False,
        realm: str = "Authentication is required.",
    ):
        self.verifier = verifier
        self.name = name
        self.username_field = username_field
        self.password_field = password_field
        self.allow_basic = allow_basic
        self.force_basic = force_basic
        self.realm = realm

    async def check(
        self,
        req: RequestContext,
        res: ResponseContext,
        options: Optional[AuthOptions] = None,
    ) -> StrategyResult:
        user = None
        credentials = None

        if self.allow_basic:
            credentials = decode_basic_credentials(req.header("authorization"))

        if credentials is None:
            body = await req.parse_body()
            username = body.get(self.username_field)
            password = body.get(self.password_field)
            if isinstance(username, str) and isinstance(password, str) and username:
                credentials = (username, password)

        if credentials is not None:
            user = await maybe_await(self.verifier(*credentials))

        if user is not None and user is not False:
            return StrategyResult.success(user)

        logger.debug(f"Local authentication failed for {credentials[0] if credentials else None!r}")

        if options is not None and options.failure_redirect:
            res.redirect(options.failure_redirect)
            return StrategyResult.pass_through()

        if self.force_basic:
            res.headers["WWW-Authenticate"] = f'Basic realm="{self.realm}"'

        return StrategyResult.failure("Invalid username or password.")
