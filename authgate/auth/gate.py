"""
AuthGate: turns a strategy's verdict into a signed token and a response,
and guards protected routes by verifying incoming tokens.
"""

import logging
import re
from typing import Any, Callable, Dict, Iterable, Optional

from ..audit.logger import AuditLogger, AuthEvent, AuthEventType, LoggingAuditLogger
from ..core.config import AuthGateConfig
from ..errors import (
    AuthGateError,
    ConfigurationError,
    MalformedTokenError,
    NotAuthenticatedError,
    TokenError,
    UnknownStrategyError,
)
from ..http.context import RequestContext, ResponseContext
from ..token.codec import AuthToken, Clock, SigningContext, TokenCodec, utc_now
from ..token.policy import TokenValidityPolicy
from ..util.aio import maybe_await
from .strategy import AuthOptions, AuthStrategy, Outcome, StrategyResult

logger = logging.getLogger(__name__)

_BEARER = re.compile(r"^Bearer\s+(\S+)\s*$", re.IGNORECASE)

Handler = Callable[[RequestContext, ResponseContext], Any]


def _identity(value: Any) -> Any:
    return value


def _truncate(compact: str) -> str:
    return compact[:12] + "..." if len(compact) > 12 else compact


class AuthGate:
    """
    Authentication orchestrator.

    ``serializer(user) -> subject_id`` and ``deserializer(subject_id) -> user``
    are supplied by the host (plain or coroutine functions); both default to
    the identity function, i.e. the subject id is the user.
    """

    def __init__(
        self,
        config: Optional[AuthGateConfig] = None,
        serializer: Optional[Callable[[Any], Any]] = None,
        deserializer: Optional[Callable[[Any], Any]] = None,
        strategies: Optional[Iterable[AuthStrategy]] = None,
        audit_logger: Optional[AuditLogger] = None,
        signing_context: Optional[SigningContext] = None,
        clock: Optional[Clock] = None,
    ):
        self.config = config or AuthGateConfig()
        self.config.validate()

        self.clock = clock or utc_now
        self.signing_context = signing_context or self.config.signing_context()
        self.codec = TokenCodec(
            self.signing_context,
            issuer=self.config.issuer,
            default_life_span=self.config.life_span_ms,
            clock=self.clock,
        )
        self.policy = TokenValidityPolicy(
            enforce_origin=self.config.enforce_origin,
            sliding_revival=self.config.sliding_revival,
            clock=self.clock,
        )

        self.serializer = serializer or _identity
        self.deserializer = deserializer or _identity
        self.audit_logger = audit_logger or LoggingAuditLogger()

        self.strategies: Dict[str, AuthStrategy] = {}
        for strategy in strategies or []:
            self.register_strategy(strategy)

    # Strategy registry

    def register_strategy(self, strategy: AuthStrategy) -> AuthStrategy:
        if not strategy.name:
            raise ConfigurationError("Authentication strategies must have a name")
        self.strategies[strategy.name] = strategy
        logger.debug(f"Registered authentication strategy '{strategy.name}'")
        return strategy

    def get_strategy(self, name: str) -> AuthStrategy:
        try:
            return self.strategies[name]
        except KeyError:
            raise UnknownStrategyError(name)

    # Token transport

    def get_token_string(self, req: RequestContext) -> Optional[str]:
        """Find a compact token in the Authorization header, cookie or query."""
        auth_header = req.header("authorization")
        if auth_header:
            match = _BEARER.match(auth_header)
            if match:
                return match.group(1)
            # Other schemes (e.g. Basic) belong to strategies

        if self.config.allow_cookie:
            value = req.cookies.get(self.config.cookie_name)
            if value:
                return value

        if self.config.allow_token_in_query:
            value = req.query.get("token")
            if isinstance(value, str) and value:
                return value

        return None

    def is_revive_request(self, req: RequestContext) -> bool:
        endpoint = self.config.revive_token_endpoint
        return endpoint is not None and req.method == "POST" and req.path == endpoint

    def _apply(self, req: RequestContext, token: AuthToken, user: Any) -> None:
        req.properties["token"] = token
        req.properties["user"] = user

    def _set_cookie(self, res: ResponseContext, compact: str) -> None:
        if self.config.allow_cookie:
            res.set_cookie(self.config.cookie_name, compact)

    async def _audit(self, event_type: AuthEventType, req: Optional[RequestContext] = None,
                     subject_id: Any = None, **details) -> None:
        await self.audit_logger.log(AuthEvent(
            event_type=event_type,
            subject_id=subject_id,
            origin=req.remote if req is not None else None,
            details=details,
        ))

    # Protected-route gate

    async def decode_token(self, req: RequestContext, res: ResponseContext) -> bool:
        """
        Verify the request's token, if any, and attach its user.

        Requests to the revive endpoint are left alone; expired tokens are
        only renewed through ``revive_token``.
        """
        if self.is_revive_request(req):
            return True

        compact = self.get_token_string(req)
        if compact is None:
            return True

        logger.debug(f"Found token {_truncate(compact)} on {req.method} {req.path}")
        await self._audit(AuthEventType.TOKEN_FOUND, req)

        try:
            token = self.codec.parse_and_verify(compact)
            self.policy.validate(token, req.remote)
        except TokenError as e:
            await self._audit(AuthEventType.TOKEN_REJECTED, req, reason=e.code.value)
            raise

        user = await maybe_await(self.deserializer(token.subject_id))
        self._apply(req, token, user)
        await self._audit(AuthEventType.TOKEN_VALIDATED, req, token.subject_id)
        return True

    async def require_auth(self, req: RequestContext, res: ResponseContext) -> bool:
        """Fail with 401 unless the request carries a valid token."""
        if req.user is None:
            await self.decode_token(req, res)
        if req.user is None:
            raise NotAuthenticatedError()
        return True

    async def revive_token(self, req: RequestContext, res: ResponseContext) -> Dict[str, Any]:
        """Renew a (possibly expired) token and answer with the user and the new token."""
        compact = self.get_token_string(req)
        if compact is None:
            raise NotAuthenticatedError("No token provided.")

        try:
            token = self.codec.parse_and_verify(compact)
            renewed = self.policy.revive(token, req.remote)
            renewed_compact = self.codec.serialize(renewed)
            user = await maybe_await(self.deserializer(renewed.subject_id))
        except AuthGateError as e:
            await self._audit(AuthEventType.TOKEN_REJECTED, req, reason=e.code.value)
            raise
        except Exception as e:
            logger.error(f"Error while reviving token: {e}")
            await self._audit(AuthEventType.TOKEN_REJECTED, req, reason="malformed_token")
            raise MalformedTokenError(cause=e)

        self._apply(req, renewed, user)
        self._set_cookie(res, renewed_compact)

        logger.info(f"Revived token for subject {renewed.subject_id!r}")
        await self._audit(
            AuthEventType.TOKEN_REVIVED, req, renewed.subject_id,
            renewed=renewed.issued_at != token.issued_at,
        )
        return {"data": user, "token": renewed_compact}

    # Login

    def authenticate(self, strategy_name: str, options: Optional[AuthOptions] = None) -> Handler:
        """Build a request handler that logs users in through ``strategy_name``."""

        async def handler(req: RequestContext, res: ResponseContext) -> Any:
            strategy = self.get_strategy(strategy_name)
            result = await strategy.check(req, res, options)

            if result.outcome is Outcome.PASS_THROUGH:
                return result.response
            if result.outcome is not Outcome.SUCCESS:
                return await self.authentication_failure(req, res, result)

            subject_id = await maybe_await(self.serializer(result.principal))
            token = self.codec.issue(subject_id, origin_address=req.remote)
            compact = self.codec.serialize(token)

            if options is not None and options.token_callback is not None:
                req.properties["user"] = result.principal
                response = await maybe_await(options.token_callback(req, res, token, result.principal))
                if response is not None:
                    return response

            user = await maybe_await(self.deserializer(subject_id))
            self._apply(req, token, user)
            self._set_cookie(res, compact)

            logger.info(f"Subject {subject_id!r} authenticated via '{strategy_name}'")
            await self._audit(AuthEventType.LOGIN, req, subject_id, strategy=strategy_name)

            if options is not None and options.success_redirect:
                res.redirect(options.success_redirect)
                return None

            if options is not None and options.callback is not None:
                return await maybe_await(options.callback(req, res, compact))

            if (options is None or options.can_respond_with_json) and req.accepts_json():
                return {"data": user, "token": compact}

            return True

        handler.__name__ = f"authenticate_{strategy_name}"
        return handler

    async def authentication_failure(
        self,
        req: RequestContext,
        res: ResponseContext,
        result: Optional[StrategyResult] = None,
    ) -> Any:
        """Called when a strategy rejects the credentials. Override to customize."""
        reason = result.reason if result is not None else None
        await self._audit(AuthEventType.AUTHENTICATION_FAILED, req, reason=reason)
        raise NotAuthenticatedError(reason or "Not authenticated.")

    async def login(self, token: AuthToken, req: RequestContext, res: ResponseContext) -> str:
        """Log a user in on-demand with an existing token; returns the compact token."""
        user = await maybe_await(self.deserializer(token.subject_id))
        compact = self.codec.serialize(token)

        self._apply(req, token, user)
        self._set_cookie(res, compact)

        await self._audit(AuthEventType.LOGIN, req, token.subject_id, strategy=None)
        return compact

    async def login_by_id(self, subject_id: Any, req: RequestContext, res: ResponseContext) -> str:
        """Log a user in on-demand by subject id, e.g. right after registration."""
        token = self.codec.issue(subject_id, origin_address=req.remote)
        return await self.login(token, req, res)

    # Logout

    def logout(self, options: Optional[AuthOptions] = None) -> Handler:
        """Build a request handler that logs the current user out."""

        async def handler(req: RequestContext, res: ResponseContext) -> Any:
            for strategy in self.strategies.values():
                if not await maybe_await(strategy.can_logout(req, res)):
                    logger.info(f"Strategy '{strategy.name}' refused logout")
                    if options is not None and options.failure_redirect:
                        res.redirect(options.failure_redirect)
                        return None
                    return False

            subject_id = getattr(req.token, "subject_id", None)

            res.delete_cookie(self.config.cookie_name)
            req.properties.pop("token", None)
            req.properties.pop("user", None)

            await self._audit(AuthEventType.LOGOUT, req, subject_id)

            if options is not None and options.success_redirect:
                res.redirect(options.success_redirect)
                return None

            return True

        return handler
