"""
HTTP middleware and route adapters for AuthGate.

This module connects the framework-neutral gate and authorization server to
aiohttp and FastAPI/Starlette applications: incoming requests are translated
into ``RequestContext`` objects, handler results and accumulated
``ResponseContext`` state are rendered back into framework responses, and
``AuthGateError`` is rendered as a JSON error body with its status code.
"""

import logging
from functools import wraps
from typing import Any, Awaitable, Callable, Dict, Optional

try:
    from aiohttp import web
    AIOHTTP_AVAILABLE = True
except ImportError:
    AIOHTTP_AVAILABLE = False

try:
    from fastapi import Request, Response
    from fastapi.responses import JSONResponse, RedirectResponse
    from starlette.middleware.base import BaseHTTPMiddleware
    FASTAPI_AVAILABLE = True
except ImportError:
    FASTAPI_AVAILABLE = False

from ..errors import AuthGateError
from ..util.encoding import safe_json_encode
from .context import RequestContext, ResponseContext

logger = logging.getLogger(__name__)

# Key under which the translated RequestContext is stored on the native request
REQUEST_KEY = "authgate"

DEFAULT_AUTHORIZE_PATH = "/oauth2/authorize"
DEFAULT_TOKEN_PATH = "/oauth2/token"

GateHandler = Callable[[RequestContext, ResponseContext], Awaitable[Any]]


def _log_error(error: AuthGateError, req: Optional[RequestContext] = None) -> None:
    where = f" on {req.method} {req.path}" if req is not None else ""
    if error.is_server_error():
        logger.error(f"Authentication error{where}: {error}")
    else:
        logger.info(f"Rejected request{where}: {error.code.value}")


def _error_headers(res: Optional[ResponseContext]) -> Dict[str, str]:
    if res is None:
        return {}
    return {k: v for k, v in res.headers.items() if k.lower() != "location"}


# aiohttp


def _require_aiohttp() -> None:
    if not AIOHTTP_AVAILABLE:
        raise ImportError("aiohttp is required for the aiohttp integration")


async def from_aiohttp_request(request: "web.Request") -> RequestContext:
    """Translate an aiohttp request into a ``RequestContext``."""

    async def load_body() -> Dict[str, Any]:
        if request.content_type == "application/json":
            data = await request.json()
            return data if isinstance(data, dict) else {}
        return dict(await request.post())

    return RequestContext(
        method=request.method,
        path=request.path,
        headers=dict(request.headers),
        query=dict(request.query),
        cookies=dict(request.cookies),
        remote=request.remote,
        body_loader=load_body,
    )


def _apply_aiohttp_response_state(response: "web.StreamResponse", res: ResponseContext) -> None:
    for name, value in res.headers.items():
        response.headers[name] = value
    for cookie in res.cookies.values():
        response.set_cookie(
            cookie.name,
            cookie.value,
            path=cookie.path,
            max_age=cookie.max_age,
            secure=cookie.secure,
            httponly=cookie.http_only,
            samesite=cookie.same_site,
        )
    for name in res.deleted_cookies:
        response.del_cookie(name, path="/")


def to_aiohttp_response(res: ResponseContext, result: Any) -> "web.StreamResponse":
    """Render a handler result plus the accumulated response state."""
    if isinstance(result, web.StreamResponse):
        response = result
    elif res.is_redirect:
        response = web.Response(status=res.status)
    elif result is None:
        response = web.Response(status=204 if res.status == 200 else res.status)
    else:
        response = web.json_response(result, status=res.status, dumps=safe_json_encode)

    _apply_aiohttp_response_state(response, res)
    return response


def aiohttp_error_response(error: AuthGateError, res: Optional[ResponseContext] = None) -> "web.Response":
    """Render an ``AuthGateError`` as a JSON error body."""
    response = web.json_response(
        error.to_dict(),
        status=error.status_code,
        headers=_error_headers(res),
        dumps=safe_json_encode,
    )
    if res is not None:
        for name in res.deleted_cookies:
            response.del_cookie(name, path="/")
    return response


async def _aiohttp_context(request: "web.Request") -> RequestContext:
    ctx = request.get(REQUEST_KEY)
    if ctx is None:
        ctx = await from_aiohttp_request(request)
        request[REQUEST_KEY] = ctx
    return ctx


def aiohttp_handler(fn: GateHandler) -> Callable[["web.Request"], Awaitable["web.StreamResponse"]]:
    """Wrap a ``(req, res)`` AuthGate handler as an aiohttp request handler."""
    _require_aiohttp()

    @wraps(fn)
    async def handler(request: "web.Request") -> "web.StreamResponse":
        ctx = await _aiohttp_context(request)
        res = ResponseContext()
        try:
            result = await fn(ctx, res)
        except AuthGateError as e:
            _log_error(e, ctx)
            return aiohttp_error_response(e, res)
        return to_aiohttp_response(res, result)

    return handler


def create_aiohttp_middleware(gate):
    """Build an aiohttp middleware that verifies tokens on every request."""
    _require_aiohttp()

    @web.middleware
    async def authgate_middleware(request: "web.Request", handler: Callable) -> "web.StreamResponse":
        ctx = await _aiohttp_context(request)
        res = ResponseContext()
        try:
            await gate.decode_token(ctx, res)
        except AuthGateError as e:
            _log_error(e, ctx)
            return aiohttp_error_response(e, res)
        return await handler(request)

    return authgate_middleware


def aiohttp_login_required(gate):
    """Decorator for aiohttp handlers that must only be reached by authenticated users."""
    _require_aiohttp()

    def decorator(handler):
        @wraps(handler)
        async def wrapper(request: "web.Request") -> "web.StreamResponse":
            ctx = await _aiohttp_context(request)
            res = ResponseContext()
            try:
                await gate.require_auth(ctx, res)
            except AuthGateError as e:
                _log_error(e, ctx)
                return aiohttp_error_response(e, res)
            return await handler(request)

        return wrapper

    return decorator


def setup_aiohttp(
    app: "web.Application",
    gate,
    server=None,
    authorize_path: str = DEFAULT_AUTHORIZE_PATH,
    token_path: str = DEFAULT_TOKEN_PATH,
) -> None:
    """
    Install AuthGate on an aiohttp application.

    Adds the token-verifying middleware, mounts the revive endpoint when one
    is configured and, if an ``AuthorizationServer`` is given, its
    authorization (GET) and token (POST) endpoints.
    """
    _require_aiohttp()

    app.middlewares.append(create_aiohttp_middleware(gate))

    endpoint = gate.config.revive_token_endpoint
    if endpoint:
        app.router.add_post(endpoint, aiohttp_handler(gate.revive_token))

    if server is not None:
        app.router.add_get(authorize_path, aiohttp_handler(server.authorization_endpoint))
        app.router.add_post(token_path, aiohttp_handler(server.token_endpoint))

    logger.info(f"AuthGate installed on aiohttp application (revive endpoint: {endpoint})")


# FastAPI / Starlette


def _require_fastapi() -> None:
    if not FASTAPI_AVAILABLE:
        raise ImportError("fastapi is required for the FastAPI integration")


async def from_starlette_request(request: "Request") -> RequestContext:
    """Translate a Starlette (FastAPI) request into a ``RequestContext``."""

    async def load_body() -> Dict[str, Any]:
        content_type = request.headers.get("content-type", "")
        if content_type.startswith("application/json"):
            data = await request.json()
            return data if isinstance(data, dict) else {}
        return dict(await request.form())

    return RequestContext(
        method=request.method,
        path=request.url.path,
        headers=dict(request.headers),
        query=dict(request.query_params),
        cookies=dict(request.cookies),
        remote=request.client.host if request.client else None,
        body_loader=load_body,
    )


def _apply_starlette_response_state(response: "Response", res: ResponseContext) -> None:
    for name, value in res.headers.items():
        response.headers[name] = value
    for cookie in res.cookies.values():
        response.set_cookie(
            key=cookie.name,
            value=cookie.value,
            max_age=cookie.max_age,
            path=cookie.path,
            secure=cookie.secure,
            httponly=cookie.http_only,
            samesite=cookie.same_site.lower() if cookie.same_site else None,
        )
    for name in res.deleted_cookies:
        response.delete_cookie(name, path="/")


def to_starlette_response(res: ResponseContext, result: Any) -> "Response":
    """Render a handler result plus the accumulated response state."""
    if isinstance(result, Response):
        response = result
    elif res.is_redirect:
        response = RedirectResponse(res.location, status_code=res.status)
    elif result is None:
        response = Response(status_code=204 if res.status == 200 else res.status)
    else:
        response = Response(
            content=safe_json_encode(result),
            status_code=res.status,
            media_type="application/json",
        )

    _apply_starlette_response_state(response, res)
    return response


def starlette_error_response(error: AuthGateError, res: Optional[ResponseContext] = None) -> "Response":
    """Render an ``AuthGateError`` as a JSON error body."""
    response = JSONResponse(error.to_dict(), status_code=error.status_code, headers=_error_headers(res))
    if res is not None:
        for name in res.deleted_cookies:
            response.delete_cookie(name, path="/")
    return response


async def _starlette_context(request: "Request") -> RequestContext:
    # Body readers are bound to the endpoint's request; only properties carry over
    ctx = await from_starlette_request(request)
    previous = getattr(request.state, REQUEST_KEY, None)
    if previous is not None:
        ctx.properties.update(previous.properties)
    setattr(request.state, REQUEST_KEY, ctx)
    return ctx


def fastapi_endpoint(fn: GateHandler) -> Callable[["Request"], Awaitable["Response"]]:
    """Wrap a ``(req, res)`` AuthGate handler as a Starlette endpoint."""
    _require_fastapi()

    @wraps(fn)
    async def endpoint(request: "Request") -> "Response":
        ctx = await _starlette_context(request)
        res = ResponseContext()
        try:
            result = await fn(ctx, res)
        except AuthGateError as e:
            _log_error(e, ctx)
            return starlette_error_response(e, res)
        return to_starlette_response(res, result)

    return endpoint


if FASTAPI_AVAILABLE:

    class FastAPIAuthMiddleware(BaseHTTPMiddleware):
        """Token-verifying middleware for FastAPI and Starlette applications."""

        def __init__(self, app, gate=None):
            super().__init__(app)
            if gate is None:
                raise ValueError("FastAPIAuthMiddleware requires an AuthGate instance")
            self.gate = gate

        async def dispatch(self, request: Request, call_next: Callable) -> Response:
            ctx = await from_starlette_request(request)
            res = ResponseContext()
            try:
                await self.gate.decode_token(ctx, res)
            except AuthGateError as e:
                _log_error(e, ctx)
                return starlette_error_response(e, res)

            setattr(request.state, REQUEST_KEY, ctx)
            return await call_next(request)


def setup_fastapi(
    app,
    gate,
    server=None,
    authorize_path: str = DEFAULT_AUTHORIZE_PATH,
    token_path: str = DEFAULT_TOKEN_PATH,
) -> None:
    """Install AuthGate on a FastAPI (or Starlette) application."""
    _require_fastapi()

    app.add_middleware(FastAPIAuthMiddleware, gate=gate)

    endpoint = gate.config.revive_token_endpoint
    if endpoint:
        app.add_route(endpoint, fastapi_endpoint(gate.revive_token), methods=["POST"])

    if server is not None:
        app.add_route(authorize_path, fastapi_endpoint(server.authorization_endpoint), methods=["GET"])
        app.add_route(token_path, fastapi_endpoint(server.token_endpoint), methods=["POST"])

    logger.info(f"AuthGate installed on FastAPI application (revive endpoint: {endpoint})")
