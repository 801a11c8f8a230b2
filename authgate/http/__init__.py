"""
HTTP layer: framework-neutral request/response contexts and the aiohttp and
FastAPI/Starlette adapters.
"""

from .context import Cookie, RequestContext, ResponseContext
from .middleware import (
    AIOHTTP_AVAILABLE,
    FASTAPI_AVAILABLE,
    aiohttp_handler,
    aiohttp_login_required,
    create_aiohttp_middleware,
    fastapi_endpoint,
    setup_aiohttp,
    setup_fastapi,
)

__all__ = [
    "Cookie",
    "RequestContext",
    "ResponseContext",
    "AIOHTTP_AVAILABLE",
    "FASTAPI_AVAILABLE",
    "aiohttp_handler",
    "aiohttp_login_required",
    "create_aiohttp_middleware",
    "fastapi_endpoint",
    "setup_aiohttp",
    "setup_fastapi",
]
