"""
Framework-neutral request and response contexts.

The authentication gate and the authorization server only ever see these
objects; the adapters in ``authgate.http.middleware`` translate to and from
aiohttp or Starlette requests.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Set, Union

from ..util.aio import maybe_await

BodyLoader = Callable[[], Union[Dict[str, Any], Awaitable[Dict[str, Any]]]]

_JSON_MEDIA_TYPES = ("application/json", "application/*", "*/*")


class RequestContext:
    """An in-flight request as seen by AuthGate."""

    def __init__(
        self,
        method: str = "GET",
        path: str = "/",
        headers: Optional[Mapping[str, str]] = None,
        query: Optional[Mapping[str, Any]] = None,
        cookies: Optional[Mapping[str, str]] = None,
        remote: Optional[str] = None,
        body: Optional[Mapping[str, Any]] = None,
        body_loader: Optional[BodyLoader] = None,
    ):
        self.method = method.upper()
        self.path = path
        self.headers: Dict[str, str] = {k.lower(): v for k, v in (headers or {}).items()}
        self.query: Dict[str, Any] = dict(query or {})
        self.cookies: Dict[str, str] = dict(cookies or {})
        self.remote = remote
        self.properties: Dict[str, Any] = {}
        self._body = dict(body) if body is not None else None
        self._body_loader = body_loader

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name.lower(), default)

    async def parse_body(self) -> Dict[str, Any]:
        """Parse the request body once and cache the resulting mapping."""
        if self._body is None:
            if self._body_loader is not None:
                self._body = dict(await maybe_await(self._body_loader()) or {})
            else:
                self._body = {}
        return self._body

    def accepts_json(self) -> bool:
        accept = self.header("accept")
        if not accept:
            return False
        return any(media_type in accept for media_type in _JSON_MEDIA_TYPES)

    @property
    def user(self) -> Any:
        return self.properties.get("user")

    @property
    def token(self) -> Any:
        return self.properties.get("token")

    def __repr__(self) -> str:
        return f"<RequestContext {self.method} {self.path} from {self.remote}>"


@dataclass
class Cookie:
    """A cookie to be set on the response."""
    name: str
    value: str
    path: str = "/"
    http_only: bool = True
    secure: bool = False
    max_age: Optional[int] = None
    same_site: Optional[str] = "Lax"


class ResponseContext:
    """Response state accumulated while a request is handled."""

    def __init__(self):
        self.status: int = 200
        self.headers: Dict[str, str] = {}
        self.cookies: Dict[str, Cookie] = {}
        self.deleted_cookies: Set[str] = set()
        self.location: Optional[str] = None

    @property
    def is_redirect(self) -> bool:
        return self.location is not None

    def redirect(self, url: str, status: int = 302) -> None:
        self.location = url
        self.status = status
        self.headers["Location"] = url

    def set_cookie(self, name: str, value: str, **kwargs) -> Cookie:
        cookie = Cookie(name=name, value=value, **kwargs)
        self.cookies[name] = cookie
        self.deleted_cookies.discard(name)
        return cookie

    def delete_cookie(self, name: str) -> None:
        self.cookies.pop(name, None)
        self.deleted_cookies.add(name)

    def __repr__(self) -> str:
        return f"<ResponseContext {self.status} location={self.location}>"
