"""
Bearer token construction, signing and verification.

Tokens are compact HS256 JWS strings produced with PyJWT. The claim set is
fixed; a token whose payload carries any other claim, or misses one, is
rejected as malformed.
"""

import binascii
import logging
import secrets
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Union

import jwt
from jwt.utils import base64url_decode, base64url_encode

from ..errors import ConfigurationError, MalformedTokenError

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
PERMANENT = -1
HMAC_ALGORITHMS = ("HS256", "HS384", "HS512")
CLAIMS = frozenset({"iss", "uid", "iat_ms", "lsp", "ip"})

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current UTC time truncated to millisecond precision."""
    return truncate_to_millis(datetime.now(timezone.utc))


def truncate_to_millis(value: datetime) -> datetime:
    return value.replace(microsecond=value.microsecond - value.microsecond % 1000)


def to_epoch_millis(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - EPOCH) // timedelta(milliseconds=1)


def from_epoch_millis(millis: int) -> datetime:
    return EPOCH + timedelta(milliseconds=millis)


@dataclass(frozen=True)
class AuthToken:
    """A signed assertion that ``subject_id`` authenticated at ``issued_at``."""
    subject_id: Any
    issued_at: datetime
    life_span: int = PERMANENT  # milliseconds, -1 means the token never expires
    origin_address: Optional[str] = None

    @property
    def is_permanent(self) -> bool:
        return self.life_span == PERMANENT

    @property
    def expires_at(self) -> Optional[datetime]:
        if self.is_permanent:
            return None
        return self.issued_at + timedelta(milliseconds=self.life_span)

    def renewed(self, now: datetime) -> "AuthToken":
        """Copy of this token issued at ``now``."""
        return replace(self, issued_at=truncate_to_millis(now))

    def to_claims(self, issuer: str) -> Dict[str, Any]:
        return {
            "iss": issuer,
            "uid": self.subject_id,
            "iat_ms": to_epoch_millis(self.issued_at),
            "lsp": self.life_span,
            "ip": self.origin_address,
        }

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "AuthToken":
        if set(claims) != CLAIMS:
            raise MalformedTokenError("Unexpected token claims.")

        issued = claims["iat_ms"]
        life_span = claims["lsp"]
        origin = claims["ip"]

        if not _is_int(issued) or not _is_int(life_span) or life_span < PERMANENT:
            raise MalformedTokenError("Invalid token timestamps.")
        if origin is not None and not isinstance(origin, str):
            raise MalformedTokenError("Invalid token origin.")

        return cls(
            subject_id=claims["uid"],
            issued_at=from_epoch_millis(issued),
            life_span=life_span,
            origin_address=origin,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subject_id": self.subject_id,
            "issued_at": self.issued_at.isoformat(),
            "life_span": self.life_span,
            "origin_address": self.origin_address,
        }


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class SigningContext:
    """
    Symmetric key material used to sign and verify tokens.

    Immutable, so a single instance can be shared by every concurrent
    request for the lifetime of the process.
    """
    key: bytes = field(repr=False)
    algorithm: str = "HS256"

    def __post_init__(self):
        if not self.key:
            raise ConfigurationError("Signing key must not be empty")
        if self.algorithm not in HMAC_ALGORITHMS:
            raise ConfigurationError(f"Unsupported signing algorithm: {self.algorithm}")

    @classmethod
    def from_secret(cls, secret: Union[str, bytes], algorithm: str = "HS256") -> "SigningContext":
        if isinstance(secret, str):
            secret = secret.encode("utf-8")
        return cls(key=secret, algorithm=algorithm)

    @classmethod
    def generate(cls, length: int = 32, algorithm: str = "HS256") -> "SigningContext":
        """
        Create a context around a fresh random secret.

        Tokens signed with a generated secret stop verifying once the
        process restarts, because the next start generates a new one.
        """
        return cls.from_secret(secrets.token_urlsafe(length), algorithm)


class TokenCodec:
    """Issues, serializes and verifies ``AuthToken`` values."""

    def __init__(
        self,
        context: SigningContext,
        issuer: str = "authgate",
        default_life_span: int = PERMANENT,
        clock: Optional[Clock] = None,
    ):
        self.context = context
        self.issuer = issuer
        self.default_life_span = default_life_span
        self.clock = clock or utc_now

    def now(self) -> datetime:
        return truncate_to_millis(self.clock())

    def issue(
        self,
        subject_id: Any,
        life_span: Optional[int] = None,
        origin_address: Optional[str] = None,
    ) -> AuthToken:
        """Create a token for ``subject_id`` issued now."""
        return AuthToken(
            subject_id=subject_id,
            issued_at=self.now(),
            life_span=self.default_life_span if life_span is None else life_span,
            origin_address=origin_address,
        )

    def serialize(self, token: AuthToken, context: Optional[SigningContext] = None) -> str:
        """
        Sign ``token`` and return its compact string form.

        Raises:
            ConfigurationError: if the subject id is not JSON-encodable.
        """
        context = context or self.context
        try:
            encoded = jwt.encode(token.to_claims(self.issuer), context.key, algorithm=context.algorithm)
        except TypeError as e:
            raise ConfigurationError(
                f"Serializer returned a subject id that is not JSON-encodable: "
                f"{type(token.subject_id).__name__}",
                cause=e,
            )
        if isinstance(encoded, bytes):
            encoded = encoded.decode("utf-8")
        return encoded

    def parse_and_verify(self, compact: str, context: Optional[SigningContext] = None) -> AuthToken:
        """
        Verify the signature of ``compact`` and decode it.

        Raises:
            MalformedTokenError: if the string is not a canonical compact
                token, the signature does not match, or the claims are not
                exactly the expected set.
        """
        context = context or self.context

        if not isinstance(compact, str) or not compact:
            raise MalformedTokenError()

        self._check_canonical(compact)

        try:
            claims = jwt.decode(
                compact,
                context.key,
                algorithms=[context.algorithm],
                issuer=self.issuer,
            )
        except jwt.InvalidTokenError as e:
            logger.debug(f"Token verification failed: {e}")
            raise MalformedTokenError(cause=e)

        return AuthToken.from_claims(claims)

    @staticmethod
    def _check_canonical(compact: str) -> None:
        segments = compact.split(".")
        if len(segments) != 3:
            raise MalformedTokenError()

        for segment in segments:
            try:
                if base64url_encode(base64url_decode(segment)).decode("ascii") != segment:
                    raise MalformedTokenError()
            except (binascii.Error, ValueError, UnicodeError) as e:
                raise MalformedTokenError(cause=e)
