"""
Bearer token codec and validity policy.
"""

from .codec import (
    AuthToken,
    SigningContext,
    TokenCodec,
    PERMANENT,
    utc_now,
)
from .policy import TokenValidityPolicy

__all__ = [
    "AuthToken",
    "SigningContext",
    "TokenCodec",
    "TokenValidityPolicy",
    "PERMANENT",
    "utc_now",
]
