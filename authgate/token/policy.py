"""
Token validity policy: origin binding, expiry and revival.
"""

import logging
from datetime import datetime
from typing import Optional

from ..errors import ExpiredTokenError, ForbiddenOriginError
from .codec import AuthToken, Clock, truncate_to_millis, utc_now

logger = logging.getLogger(__name__)


class TokenValidityPolicy:
    """
    Gates acceptance of a verified token.

    The origin check always runs before the expiry check, so a token that
    is both foreign and expired is reported as a forbidden origin.
    """

    def __init__(
        self,
        enforce_origin: bool = True,
        sliding_revival: bool = False,
        clock: Optional[Clock] = None,
    ):
        self.enforce_origin = enforce_origin
        self.sliding_revival = sliding_revival
        self.clock = clock or utc_now

    def check_origin(self, token: AuthToken, observed_origin: Optional[str]) -> None:
        if not self.enforce_origin:
            return

        # Nothing to compare against on either side
        if token.origin_address is None or observed_origin is None:
            return

        if token.origin_address != observed_origin:
            logger.warning(
                f"Token issued to {token.origin_address} presented from {observed_origin}"
            )
            raise ForbiddenOriginError()

    def is_expired(self, token: AuthToken, now: Optional[datetime] = None) -> bool:
        if token.is_permanent:
            return False
        now = now or self.clock()
        return now >= token.expires_at

    def validate(
        self,
        token: AuthToken,
        observed_origin: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AuthToken:
        """Return ``token`` unchanged if it may be accepted, raise otherwise."""
        self.check_origin(token, observed_origin)

        if self.is_expired(token, now):
            raise ExpiredTokenError()

        return token

    def revive(
        self,
        token: AuthToken,
        observed_origin: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AuthToken:
        """
        Renew an expired token instead of rejecting it.

        A still-valid token is returned as-is unless ``sliding_revival`` is
        enabled, in which case every revival moves ``issued_at`` to now.
        """
        self.check_origin(token, observed_origin)

        now = truncate_to_millis(now or self.clock())

        if self.is_expired(token, now):
            logger.info(f"Reviving expired token for subject {token.subject_id!r}")
            return token.renewed(now)

        if self.sliding_revival and not token.is_permanent:
            return token.renewed(now)

        return token
