"""
Shared fixtures for AuthGate tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from authgate import AuthGate, AuthGateConfig, LocalStrategy
from authgate.audit import MemoryAuditLogger
from authgate.token import SigningContext, TokenCodec

SECRET = "test-signing-secret-0123456789abcdef"

USERS = {
    "alice": "wonderland",
    "bob": "builder",
}


class FakeClock:
    """Manually advanced UTC clock"""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, milliseconds):
        self.now = self.now + timedelta(milliseconds=milliseconds)
        return self.now


def verify_user(username, password):
    """Return the user record for valid credentials"""
    if USERS.get(username) == password:
        return {"id": username}
    return None


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def audit():
    return MemoryAuditLogger()


@pytest.fixture
def signing_context():
    return SigningContext.from_secret(SECRET)


@pytest.fixture
def codec(signing_context, clock):
    return TokenCodec(signing_context, clock=clock)


@pytest.fixture
def make_gate(clock, audit):
    """Factory for gates sharing the test clock and audit log"""

    def factory(**config_overrides):
        config = AuthGateConfig(secret=SECRET, **config_overrides)
        return AuthGate(
            config,
            serializer=lambda user: user["id"],
            deserializer=lambda subject_id: {"id": subject_id},
            strategies=[LocalStrategy(verify_user)],
            audit_logger=audit,
            clock=clock,
        )

    return factory


@pytest.fixture
def gate(make_gate):
    return make_gate(token_life_span=timedelta(hours=1))
