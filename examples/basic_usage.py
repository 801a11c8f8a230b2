"""
Basic AuthGate usage example.

This example walks through the token lifecycle without any web framework:
- Logging a user in through a strategy
- Verifying the issued token on a protected request
- Reviving the token after it expires
- Logging out
"""

import asyncio
from datetime import datetime, timedelta, timezone

from authgate import AuthGate, AuthGateConfig, LocalStrategy, RequestContext, ResponseContext
from authgate.audit import MemoryAuditLogger
from authgate.errors import ExpiredTokenError

USERS = {"alice": "wonderland"}


def verify(username, password):
    return {"id": username} if USERS.get(username) == password else None


class Clock:
    def __init__(self):
        self.now = datetime.now(timezone.utc)

    def __call__(self):
        return self.now


async def basic_example():
    """Demonstrate basic AuthGate usage"""
    print("Basic AuthGate Example")
    print("=" * 30)

    clock = Clock()
    audit = MemoryAuditLogger()

    # 1. Create the gate
    gate = AuthGate(
        AuthGateConfig(secret="example-secret-that-is-long-enough!", token_life_span="15m"),
        serializer=lambda user: user["id"],
        deserializer=lambda user_id: {"id": user_id},
        strategies=[LocalStrategy(verify)],
        audit_logger=audit,
        clock=clock,
    )
    print("✓ Created AuthGate")

    # 2. Log in
    login = RequestContext(
        method="POST",
        path="/login",
        headers={"Accept": "application/json"},
        body={"username": "alice", "password": "wonderland"},
        remote="127.0.0.1",
    )
    result = await gate.authenticate("local")(login, ResponseContext())
    token = result["token"]
    print(f"✓ Token issued: {token[:20]}...")

    # 3. Access a protected route
    request = RequestContext(headers={"Authorization": f"Bearer {token}"}, remote="127.0.0.1")
    await gate.require_auth(request, ResponseContext())
    print(f"✓ Token validated for user: {request.user['id']}")

    # 4. Let the token expire, then revive it
    clock.now += timedelta(minutes=20)
    try:
        await gate.decode_token(request, ResponseContext())
    except ExpiredTokenError as e:
        print(f"✓ Token rejected: {e.code.value}")

    revive = RequestContext(
        method="POST",
        path="/auth/token",
        headers={"Authorization": f"Bearer {token}"},
        remote="127.0.0.1",
    )
    revived = await gate.revive_token(revive, ResponseContext())
    print(f"✓ Token revived: {revived['token'][:20]}...")

    # 5. Log out
    await gate.logout()(revive, ResponseContext())
    print("✓ Logged out")

    events = await audit.get_events()
    print(f"✓ Audit events logged: {len(events)}")


if __name__ == "__main__":
    asyncio.run(basic_example())
