"""
AuthGate on aiohttp.

Runs a small application with a login route, a protected route, token
revival and an OAuth2 authorization server supporting the client
credentials grant.

    pip install authgate-py[aiohttp]
    AUTHGATE_SECRET=change-me-to-a-long-random-value python examples/aiohttp_server.py
"""

import logging

from aiohttp import web

from authgate import AuthGate, AuthGateConfig, LocalStrategy
from authgate.http import aiohttp_handler, aiohttp_login_required, setup_aiohttp
from authgate.http.middleware import REQUEST_KEY
from authgate.oauth2 import AuthorizationServer, AuthorizationTokenResponse

USERS = {"alice": "wonderland"}
CLIENTS = {"reporting": "reporting-secret"}


class ExampleAuthorizationServer(AuthorizationServer):
    """Issues client tokens signed by the gate's codec"""

    def __init__(self, gate):
        self.gate = gate

    async def find_client(self, client_id):
        return client_id if client_id in CLIENTS else None

    async def verify_client(self, client, client_secret):
        return CLIENTS[client] == client_secret

    async def client_credentials_grant(self, client, req, res):
        token = self.gate.codec.issue(f"client:{client}", life_span=3600 * 1000)
        return AuthorizationTokenResponse(self.gate.codec.serialize(token), expires_in=3600)


async def whoami(request):
    return web.json_response({"user": request[REQUEST_KEY].user})


def create_app():
    gate = AuthGate(
        AuthGateConfig.from_env(),
        strategies=[LocalStrategy(lambda u, p: u if USERS.get(u) == p else None)],
    )

    app = web.Application()
    setup_aiohttp(app, gate, ExampleAuthorizationServer(gate))
    app.router.add_post("/login", aiohttp_handler(gate.authenticate("local")))
    app.router.add_post("/logout", aiohttp_handler(gate.logout()))
    app.router.add_get("/whoami", aiohttp_login_required(gate)(whoami))
    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    web.run_app(create_app(), port=8080)
