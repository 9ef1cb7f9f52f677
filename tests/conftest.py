"""Shared fixtures: environment for config and an in-process fake Marzban panel."""

import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest
from aiohttp import web

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

os.environ.setdefault("DISABLE_ENV_FILE", "true")
os.environ.setdefault("MARZBAN_URL", "https://panel.test")
os.environ.setdefault("MARZBAN_USERNAME", "admin")
os.environ.setdefault("MARZBAN_PASSWORD", "secret")

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "secret"


class FakePanel:
    """Minimal Marzban API: admin token, user CRUD and user listing."""

    def __init__(self) -> None:
        self.users: Dict[str, Dict[str, Any]] = {}
        self.calls: List[Tuple[str, str, Optional[Any]]] = []
        self.issued_tokens: List[str] = []
        self.revoked_tokens: set = set()
        self.app = self._build_app()

    def _authorized(self, request: web.Request) -> bool:
        header = request.headers.get("Authorization", "")
        token = header[len("Bearer "):] if header.startswith("Bearer ") else ""
        return token in self.issued_tokens and token not in self.revoked_tokens

    def _unauthorized(self) -> web.Response:
        return web.json_response({"detail": "Could not validate credentials"}, status=401)

    def _build_app(self) -> web.Application:
        async def token(request: web.Request) -> web.Response:
            form = await request.post()
            self.calls.append(("POST", request.path, dict(form)))
            if form.get("username") != ADMIN_USERNAME or form.get("password") != ADMIN_PASSWORD:
                return web.json_response({"detail": "Incorrect username or password"}, status=401)
            value = f"token-{len(self.issued_tokens) + 1}"
            self.issued_tokens.append(value)
            return web.json_response({"access_token": value, "token_type": "bearer"})

        async def get_user(request: web.Request) -> web.Response:
            self.calls.append(("GET", request.path, None))
            if not self._authorized(request):
                return self._unauthorized()
            user = self.users.get(request.match_info["username"])
            if user is None:
                return web.json_response({"detail": "User not found"}, status=404)
            return web.json_response(user)

        async def put_user(request: web.Request) -> web.Response:
            body = await request.json()
            self.calls.append(("PUT", request.path, body))
            if not self._authorized(request):
                return self._unauthorized()
            user = self.users.get(request.match_info["username"])
            if user is None:
                return web.json_response({"detail": "User not found"}, status=404)
            user.update(body)
            return web.json_response(user)

        async def delete_user(request: web.Request) -> web.Response:
            self.calls.append(("DELETE", request.path, None))
            if not self._authorized(request):
                return self._unauthorized()
            if self.users.pop(request.match_info["username"], None) is None:
                return web.json_response({"detail": "User not found"}, status=404)
            return web.json_response({})

        async def create_user(request: web.Request) -> web.Response:
            body = await request.json()
            self.calls.append(("POST", request.path, body))
            if not self._authorized(request):
                return self._unauthorized()
            if body["username"] in self.users:
                return web.json_response({"detail": "User already exists"}, status=409)
            record = {"expire": None, "data_limit": None, "used_traffic": 0, **body}
            self.users[body["username"]] = record
            return web.json_response(record)

        async def list_users(request: web.Request) -> web.Response:
            self.calls.append(("GET", request.path, None))
            if not self._authorized(request):
                return self._unauthorized()
            users = list(self.users.values())
            return web.json_response({"users": users, "total": len(users)})

        app = web.Application()
        app.router.add_post("/api/admin/token", token)
        app.router.add_get("/api/user/{username}", get_user)
        app.router.add_put("/api/user/{username}", put_user)
        app.router.add_delete("/api/user/{username}", delete_user)
        app.router.add_post("/api/user", create_user)
        app.router.add_get("/api/users", list_users)
        return app


@pytest.fixture
def panel() -> FakePanel:
    return FakePanel()
