from __future__ import annotations

from typing import Any

from aiohttp import web

from ..services.errors import InvalidInputError
from ..services.expiry import parse_days
from ..services.payload import CreateUserRequest
from ..services.subscription import SubscriptionService
from .middlewares import error_middleware


async def _read_json(request: web.Request) -> Any:
    if not request.can_read_body:
        return None
    raw = await request.read()
    if not raw.strip():
        return None
    try:
        return await request.json()
    except ValueError as err:
        raise InvalidInputError("invalid json body") from err


def create_app(service: SubscriptionService, list_mode: str = "raw") -> web.Application:
    """Bind the gateway endpoints to ``service``."""

    async def ping(request: web.Request) -> web.Response:
        return web.json_response({"status": "ok", "message": "Server is running"})

    async def extend_user(request: web.Request) -> web.Response:
        username = request.match_info.get("username", "")
        days = parse_days(request.query.get("days"))
        result = await service.extend(username, days)
        return web.json_response(
            {
                "message": result.message,
                "old_expire": result.old_expire,
                "new_expire": result.new_expire,
                "data": result.upstream_response,
            }
        )

    async def create_user(request: web.Request) -> web.Response:
        body = await _read_json(request)
        created = await service.create(CreateUserRequest.from_dict(body))
        return web.json_response(created)

    async def list_users(request: web.Request) -> web.Response:
        return web.json_response(await service.list(list_mode))

    async def delete_user(request: web.Request) -> web.Response:
        username = request.match_info.get("username", "")
        return web.json_response(await service.remove(username))

    app = web.Application(middlewares=[error_middleware])
    app.router.add_get("/ping", ping)
    app.router.add_post("/users/{username}/extend", extend_user)
    app.router.add_post("/users", create_user)
    app.router.add_get("/users", list_users)
    app.router.add_delete("/users/{username}", delete_user)
    return app
