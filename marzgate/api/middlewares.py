from __future__ import annotations

import logging
from typing import Awaitable, Callable

from aiohttp import web

from ..services.errors import GatewayError, InvalidInputError

logger = logging.getLogger(__name__)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def _response_status(err: GatewayError) -> int:
    if err.status and 400 <= err.status < 600:
        return err.status
    return 500


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except InvalidInputError as err:
        return web.json_response({"error": err.message}, status=400)
    except GatewayError as err:
        logger.error("%s %s failed: %s", request.method, request.path, err.detail)
        return web.json_response({"error": err.detail}, status=_response_status(err))
    except Exception as err:  # noqa: BLE001
        logger.exception("%s %s crashed: %s", request.method, request.path, err)
        return web.json_response({"error": "internal error"}, status=500)
