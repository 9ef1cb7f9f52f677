from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict
from urllib.parse import quote

import aiohttp

from .errors import UpstreamRequestError

logger = logging.getLogger(__name__)


async def read_body(resp: aiohttp.ClientResponse) -> Any:
    if resp.content_type == "application/json":
        try:
            return await resp.json()
        except ValueError:
            return await resp.text()
    return await resp.text()


def _user_path(username: str) -> str:
    return f"/api/user/{quote(str(username), safe='')}"


class PanelGateway:
    """Authenticated calls to the Marzban user API. Never retries."""

    def __init__(self, base_url: str, session: aiohttp.ClientSession) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session

    async def _request(self, method: str, path: str, token: str, json: Any = None) -> Any:
        url = f"{self.base_url}{path}"
        headers = {"Authorization": f"Bearer {token}"}
        try:
            async with self.session.request(method, url, json=json, headers=headers) as resp:
                body = await read_body(resp)
                if not 200 <= resp.status < 300:
                    logger.warning("panel %s %s failed: %s %s", method, path, resp.status, body)
                    raise UpstreamRequestError(
                        f"panel request failed: {resp.status}", status=resp.status, body=body
                    )
                return body
        except (aiohttp.ClientError, asyncio.TimeoutError) as err:
            logger.warning("panel %s %s transport error: %r", method, path, err)
            raise UpstreamRequestError(str(err) or err.__class__.__name__) from err

    async def get_user(self, username: str, token: str) -> Dict[str, Any]:
        return await self._request("GET", _user_path(username), token)

    async def create_user(self, record: Dict[str, Any], token: str) -> Dict[str, Any]:
        return await self._request("POST", "/api/user", token, json=record)

    async def update_user(self, username: str, partial: Dict[str, Any], token: str) -> Dict[str, Any]:
        return await self._request("PUT", _user_path(username), token, json=partial)

    async def delete_user(self, username: str, token: str) -> Any:
        return await self._request("DELETE", _user_path(username), token)

    async def list_users(self, token: str) -> Any:
        return await self._request("GET", "/api/users", token)
