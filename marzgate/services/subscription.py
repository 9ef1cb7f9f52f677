from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .errors import InvalidInputError, UpstreamRequestError
from .expiry import compute_renewal, format_expire
from .panel import PanelGateway
from .payload import CreateUserRequest, normalize
from .session import SessionProvider

logger = logging.getLogger(__name__)

LIST_MODES = ("raw", "summary")


@dataclass
class RenewalResult:
    username: str
    days: int
    old_expire: Optional[int]
    new_expire: int
    upstream_response: Any

    @property
    def message(self) -> str:
        return f"Subscription of {self.username} extended by {self.days} days"


def _require_username(username: Optional[str]) -> str:
    if username is None or not str(username).strip():
        raise InvalidInputError("username is required")
    return str(username)


def _extract_users(data: Any) -> List[Dict[str, Any]]:
    if isinstance(data, dict):
        data = data.get("users", [])
    if not isinstance(data, list):
        return []
    return [item for item in data if isinstance(item, dict)]


class SubscriptionService:
    def __init__(
        self,
        sessions: SessionProvider,
        panel: PanelGateway,
        clock: Callable[[], float] = time.time,
        default_inbounds: Optional[Dict[str, List[str]]] = None,
    ) -> None:
        self.sessions = sessions
        self.panel = panel
        self.clock = clock
        self.default_inbounds = default_inbounds

    async def _call(self, operation: Callable[[str], Any]) -> Any:
        token = await self.sessions.acquire()
        try:
            return await operation(token)
        except UpstreamRequestError as err:
            if err.status == 401:
                # Cached token was rejected; the next operation fetches a new one.
                self.sessions.invalidate(token)
            raise

    async def extend(self, username: str, days: int) -> RenewalResult:
        username = _require_username(username)

        async def _extend(token: str) -> RenewalResult:
            user = await self.panel.get_user(username, token)
            old_expire = user.get("expire") if isinstance(user, dict) else None
            new_expire = compute_renewal(old_expire, int(self.clock()), days)
            updated = await self.panel.update_user(username, {"expire": new_expire}, token)
            return RenewalResult(username, days, old_expire, new_expire, updated)

        result = await self._call(_extend)
        logger.info("extended %s by %s days: %s -> %s", username, days, result.old_expire, result.new_expire)
        return result

    async def create(self, request: CreateUserRequest) -> Any:
        payload = normalize(request, default_inbounds=self.default_inbounds)
        logger.debug("creating panel user with payload %s", payload)
        created = await self._call(lambda token: self.panel.create_user(payload, token))
        logger.info("created panel user %s", payload["username"])
        return created

    async def remove(self, username: str) -> Dict[str, Any]:
        username = _require_username(username)
        data = await self._call(lambda token: self.panel.delete_user(username, token))
        logger.info("deleted panel user %s", username)
        return {"message": f"User {username} deleted", "data": data}

    async def list(self, mode: str = "raw") -> Any:
        data = await self._call(self.panel.list_users)
        if mode != "summary":
            return data
        return [
            {
                "username": user.get("username"),
                "status": user.get("status"),
                "expire": format_expire(user.get("expire")),
            }
            for user in _extract_users(data)
        ]
