from __future__ import annotations

from typing import Any, Optional


class GatewayError(Exception):
    """Base error carrying the upstream status and body when the panel sent one."""

    def __init__(self, message: str, status: Optional[int] = None, body: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.body = body

    @property
    def detail(self) -> Any:
        return self.body if self.body not in (None, "") else self.message


class UpstreamAuthError(GatewayError):
    pass


class UpstreamRequestError(GatewayError):
    pass


class InvalidInputError(GatewayError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status=400)
