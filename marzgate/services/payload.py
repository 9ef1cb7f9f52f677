from __future__ import annotations

import datetime as dt
import math
import random
from dataclasses import dataclass, fields
from typing import Any, Dict, List, Optional

from .errors import InvalidInputError
from .expiry import add_months

DEFAULT_STATUS = "active"
DEFAULT_RESET_STRATEGY = "no_reset"
DEFAULT_INBOUND_PROTOCOL = "vless"
DEFAULT_INBOUND_TAG = "VLESS TCP REALITY"


@dataclass
class CreateUserRequest:
    """Caller-supplied user creation input. ``None`` means the field was not sent."""

    username: Optional[str] = None
    telegram_id: Optional[str] = None
    plan: Optional[str] = None
    status: Optional[str] = None
    expire: Optional[Any] = None
    months: Optional[Any] = None
    data_limit: Optional[int] = None
    data_limit_reset_strategy: Optional[str] = None
    proxies: Optional[Dict[str, Any]] = None
    inbounds: Optional[Dict[str, List[str]]] = None
    note: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "CreateUserRequest":
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise InvalidInputError("request body must be a JSON object")
        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in data.items() if key in known and value is not None}
        for key in ("proxies", "inbounds"):
            if key in values and not isinstance(values[key], dict):
                raise InvalidInputError(f"{key} must be an object")
        if "data_limit" in values:
            values["data_limit"] = _as_int(values["data_limit"])
            if values["data_limit"] is None:
                raise InvalidInputError("data_limit must be an integer")
        for key in ("username", "telegram_id", "plan", "status", "data_limit_reset_strategy", "note"):
            if key in values:
                values[key] = str(values[key])
        return cls(**values)


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def generate_username(telegram_id: Optional[str], plan: Optional[str], rng: Optional[random.Random] = None) -> str:
    suffix = (rng or random).randint(0, 9999)
    return f"{telegram_id or 'user'}_{plan or 'M'}_{suffix}"


def resolve_expire(request: CreateUserRequest, now: Optional[dt.datetime] = None) -> Optional[int]:
    if isinstance(request.expire, float) and not math.isfinite(request.expire):
        raise InvalidInputError("expire must be a finite number")
    explicit = _as_int(request.expire)
    if explicit is not None:
        return explicit
    if request.months is None:
        return None
    months = _as_int(request.months)
    if months is None or months < 1:
        raise InvalidInputError("months must be a positive integer")
    moment = now or dt.datetime.now(dt.timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=dt.timezone.utc)
    moment = moment.astimezone(dt.timezone.utc).replace(second=0, microsecond=0)
    try:
        return int(add_months(moment, months).timestamp())
    except (OverflowError, ValueError) as err:
        raise InvalidInputError("months out of range") from err


def normalize(
    request: CreateUserRequest,
    now: Optional[dt.datetime] = None,
    rng: Optional[random.Random] = None,
    default_inbounds: Optional[Dict[str, List[str]]] = None,
) -> Dict[str, Any]:
    """Build the Marzban ``POST /api/user`` payload from a loosely shaped request.

    Unresolved optional fields are left out so the panel applies its own
    defaults: no ``expire`` means unlimited time, no ``data_limit`` means
    unlimited traffic.
    """
    if default_inbounds is None:
        default_inbounds = {DEFAULT_INBOUND_PROTOCOL: [DEFAULT_INBOUND_TAG]}

    payload: Dict[str, Any] = {
        "username": request.username or generate_username(request.telegram_id, request.plan, rng),
        "status": request.status or DEFAULT_STATUS,
        "data_limit_reset_strategy": request.data_limit_reset_strategy or DEFAULT_RESET_STRATEGY,
        "proxies": request.proxies if request.proxies else {"vless": {}},
        "inbounds": request.inbounds if request.inbounds else {k: list(v) for k, v in default_inbounds.items()},
        "note": request.note if request.note is not None else "",
    }
    expire = resolve_expire(request, now)
    if expire is not None:
        payload["expire"] = expire
    if request.data_limit is not None:
        payload["data_limit"] = request.data_limit
    return payload
