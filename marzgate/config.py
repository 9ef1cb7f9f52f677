import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

from .services.payload import DEFAULT_INBOUND_PROTOCOL, DEFAULT_INBOUND_TAG
from .services.subscription import LIST_MODES


def _load_env_from_candidates() -> None:
    """Load .env from cwd or project root unless explicitly disabled."""
    if os.getenv("DISABLE_ENV_FILE") == "true":
        return

    candidates = [
        Path(".env"),
        Path(__file__).resolve().parents[1] / ".env",
    ]
    for path in candidates:
        if path.exists():
            load_dotenv(path)
            return


def _as_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


def _as_int(value: Optional[str], default: int = 0) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


@dataclass
class Config:
    marzban_url: str
    marzban_username: str = ""
    marzban_password: str = ""
    verify_tls: bool = False
    request_timeout: int = 15
    token_ttl: int = 0

    default_inbound_protocol: str = DEFAULT_INBOUND_PROTOCOL
    default_inbound_tag: str = DEFAULT_INBOUND_TAG
    users_list_mode: str = "raw"

    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    @property
    def default_inbounds(self) -> Dict[str, List[str]]:
        return {self.default_inbound_protocol: [self.default_inbound_tag]}

    @classmethod
    def load(cls) -> "Config":
        _load_env_from_candidates()

        marzban_url = os.getenv("MARZBAN_URL", "").strip()
        if not marzban_url:
            raise RuntimeError("MARZBAN_URL is required")

        users_list_mode = os.getenv("USERS_LIST_MODE", "raw").strip().lower()
        if users_list_mode not in LIST_MODES:
            users_list_mode = "raw"

        request_timeout = _as_int(os.getenv("MARZBAN_TIMEOUT"), 15)
        if request_timeout <= 0:
            request_timeout = 15

        return cls(
            marzban_url=marzban_url.rstrip("/"),
            marzban_username=os.getenv("MARZBAN_USERNAME", ""),
            marzban_password=os.getenv("MARZBAN_PASSWORD", ""),
            verify_tls=_as_bool(os.getenv("MARZBAN_VERIFY_TLS")),
            request_timeout=request_timeout,
            token_ttl=max(0, _as_int(os.getenv("MARZBAN_TOKEN_TTL"), 0)),
            default_inbound_protocol=os.getenv("DEFAULT_INBOUND_PROTOCOL", DEFAULT_INBOUND_PROTOCOL),
            default_inbound_tag=os.getenv("DEFAULT_INBOUND_TAG", DEFAULT_INBOUND_TAG),
            users_list_mode=users_list_mode,
            host=os.getenv("HOST", "0.0.0.0"),
            port=_as_int(os.getenv("PORT"), 3000),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


config = Config.load()
