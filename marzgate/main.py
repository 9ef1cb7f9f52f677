import asyncio
import logging

import aiohttp
from aiohttp import web

from .api.routes import create_app
from .config import Config, config
from .logging_setup import setup_logging
from .services.panel import PanelGateway
from .services.session import CachingSessionProvider, SessionProvider
from .services.subscription import SubscriptionService

logger = logging.getLogger(__name__)


def build_client_session(cfg: Config) -> aiohttp.ClientSession:
    # ssl=False trusts any certificate the panel presents.
    connector = aiohttp.TCPConnector(ssl=None if cfg.verify_tls else False)
    timeout = aiohttp.ClientTimeout(total=cfg.request_timeout)
    return aiohttp.ClientSession(connector=connector, timeout=timeout)


def build_service(cfg: Config, session: aiohttp.ClientSession) -> SubscriptionService:
    sessions = SessionProvider(cfg.marzban_url, cfg.marzban_username, cfg.marzban_password, session)
    if cfg.token_ttl > 0:
        sessions = CachingSessionProvider(sessions, cfg.token_ttl)
    panel = PanelGateway(cfg.marzban_url, session)
    return SubscriptionService(sessions, panel, default_inbounds=cfg.default_inbounds)


async def start_api_server(service: SubscriptionService, cfg: Config) -> web.AppRunner:
    app = create_app(service, list_mode=cfg.users_list_mode)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, cfg.host, cfg.port)
    await site.start()
    logger.info("API server started on http://%s:%s", cfg.host, cfg.port)
    return runner


async def main() -> None:
    setup_logging(config.log_level)
    if not config.verify_tls:
        logger.warning("TLS verification for %s is disabled", config.marzban_url)

    session = build_client_session(config)
    service = build_service(config, session)
    runner = await start_api_server(service, config)
    try:
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()
        await session.close()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
