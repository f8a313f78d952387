"""
Wiring: build the bot and web app from a Config and run them in one event loop
"""

from __future__ import annotations

import asyncio
import logging

import uvicorn

from zoomvault.access import AccessGate
from zoomvault.bot import ChatBot
from zoomvault.catalogue import CatalogueQuery
from zoomvault.config import Config
from zoomvault.delivery import DeliveryService
from zoomvault.downloader import DownloadOrchestrator
from zoomvault.parser import LinkParser
from zoomvault.store import RecordStore
from zoomvault.transport import TelegramTransport
from zoomvault.web import create_app

logger = logging.getLogger(__name__)


def open_store(cfg: Config) -> RecordStore:
    store = RecordStore(cfg.database_path)
    store.initialize()
    return store


def build_bot(cfg: Config, store: RecordStore) -> ChatBot:
    """Assemble the chat pipeline (requires a bot token)"""
    cfg.validate()
    transport = TelegramTransport(str(cfg.bot_token), api_url=cfg.telegram_api_url)
    delivery = DeliveryService(transport, store, size_limit_bytes=cfg.delivery_limit_bytes)
    orchestrator = DownloadOrchestrator(
        store, transport, delivery, cfg.downloads_dir, executable=cfg.downloader
    )
    return ChatBot(
        transport=transport,
        store=store,
        gate=AccessGate(store, cfg),
        parser=LinkParser(),
        orchestrator=orchestrator,
        catalogue=CatalogueQuery(store, transport, delivery),
    )


async def serve_web(store: RecordStore, host: str, port: int) -> None:
    server = uvicorn.Server(
        uvicorn.Config(
            create_app(store), host=host, port=port, log_config=None, log_level="warning"
        )
    )
    logger.info(f"Web server listening on http://{host}:{port}")
    await server.serve()


async def run_all(cfg: Config, with_web: bool = True) -> None:
    """Run the bot (and optionally the web server) until cancelled"""
    store = open_store(cfg)
    bot = build_bot(cfg, store)
    cfg.downloads_dir.mkdir(parents=True, exist_ok=True)

    jobs = [bot.run_polling()]
    if with_web:
        jobs.append(serve_web(store, cfg.web_host, cfg.web_port))
    await asyncio.gather(*jobs)
