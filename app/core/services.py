"""
Process-wide service objects: the SheetDB client, the cache/batch queue and
the notifier. Built once in the application lifespan and stored on
``app.state.services``; handlers receive them through the dependencies below,
which tests override.
"""

import logging
from dataclasses import dataclass
from typing import List

from fastapi import Request

from app.core.config import Settings
from app.schemas.sheet import BatchResult, SheetUpdate
from app.utils.cache import SyncCache
from app.utils.discord import Channel, DiscordNotifier, Notifier, NullNotifier
from app.utils.sheetdb import SheetDBClient

logger = logging.getLogger(__name__)


@dataclass
class Services:
    sheet: SheetDBClient
    cache: SyncCache
    notifier: Notifier

    async def push_sheet_updates(self, updates: List[SheetUpdate]) -> BatchResult:
        """Flush callback for queued sheet edits; cached sheet reads are dropped afterwards"""
        try:
            return await self.sheet.batch_update_rows(updates)
        finally:
            self.cache.invalidate_pattern(r"^sheet_")

    async def close(self) -> None:
        await self.cache.flush_all()
        await self.sheet.close()
        close = getattr(self.notifier, "close", None)
        if close is not None:
            await close()


def build_services(config: Settings) -> Services:
    sheet = SheetDBClient(
        config.SHEETDB_API_URL,
        rate_limit_delay=config.SHEETDB_RATE_LIMIT_DELAY,
        max_retries=config.SHEETDB_MAX_RETRIES,
        batch_size=config.SHEETDB_BATCH_SIZE,
        batch_pause=config.SHEETDB_BATCH_PAUSE,
        timeout=config.SHEETDB_TIMEOUT,
    )
    cache = SyncCache(default_ttl=config.CACHE_DEFAULT_TTL, batch_delay=config.BATCH_FLUSH_DELAY)

    webhooks = {
        Channel.ERRORS: config.DISCORD_ERRORS_WEBHOOK_URL,
        Channel.UPDATES: config.DISCORD_UPDATES_WEBHOOK_URL,
    }
    if any(webhooks.values()):
        notifier: Notifier = DiscordNotifier(webhooks, username=config.DISCORD_USERNAME)
    else:
        logger.info("No Discord webhooks configured; notifications disabled")
        notifier = NullNotifier()

    return Services(sheet=sheet, cache=cache, notifier=notifier)


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_sheet_client(request: Request) -> SheetDBClient:
    return get_services(request).sheet


def get_sync_cache(request: Request) -> SyncCache:
    return get_services(request).cache


def get_notifier(request: Request) -> Notifier:
    return get_services(request).notifier
