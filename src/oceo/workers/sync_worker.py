"""MMFC auto-sync arq worker.

Walks every active key with auto-sync enabled and re-pulls its storefront
products when the key's sync frequency says a run is due.
"""

from __future__ import annotations

import logging

from arq import cron

from oceo.config import get_settings
from oceo.database import close_db, get_session_factory, init_db
from oceo.sync.mmfc_service import sync_all_auto_sync_keys

logger = logging.getLogger(__name__)


async def sync_startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize the DB engine on worker startup."""
    settings = get_settings()
    await init_db(settings.database_url)
    logger.info("MMFC sync worker started")


async def sync_shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    await close_db()
    logger.info("MMFC sync worker shut down")


async def run_auto_sync(ctx: dict) -> dict:  # type: ignore[type-arg]
    """Sync every due auto-sync key in one session and commit."""
    factory = get_session_factory()
    async with factory() as db:
        summary = await sync_all_auto_sync_keys(db)
        await db.commit()
    if summary["synced"] or summary["failed"]:
        logger.info("MMFC auto-sync: %d synced, %d failed", summary["synced"], summary["failed"])
    return summary


class WorkerSettings:
    """arq worker settings for MMFC auto-sync."""

    functions = [run_auto_sync]
    # Hourly check; per-key frequency decides whether a key is actually due
    cron_jobs = [cron(run_auto_sync, minute={0}, run_at_startup=True)]
    on_startup = sync_startup
    on_shutdown = sync_shutdown
    max_jobs = 1
    job_timeout = 600
