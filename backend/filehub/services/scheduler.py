"""APScheduler-based maintenance jobs for tenant storage."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from filehub.config import settings
from filehub.database import async_session

if TYPE_CHECKING:
    from filehub.services.storage_service import StorageService

logger = logging.getLogger(__name__)


class CleanupScheduler:
    """Periodic orphan sweep plus a nightly prune of stale access rows."""

    def __init__(self, storage: StorageService):
        self._storage = storage
        self._scheduler = AsyncIOScheduler(
            job_defaults={"coalesce": True, "max_instances": 1}
        )

    def start(self) -> None:
        interval = settings.cleanup_interval_minutes

        # Job 1: Remove temp files left behind by interrupted uploads
        self._scheduler.add_job(
            self.sweep_orphans,
            "interval",
            minutes=interval,
            id="sweep_orphans",
            name="Sweep orphaned upload files",
        )

        # Job 2: Drop access rows whose paths were removed out of band (at 03:05)
        self._scheduler.add_job(
            self.prune_access_rows,
            "cron",
            hour=3,
            minute=5,
            id="prune_access_rows",
            name="Prune stale access-level rows",
        )

        self._scheduler.start()
        logger.info("Cleanup scheduler started — orphan sweep every %d min", interval)

    async def stop(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Cleanup scheduler stopped")

    async def sweep_orphans(self) -> int:
        try:
            return await asyncio.to_thread(
                self._storage.sweep_orphans, settings.orphan_max_age_minutes * 60
            )
        except OSError as e:
            logger.error("Orphan sweep failed: %s", e)
            return 0

    async def prune_access_rows(self) -> int:
        try:
            async with async_session() as db:
                return await self._storage.prune_access_rows(
                    db, min_age_seconds=settings.orphan_max_age_minutes * 60
                )
        except Exception as e:
            logger.error("Access row prune failed: %s", e)
            return 0
