"""Tests for the maintenance scheduler."""

import os
import time
from unittest.mock import AsyncMock, patch

import pytest

from filehub.config import settings
from filehub.services.scheduler import CleanupScheduler
from filehub.services.storage_service import TEMP_PREFIX


@pytest.mark.asyncio
async def test_jobs_registered(storage):
    scheduler = CleanupScheduler(storage)
    scheduler.start()
    try:
        job_ids = {job.id for job in scheduler._scheduler.get_jobs()}
        assert job_ids == {"sweep_orphans", "prune_access_rows"}
    finally:
        await scheduler.stop()
    assert not scheduler._scheduler.running


@pytest.mark.asyncio
async def test_sweep_uses_configured_age(storage, acme_root, monkeypatch):
    orphan = acme_root / f"{TEMP_PREFIX}abc"
    orphan.write_bytes(b"partial")
    old = time.time() - 10 * 60
    os.utime(orphan, (old, old))

    monkeypatch.setattr(settings, "orphan_max_age_minutes", 60)
    assert await CleanupScheduler(storage).sweep_orphans() == 0
    assert orphan.exists()

    monkeypatch.setattr(settings, "orphan_max_age_minutes", 5)
    assert await CleanupScheduler(storage).sweep_orphans() == 1
    assert not orphan.exists()


@pytest.mark.asyncio
async def test_sweep_failure_is_logged_not_raised(storage):
    with patch.object(storage, "sweep_orphans", side_effect=PermissionError("denied")):
        assert await CleanupScheduler(storage).sweep_orphans() == 0


@pytest.mark.asyncio
async def test_prune_failure_is_logged_not_raised(storage):
    with patch.object(storage, "prune_access_rows", new=AsyncMock(side_effect=RuntimeError("db locked"))):
        with patch("filehub.services.scheduler.async_session") as session_factory:
            session_factory.return_value.__aenter__.return_value = object()
            assert await CleanupScheduler(storage).prune_access_rows() == 0


@pytest.mark.asyncio
async def test_prune_spares_rows_younger_than_orphan_age(storage, monkeypatch):
    monkeypatch.setattr(settings, "orphan_max_age_minutes", 30)
    with patch.object(storage, "prune_access_rows", new=AsyncMock(return_value=2)) as prune:
        with patch("filehub.services.scheduler.async_session") as session_factory:
            db = object()
            session_factory.return_value.__aenter__.return_value = db
            assert await CleanupScheduler(storage).prune_access_rows() == 2

    prune.assert_awaited_once_with(db, min_age_seconds=1800)
