"""Business logic services — singleton registry."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from filehub.config import settings

if TYPE_CHECKING:
    from filehub.services.auth_service import AuthService
    from filehub.services.path_resolver import PathResolver
    from filehub.services.scheduler import CleanupScheduler
    from filehub.services.search_service import SearchService
    from filehub.services.storage_service import StorageService
    from filehub.services.tenant_service import TenantService

logger = logging.getLogger(__name__)

_resolver: PathResolver | None = None
_storage_service: StorageService | None = None
_search_service: SearchService | None = None
_tenant_service: TenantService | None = None
_auth_service: AuthService | None = None
_scheduler: CleanupScheduler | None = None


def init_services(storage_root: str | None = None, start_scheduler: bool = True) -> None:
    """Create and wire up all service singletons."""
    global _resolver, _storage_service, _search_service, _tenant_service
    global _auth_service, _scheduler

    from filehub.services.access_levels import AccessLevelStore
    from filehub.services.auth_service import AuthService
    from filehub.services.path_resolver import PathResolver
    from filehub.services.scheduler import CleanupScheduler
    from filehub.services.search_service import SearchService
    from filehub.services.storage_service import StorageService
    from filehub.services.tenant_service import TenantService

    _resolver = PathResolver(storage_root or settings.storage_root)
    _resolver.storage_root.mkdir(parents=True, exist_ok=True)
    access = AccessLevelStore()

    _storage_service = StorageService(_resolver, access)
    _search_service = SearchService(_resolver, access)
    _tenant_service = TenantService(_resolver)
    _auth_service = AuthService()
    logger.info("Storage services initialized (root=%s)", _resolver.storage_root)

    if start_scheduler:
        _scheduler = CleanupScheduler(_storage_service)
        _scheduler.start()


async def shutdown_services() -> None:
    """Stop the maintenance scheduler."""
    global _scheduler
    if _scheduler:
        await _scheduler.stop()
        _scheduler = None


def get_resolver() -> PathResolver:
    if _resolver is None:
        raise RuntimeError("Services not initialized — call init_services() first")
    return _resolver


def get_storage_service() -> StorageService:
    if _storage_service is None:
        raise RuntimeError("Services not initialized — call init_services() first")
    return _storage_service


def get_search_service() -> SearchService:
    if _search_service is None:
        raise RuntimeError("Services not initialized — call init_services() first")
    return _search_service


def get_tenant_service() -> TenantService:
    if _tenant_service is None:
        raise RuntimeError("Services not initialized — call init_services() first")
    return _tenant_service


def get_auth_service() -> AuthService:
    if _auth_service is None:
        raise RuntimeError("Services not initialized — call init_services() first")
    return _auth_service


def get_scheduler() -> CleanupScheduler | None:
    return _scheduler
