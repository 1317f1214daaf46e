"""Tenant registry — persisted tenant records and their storage roots."""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from filehub.models.tenant import Tenant
from filehub.services.exceptions import Conflict, InvalidInput, NotFound
from filehub.services.path_resolver import PathResolver
from filehub.tenancy import ALL_TENANTS, is_valid_tenant_id

logger = logging.getLogger(__name__)


class TenantService:
    def __init__(self, resolver: PathResolver):
        self.resolver = resolver

    async def list_tenants(self, db: AsyncSession) -> list[Tenant]:
        result = await db.execute(select(Tenant).order_by(Tenant.name))
        return list(result.scalars().all())

    async def get_tenant(self, db: AsyncSession, tenant_id: str) -> Tenant | None:
        return await db.get(Tenant, tenant_id)

    async def require_tenant(self, db: AsyncSession, tenant_id: str) -> Tenant:
        tenant = await self.get_tenant(db, tenant_id) if is_valid_tenant_id(tenant_id) else None
        if tenant is None:
            raise NotFound("tenant", tenant_id, "Tenant not found")
        return tenant

    async def create_tenant(self, db: AsyncSession, tenant_id: str, name: str) -> Tenant:
        """Register a tenant and create its (empty) storage root."""
        if tenant_id == ALL_TENANTS or not is_valid_tenant_id(tenant_id):
            raise InvalidInput("create_tenant", tenant_id, "Invalid tenant id")
        name = (name or "").strip()
        # Tenant names prefix multi-tenant search results as "<name>/<file>"
        if not name or "/" in name:
            raise InvalidInput("create_tenant", tenant_id, "Invalid tenant name")
        if await self.get_tenant(db, tenant_id) is not None:
            raise Conflict("create_tenant", tenant_id, "Tenant already exists")

        tenant = Tenant(tenant_id=tenant_id, name=name)
        db.add(tenant)
        await db.commit()
        await db.refresh(tenant)
        await asyncio.to_thread(self.resolver.tenant_root, tenant_id)
        logger.info("Created tenant %s (%s)", tenant_id, name)
        return tenant

    async def directory(self, db: AsyncSession) -> list[tuple[str, str]]:
        """``[(tenant_id, name), ...]`` for multi-tenant search."""
        return [(t.tenant_id, t.name) for t in await self.list_tenants(db)]
