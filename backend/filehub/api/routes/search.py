"""Search route — single tenant, or every tenant for super admins."""

from __future__ import annotations

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from filehub.api.deps import get_current_principal, resolve_tenant
from filehub.config import settings
from filehub.database import get_db
from filehub.services import get_search_service, get_tenant_service
from filehub.services.access_control import visible
from filehub.services.auth_service import Principal
from filehub.services.exceptions import PermissionDenied
from filehub.tenancy import ALL_TENANTS

router = APIRouter()


@router.get("/search")
async def search(
    q: str = "",
    regex: bool = False,
    page: int = 1,
    limit: Optional[int] = None,
    show_hidden: bool = Query(False, alias="showHidden"),
    tenant_id: Optional[str] = Query(None, alias="tenantId"),
    search_path: str = Query("", alias="searchPath"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    service = get_search_service()
    if tenant_id == ALL_TENANTS:
        if not principal.is_super_admin:
            raise PermissionDenied("search", ALL_TENANTS, "Searching all tenants requires super admin")
        tenants = await get_tenant_service().directory(db)
        async with asyncio.timeout(settings.request_timeout_seconds):
            result = await service.search_all(
                db, tenants, q, regex=regex, page=page, limit=limit, show_hidden=show_hidden
            )
    else:
        tenant_id = await resolve_tenant(db, principal, tenant_id, "search")
        async with asyncio.timeout(settings.request_timeout_seconds):
            result = await service.search(
                db, tenant_id, q, regex=regex, page=page, limit=limit,
                show_hidden=show_hidden, search_path=search_path,
            )

    return {
        "files": [e.to_dict() for e in visible(principal, result.items)],
        "query": q,
        "tenantId": tenant_id,
        "truncated": result.truncated,
        "pagination": result.pagination.to_dict(),
    }
