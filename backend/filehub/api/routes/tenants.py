"""Tenant routes — registry listing and creation."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from filehub.api.deps import get_current_principal, require_super_admin
from filehub.database import get_db
from filehub.schemas.tenants import TenantCreate, TenantResponse
from filehub.services import get_tenant_service
from filehub.services.auth_service import Principal

router = APIRouter()


@router.get("", response_model=list[TenantResponse])
async def list_tenants(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Super admins see every tenant, everyone else only their own."""
    service = get_tenant_service()
    if principal.is_super_admin:
        return await service.list_tenants(db)
    tenant = await service.get_tenant(db, principal.tenant_id)
    return [tenant] if tenant else []


@router.post("", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
async def create_tenant(
    body: TenantCreate,
    _admin: Principal = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    return await get_tenant_service().create_tenant(db, body.tenant_id, body.name)
