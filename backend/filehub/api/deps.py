"""FastAPI dependency injection — principal, tenant scope & DB session."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from filehub.config import settings
from filehub.services import get_auth_service, get_tenant_service
from filehub.services.access_control import can_access_tenant
from filehub.services.auth_service import Principal
from filehub.services.exceptions import InvalidInput, PermissionDenied

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.api_prefix}/auth/login",
    auto_error=False,
)


async def get_optional_principal(
    token: Optional[str] = Depends(oauth2_scheme),
) -> Optional[Principal]:
    """Return the principal if a valid token was provided, else None."""
    return get_auth_service().verify_token(token)


async def get_current_principal(
    token: Optional[str] = Depends(oauth2_scheme),
) -> Principal:
    """Validate the Bearer token locally with the shared secret."""
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No authentication token provided",
            headers={"WWW-Authenticate": "Bearer"},
        )
    principal = get_auth_service().verify_token(token)
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal


async def require_super_admin(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    if not principal.is_super_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Super admin role required",
        )
    return principal


async def resolve_tenant(
    db: AsyncSession,
    principal: Principal,
    requested: str | None,
    operation: str,
) -> str:
    """Pick the tenant a request acts on and check the principal may touch it.

    Tenant-scoped principals default to their own tenant. The tenant must be
    registered.
    """
    tenant_id = requested or principal.tenant_id
    if not tenant_id:
        raise InvalidInput(operation, "", "tenantId is required")
    if not can_access_tenant(principal, tenant_id):
        logger.warning("%s denied: %s may not access tenant %s", operation, principal.username, tenant_id)
        raise PermissionDenied(operation, tenant_id, "Access to this tenant is not allowed")
    await get_tenant_service().require_tenant(db, tenant_id)
    return tenant_id
