"""Auth routes — login is forwarded to the identity service."""

import logging

from fastapi import APIRouter, Depends

from filehub.api.deps import get_current_principal
from filehub.schemas.auth import LoginRequest, PrincipalInfo, TokenResponse
from filehub.services import get_auth_service
from filehub.services.auth_service import Principal

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest):
    """
    Forward login to the identity service.

    FileHub does not manage users itself; it verifies the returned token
    locally on every later request.
    """
    session = await get_auth_service().authenticate(body.username, body.password)
    return TokenResponse(
        access_token=session.access_token,
        token_type=session.token_type,
        user=PrincipalInfo(**session.principal.to_dict()),
    )


@router.get("/me", response_model=PrincipalInfo)
async def me(principal: Principal = Depends(get_current_principal)):
    return PrincipalInfo(**principal.to_dict())
