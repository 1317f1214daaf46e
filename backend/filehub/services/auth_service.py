"""Auth collaborator — login is forwarded upstream, tokens are verified locally.

FileHub does not store credentials. ``authenticate`` proxies the login to the
identity service at ``settings.auth_url``; ``verify_token`` decodes the
returned JWT with the shared secret.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

import httpx
from jose import JWTError, jwt

from filehub.config import settings

logger = logging.getLogger(__name__)


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


@dataclass(frozen=True)
class Principal:
    username: str
    role: Role
    tenant_id: str | None = None

    @property
    def is_super_admin(self) -> bool:
        return self.role == Role.SUPER_ADMIN

    def to_dict(self) -> dict:
        return {"username": self.username, "role": self.role.value, "tenantId": self.tenant_id}


@dataclass(frozen=True)
class Session:
    access_token: str
    principal: Principal
    token_type: str = "bearer"


class AuthError(Exception):
    """Login rejected by the identity service."""

    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthService:
    def __init__(self, base_url: str | None = None, secret_key: str | None = None):
        self._base_url = (base_url or settings.auth_url).rstrip("/")
        self._secret = secret_key or settings.secret_key

    async def authenticate(self, username: str, password: str) -> Session:
        """Forward credentials upstream; returns a verified :class:`Session`."""
        try:
            async with httpx.AsyncClient(timeout=settings.auth_timeout_seconds) as client:
                resp = await client.post(
                    f"{self._base_url}/api/auth/login",
                    data={"username": username, "password": password},
                )
        except httpx.HTTPError as exc:
            logger.warning("Identity service unreachable for login: %s", exc)
            raise AuthError("Identity service is not reachable", status_code=503) from exc

        if resp.status_code != 200:
            detail = "Invalid credentials"
            try:
                detail = resp.json().get("detail", detail)
            except ValueError:
                pass
            raise AuthError(detail, status_code=401 if resp.status_code < 500 else 502)

        token = resp.json().get("access_token", "")
        principal = self.verify_token(token)
        if principal is None:
            raise AuthError("Identity service returned an unusable token", status_code=502)
        logger.info("Login: %s (%s, tenant=%s)", principal.username, principal.role.value, principal.tenant_id)
        return Session(access_token=token, principal=principal)

    def verify_token(self, token: str | None) -> Principal | None:
        """Decode a bearer token; ``None`` when missing, invalid or expired."""
        if not token:
            return None
        try:
            payload = jwt.decode(token, self._secret, algorithms=[settings.token_algorithm])
        except JWTError:
            return None

        username = payload.get("sub") or payload.get("username")
        if not username:
            return None
        try:
            role = Role(payload.get("role", Role.USER.value))
        except ValueError:
            return None
        tenant_id = payload.get("tenant_id") or payload.get("tenantId")
        if role != Role.SUPER_ADMIN and not tenant_id:
            # Tenant-scoped roles without a tenant cannot act on anything
            return None
        return Principal(username=username, role=role, tenant_id=tenant_id)
