"""Per-file public/private enforcement combined with the caller's principal."""

from __future__ import annotations

from enum import Enum
from typing import Iterable

from filehub.services.access_levels import AccessLevel
from filehub.services.auth_service import Principal
from filehub.services.types import FileEntry


class Action(str, Enum):
    READ_BYTES = "read_bytes"
    LIST_METADATA = "list_metadata"


def can_access_tenant(principal: Principal | None, tenant_id: str) -> bool:
    if principal is None:
        return False
    if principal.is_super_admin:
        return True
    return principal.tenant_id == tenant_id


def authorize(
    principal: Principal | None,
    entry: FileEntry,
    action: Action = Action.READ_BYTES,
) -> bool:
    """Side-effect free access decision.

    Public bytes are served to anyone. Private bytes need a principal of the
    entry's tenant or a super admin. Metadata always needs a principal.
    """
    if action == Action.READ_BYTES and entry.access_level == AccessLevel.PUBLIC:
        return True
    return can_access_tenant(principal, entry.tenant_id)


def visible(principal: Principal | None, entries: Iterable[FileEntry]) -> list[FileEntry]:
    """Entries whose metadata the principal may list."""
    return [e for e in entries if authorize(principal, e, Action.LIST_METADATA)]
