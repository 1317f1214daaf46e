"""Tenant identifiers and the cross-tenant display-path round trip.

Multi-tenant search results are shown with ``"<tenant name>/<name>"`` as the
display name and ``"<tenant id>:<relative path>"`` as the path. Anything that
acts on such a result (open, download) must strip the decoration back to the
tenant's own relative path before it is resolved.
"""

from __future__ import annotations

import re

ALL_TENANTS = "all"
TENANT_SEPARATOR = ":"

_TENANT_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,63}$")


def is_valid_tenant_id(tenant_id: str | None) -> bool:
    if not tenant_id or tenant_id == ALL_TENANTS:
        return False
    return bool(_TENANT_ID_RE.match(tenant_id))


def decorate_path(tenant_id: str, relative_path: str) -> str:
    return f"{tenant_id}{TENANT_SEPARATOR}{relative_path}"


def decorate_name(tenant_name: str, name: str) -> str:
    return f"{tenant_name}/{name}"


def strip_tenant_prefix(path: str, tenant_id: str | None = None) -> tuple[str | None, str]:
    """Split a decorated ``tenantId:path`` back into its parts.

    A path that comes with an explicit ``tenant_id`` is tenant-relative and
    taken literally, so ``acme:notes.txt`` in tenant ``acme`` names that
    file and never ``notes.txt``. Only a bare path is read as decorated.
    Returns ``(tenant_id_or_None, relative_path)``.
    """
    if tenant_id is not None:
        return tenant_id, path
    prefix, sep, rest = path.partition(TENANT_SEPARATOR)
    if not sep or not is_valid_tenant_id(prefix):
        return None, path
    return prefix, rest


def strip_display_name(name: str) -> str:
    """``"Acme/report.pdf"`` -> ``"report.pdf"``."""
    return name.split("/", 1)[1] if "/" in name else name
