"""Tenant-aware path resolution with traversal protection."""

from __future__ import annotations

import logging
import os
import posixpath
from pathlib import Path

from filehub.services.exceptions import InvalidInput, TraversalError
from filehub.tenancy import is_valid_tenant_id

logger = logging.getLogger(__name__)


def normalize_relative(relative_path: str | None) -> str:
    """Normalize a client-supplied relative path to ``a/b/c`` form.

    Backslashes are treated as separators. The result has no leading or
    trailing slash; the tenant root is ``""``. ``..`` segments are kept when
    they climb above the root so the caller can reject them.
    """
    # Leading slashes go before normpath so "/../x" still climbs above the root
    raw = (relative_path or "").replace("\\", "/").strip().lstrip("/")
    if not raw:
        return ""
    normalized = posixpath.normpath(raw)
    if normalized == ".":
        return ""
    return normalized.strip("/")


def is_absolute_input(relative_path: str) -> bool:
    """Inputs that name a location outside any tenant root.

    A single leading ``/`` is the tenant root (``"/docs"`` is ``"docs"``);
    home-relative, UNC and drive-letter forms are never tenant paths.
    """
    raw = relative_path.replace("\\", "/")
    if raw.startswith("~") or raw.startswith("//"):
        return True
    return len(raw) >= 2 and raw[1] == ":" and raw[0].isalpha()


class PathResolver:
    """Maps ``(tenant_id, relative_path)`` to an absolute path under the tenant root.

    Every storage operation goes through :meth:`resolve` immediately before it
    touches disk. Containment is checked against ``root + os.sep`` as a string
    prefix so that ``/data/acme`` never matches ``/data/acme-old``.
    """

    def __init__(self, storage_root: str | Path):
        self.storage_root = Path(storage_root).resolve()

    def tenant_root(self, tenant_id: str, create: bool = True) -> Path:
        if not is_valid_tenant_id(tenant_id):
            raise InvalidInput("resolve", str(tenant_id), "Invalid tenant id")
        root = self.storage_root / tenant_id
        if create:
            root.mkdir(parents=True, exist_ok=True)
        return root

    def resolve(self, tenant_id: str, relative_path: str | None, operation: str = "resolve") -> Path:
        """Resolve a tenant-relative path; raises :class:`TraversalError` on escape."""
        raw = relative_path or ""
        if is_absolute_input(raw):
            raise TraversalError(operation, raw, "Absolute paths are not allowed")

        root = self.tenant_root(tenant_id)
        rel = normalize_relative(raw)
        if rel == ".." or rel.startswith("../"):
            logger.warning("Traversal rejected: tenant=%s path=%r", tenant_id, raw)
            raise TraversalError(operation, raw, "Access denied")

        candidate = Path(os.path.normpath(os.path.join(root, rel))) if rel else root
        self._check_contained(root, candidate, operation, raw)

        # A symlink inside the root may still point outside of it
        real = Path(os.path.realpath(candidate))
        real_root = Path(os.path.realpath(root))
        self._check_contained(real_root, real, operation, raw)
        return candidate

    def relative(self, tenant_id: str, absolute: str | Path) -> str:
        """Convert a physical path under the tenant root back to ``a/b`` form."""
        root = self.tenant_root(tenant_id, create=False)
        rel = os.path.relpath(os.fspath(absolute), os.fspath(root))
        if rel == ".":
            return ""
        return rel.replace(os.sep, "/")

    def is_root(self, tenant_id: str, absolute: Path) -> bool:
        return absolute == self.tenant_root(tenant_id, create=False)

    @staticmethod
    def _check_contained(root: Path, candidate: Path, operation: str, raw: str) -> None:
        root_str = str(root)
        cand_str = str(candidate)
        if cand_str != root_str and not cand_str.startswith(root_str + os.sep):
            logger.warning("Traversal rejected: %r escapes %s", raw, root_str)
            raise TraversalError(operation, raw, "Access denied")
