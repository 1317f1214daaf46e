"""Result types returned by the storage and search services."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime

from filehub.services.access_levels import AccessLevel


@dataclass(frozen=True)
class FileEntry:
    name: str
    path: str
    is_directory: bool
    size: int
    modified: datetime
    created: datetime
    tenant_id: str
    access_level: AccessLevel = AccessLevel.PUBLIC
    tenant_name: str | None = None

    def with_access(self, level: AccessLevel) -> FileEntry:
        return replace(self, access_level=level)

    def to_dict(self) -> dict:
        data = {
            "name": self.name,
            "path": self.path,
            "isDirectory": self.is_directory,
            "size": self.size,
            "modified": self.modified.isoformat(),
            "created": self.created.isoformat(),
            "accessLevel": self.access_level.value,
            "tenantId": self.tenant_id,
        }
        if self.tenant_name is not None:
            data["tenantName"] = self.tenant_name
        return data


def sort_key(entry: FileEntry) -> tuple[bool, str]:
    """Directories first, then case-insensitive name."""
    return (not entry.is_directory, entry.name.casefold())


@dataclass
class Pagination:
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_next(self) -> bool:
        return self.page * self.limit < self.total

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    def to_dict(self) -> dict:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "totalPages": self.total_pages,
            "hasNext": self.has_next,
            "hasPrev": self.has_prev,
        }


@dataclass
class Page:
    items: list[FileEntry]
    pagination: Pagination
    truncated: bool = False


def paginate(entries: list[FileEntry], page: int, limit: int) -> Page:
    offset = (page - 1) * limit
    return Page(
        items=entries[offset:offset + limit],
        pagination=Pagination(page=page, limit=limit, total=len(entries)),
    )


@dataclass
class UploadFailure:
    name: str
    path: str
    error: str
    status: int

    def to_dict(self) -> dict:
        return {"name": self.name, "path": self.path, "error": self.error, "status": self.status}


@dataclass
class UploadResult:
    files: list[dict] = field(default_factory=list)
    failures: list[UploadFailure] = field(default_factory=list)
    folders_created: set[str] = field(default_factory=set)

    @property
    def success(self) -> bool:
        return not self.failures

    @property
    def partial(self) -> bool:
        return bool(self.files) and bool(self.failures)
