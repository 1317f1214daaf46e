"""Persisted public/private access levels with ancestor inheritance."""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Iterable

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from filehub.models.file_access import FileAccess
from filehub.services.exceptions import FileHubError, InvalidInput

logger = logging.getLogger(__name__)


class AccessLevel(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


def parse_access_level(value: str | None, operation: str, path: str) -> AccessLevel:
    try:
        return AccessLevel((value or AccessLevel.PUBLIC.value).strip().lower())
    except ValueError:
        raise InvalidInput(operation, path, "Access level must be 'public' or 'private'") from None


def _ancestors(path: str) -> Iterable[str]:
    parts = path.split("/")
    for i in range(len(parts) - 1, 0, -1):
        yield "/".join(parts[:i])


def effective_level(path: str, private_paths: set[str]) -> AccessLevel:
    """Private if the path itself or any ancestor directory is private."""
    if path in private_paths:
        return AccessLevel.PRIVATE
    for parent in _ancestors(path):
        if parent in private_paths:
            return AccessLevel.PRIVATE
    return AccessLevel.PUBLIC


def _under(column, path: str):
    return or_(column == path, column.like(_escape_like(path) + "/%", escape="\\"))


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class AccessLevelStore:
    """Reads and writes ``file_access`` rows keyed by ``(tenant_id, path)``.

    Rows follow their paths: :meth:`move_tree` re-keys a subtree after a
    rename or move, :meth:`copy_tree` clones one after a duplicate and
    :meth:`delete_tree` drops one after a delete.
    """

    async def private_paths(self, db: AsyncSession, tenant_id: str) -> set[str]:
        result = await db.execute(
            select(FileAccess.path).where(
                FileAccess.tenant_id == tenant_id,
                FileAccess.access_level == AccessLevel.PRIVATE.value,
            )
        )
        return set(result.scalars().all())

    async def all_rows(self, db: AsyncSession, older_than: datetime | None = None) -> list[tuple[str, str]]:
        query = select(FileAccess.tenant_id, FileAccess.path)
        if older_than is not None:
            query = query.where(FileAccess.updated_at < older_than)
        result = await db.execute(query)
        return [(tenant_id, path) for tenant_id, path in result.all()]

    async def get_effective(self, db: AsyncSession, tenant_id: str, path: str) -> AccessLevel:
        candidates = [path, *_ancestors(path)]
        result = await db.execute(
            select(FileAccess.path).where(
                FileAccess.tenant_id == tenant_id,
                FileAccess.access_level == AccessLevel.PRIVATE.value,
                FileAccess.path.in_(candidates),
            )
        )
        return AccessLevel.PRIVATE if result.first() else AccessLevel.PUBLIC

    async def set_level(
        self,
        db: AsyncSession,
        tenant_id: str,
        path: str,
        level: AccessLevel,
        is_directory: bool,
    ) -> None:
        result = await db.execute(
            select(FileAccess).where(FileAccess.tenant_id == tenant_id, FileAccess.path == path)
        )
        row = result.scalar_one_or_none()
        if row is None:
            db.add(FileAccess(
                tenant_id=tenant_id,
                path=path,
                is_directory=int(is_directory),
                access_level=level.value,
            ))
        elif row.access_level != level.value:
            row.access_level = level.value
        await db.commit()

    async def record(
        self,
        db: AsyncSession,
        tenant_id: str,
        entries: Iterable[tuple[str, bool]],
        level: AccessLevel,
    ) -> None:
        """Best-effort bookkeeping for freshly created paths.

        A failed write leaves whatever level the paths had before, so this is
        only used where that is the stricter outcome. Private rows for paths
        that are about to be created go through :meth:`reserve` instead.
        """
        try:
            for path, is_directory in entries:
                result = await db.execute(
                    select(FileAccess).where(
                        FileAccess.tenant_id == tenant_id, FileAccess.path == path
                    )
                )
                row = result.scalar_one_or_none()
                if row is None:
                    db.add(FileAccess(
                        tenant_id=tenant_id,
                        path=path,
                        is_directory=int(is_directory),
                        access_level=level.value,
                    ))
                else:
                    row.access_level = level.value
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.warning("Access level update failed for tenant %s: %s", tenant_id, e)

    async def reserve(
        self,
        db: AsyncSession,
        tenant_id: str,
        entries: Iterable[tuple[str, bool]],
        level: AccessLevel,
        operation: str,
    ) -> dict[str, str | None]:
        """Write rows for paths before anything lands on disk.

        Returns the level each path had before (``None`` when it had no row)
        so :meth:`release` can put back the ones that never got created.
        Raises :class:`FileHubError` when the rows cannot be written; the
        caller must then not create anything.
        """
        entries = list(entries)
        previous: dict[str, str | None] = {}
        if not entries:
            return previous
        try:
            result = await db.execute(
                select(FileAccess).where(
                    FileAccess.tenant_id == tenant_id,
                    FileAccess.path.in_([path for path, _ in entries]),
                )
            )
            rows = {row.path: row for row in result.scalars().all()}
            for path, is_directory in entries:
                if path in previous:
                    continue
                row = rows.get(path)
                previous[path] = row.access_level if row is not None else None
                if row is None:
                    db.add(FileAccess(
                        tenant_id=tenant_id,
                        path=path,
                        is_directory=int(is_directory),
                        access_level=level.value,
                    ))
                else:
                    row.access_level = level.value
                    row.updated_at = func.now()
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Access level reservation failed for tenant %s: %s", tenant_id, e)
            raise FileHubError(operation, entries[0][0], "Access level could not be recorded") from e
        return previous

    async def release(self, db: AsyncSession, tenant_id: str, previous: dict[str, str | None]) -> None:
        """Undo :meth:`reserve` for paths that were not created after all."""
        if not previous:
            return
        try:
            result = await db.execute(
                select(FileAccess).where(
                    FileAccess.tenant_id == tenant_id,
                    FileAccess.path.in_(list(previous)),
                )
            )
            for row in result.scalars().all():
                prior = previous[row.path]
                if prior is None:
                    await db.delete(row)
                else:
                    row.access_level = prior
            await db.commit()
        except SQLAlchemyError as e:
            # Rows stay at the reserved level; the prune job drops rows of missing paths
            await db.rollback()
            logger.warning("Access level release failed for tenant %s: %s", tenant_id, e)

    async def move_tree(self, db: AsyncSession, tenant_id: str, old: str, new: str) -> None:
        try:
            await db.execute(
                delete(FileAccess).where(
                    FileAccess.tenant_id == tenant_id, _under(FileAccess.path, new)
                )
            )
            result = await db.execute(
                select(FileAccess).where(
                    FileAccess.tenant_id == tenant_id, _under(FileAccess.path, old)
                )
            )
            for row in result.scalars().all():
                row.path = new + row.path[len(old):]
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.warning("Access level re-key failed %s -> %s: %s", old, new, e)

    async def copy_tree(self, db: AsyncSession, tenant_id: str, src: str, dst: str) -> None:
        try:
            # Stale rows left by an out-of-band delete would collide
            await db.execute(
                delete(FileAccess).where(
                    FileAccess.tenant_id == tenant_id, _under(FileAccess.path, dst)
                )
            )
            result = await db.execute(
                select(FileAccess).where(
                    FileAccess.tenant_id == tenant_id, _under(FileAccess.path, src)
                )
            )
            for row in result.scalars().all():
                db.add(FileAccess(
                    tenant_id=tenant_id,
                    path=dst + row.path[len(src):],
                    is_directory=row.is_directory,
                    access_level=row.access_level,
                ))
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.warning("Access level copy failed %s -> %s: %s", src, dst, e)

    async def delete_tree(self, db: AsyncSession, tenant_id: str, path: str) -> None:
        try:
            await db.execute(
                delete(FileAccess).where(
                    FileAccess.tenant_id == tenant_id, _under(FileAccess.path, path)
                )
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.warning("Access level cleanup failed for %s: %s", path, e)
