"""Tenant storage operations — list, upload, create, rename, move, duplicate, delete.

All filesystem work runs in worker threads via ``asyncio.to_thread``. Every
path is re-derived through :class:`PathResolver` right before the call that
touches disk; a previously resolved path is never trusted across an await.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import stat
import tempfile
import time
import uuid
import zipfile
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import BinaryIO

from sqlalchemy.ext.asyncio import AsyncSession

from filehub.config import settings
from filehub.services.access_levels import AccessLevel, AccessLevelStore, effective_level
from filehub.services.exceptions import (
    Conflict,
    FileHubError,
    InvalidInput,
    MoveIntoSelf,
    NotFound,
    PermissionDenied,
)
from filehub.services.path_resolver import PathResolver, normalize_relative
from filehub.services.types import (
    FileEntry,
    Page,
    UploadFailure,
    UploadResult,
    paginate,
    sort_key,
)

logger = logging.getLogger(__name__)

TEMP_PREFIX = ".filehub-upload-"
UNSAFE_NAME_CHARS = '/\\:*?"<>|'
MAX_COPY_ATTEMPTS = 10_000


@dataclass
class UploadSource:
    """One incoming file: client-side name plus a readable binary stream."""

    name: str
    stream: BinaryIO


def clamp_page(page: int | None, limit: int | None) -> tuple[int, int]:
    page = max(1, page or 1)
    limit = min(settings.max_page_size, max(1, limit or settings.default_page_size))
    return page, limit


def join_relative(*parts: str | None) -> str:
    return "/".join(p.strip("/") for p in parts if p and p.strip("/"))


def sanitize_name(name: str) -> str:
    for ch in UNSAFE_NAME_CHARS:
        name = name.replace(ch, "_")
    return name


def validate_name(name: str | None, operation: str, path: str) -> str:
    name = (name or "").strip()
    if not name or name in (".", "..") or "/" in name or "\\" in name:
        raise InvalidInput(operation, path, f"Invalid name: {name!r}")
    return name


def copy_name(name: str, is_directory: bool, attempt: int) -> str:
    """``report.pdf`` -> ``report (copy).pdf``, ``report (copy 2).pdf``, ..."""
    suffix = "(copy)" if attempt == 1 else f"(copy {attempt})"
    if is_directory:
        return f"{name} {suffix}"
    stem, ext = os.path.splitext(name)
    return f"{stem} {suffix}{ext}"


def _timestamp(value: float) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


def is_hidden(name: str) -> bool:
    return name.startswith(".")


def stat_entry(
    resolver: PathResolver, tenant_id: str, absolute: Path, st: os.stat_result | None = None
) -> FileEntry:
    """Build a :class:`FileEntry` from a physical path (public until looked up)."""
    st = st or absolute.stat()
    is_dir = stat.S_ISDIR(st.st_mode)
    return FileEntry(
        name=absolute.name,
        path=resolver.relative(tenant_id, absolute),
        is_directory=is_dir,
        size=0 if is_dir else st.st_size,
        modified=_timestamp(st.st_mtime),
        created=_timestamp(getattr(st, "st_birthtime", st.st_ctime)),
        tenant_id=tenant_id,
    )


class StorageService:
    """Filesystem operations scoped to one tenant root per call."""

    def __init__(
        self,
        resolver: PathResolver,
        access: AccessLevelStore | None = None,
        upload_workers: int | None = None,
    ):
        self.resolver = resolver
        self.access = access or AccessLevelStore()
        self.upload_workers = max(1, upload_workers or settings.upload_workers)

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    def _entry(self, tenant_id: str, absolute: Path, st: os.stat_result | None = None) -> FileEntry:
        return stat_entry(self.resolver, tenant_id, absolute, st)

    async def get_entry(self, db: AsyncSession, tenant_id: str, path: str) -> FileEntry:
        """Single entry with its effective access level."""
        target = self.resolver.resolve(tenant_id, path, "stat")
        if not await asyncio.to_thread(target.exists):
            raise NotFound("stat", path)
        entry = await asyncio.to_thread(self._entry, tenant_id, target)
        level = await self.access.get_effective(db, tenant_id, entry.path)
        return entry.with_access(level)

    # ------------------------------------------------------------------
    # List
    # ------------------------------------------------------------------

    def _scan(self, tenant_id: str, path: str, show_hidden: bool) -> list[FileEntry]:
        target = self.resolver.resolve(tenant_id, path, "list")
        if not target.exists():
            raise NotFound("list", path, "Directory not found")
        if not target.is_dir():
            raise Conflict("list", path, "Not a directory")

        entries: list[FileEntry] = []
        with os.scandir(target) as it:
            for item in it:
                if item.is_symlink() or item.name.startswith(TEMP_PREFIX):
                    continue
                if not show_hidden and is_hidden(item.name):
                    continue
                try:
                    st = item.stat(follow_symlinks=False)
                except FileNotFoundError:
                    continue  # removed between scandir and stat
                entries.append(self._entry(tenant_id, Path(item.path), st))
        return entries

    async def list_directory(
        self,
        db: AsyncSession,
        tenant_id: str,
        path: str = "",
        page: int | None = 1,
        limit: int | None = None,
        show_hidden: bool = False,
    ) -> Page:
        """Paginated listing, directories first then case-insensitive name."""
        page, limit = clamp_page(page, limit)
        entries = await asyncio.to_thread(self._scan, tenant_id, path, show_hidden)
        entries.sort(key=sort_key)
        result = paginate(entries, page, limit)

        private = await self.access.private_paths(db, tenant_id)
        result.items = [e.with_access(effective_level(e.path, private)) for e in result.items]
        return result

    # ------------------------------------------------------------------
    # Access rows for new paths
    # ------------------------------------------------------------------

    def _planned_paths(
        self, tenant_id: str, targets: list[tuple[str, bool]], operation: str
    ) -> list[tuple[str, bool]]:
        """Each target plus the missing parent folders creating it would add."""
        planned: list[tuple[str, bool]] = []
        for rel, is_directory in targets:
            try:
                target = self.resolver.resolve(tenant_id, rel, operation)
            except FileHubError:
                continue
            if self.resolver.is_root(tenant_id, target):
                continue
            planned.append((self.resolver.relative(tenant_id, target), is_directory))
            parent = target.parent
            while not parent.exists():
                planned.append((self.resolver.relative(tenant_id, parent), True))
                parent = parent.parent
        return planned

    async def _reserve_private(
        self,
        db: AsyncSession,
        tenant_id: str,
        targets: list[tuple[str, bool]],
        access_level: AccessLevel,
        operation: str,
    ) -> dict[str, str | None]:
        """Private rows are committed before the bytes they guard exist."""
        if access_level != AccessLevel.PRIVATE:
            return {}
        planned = await asyncio.to_thread(self._planned_paths, tenant_id, targets, operation)
        return await self.access.reserve(db, tenant_id, planned, access_level, operation)

    async def _settle(
        self,
        db: AsyncSession,
        tenant_id: str,
        reserved: dict[str, str | None],
        created: list[tuple[str, bool]],
        access_level: AccessLevel,
    ) -> None:
        made = {path for path, _ in created}
        await self.access.release(
            db, tenant_id, {path: prior for path, prior in reserved.items() if path not in made}
        )
        await self.access.record(
            db, tenant_id, [(path, d) for path, d in created if path not in reserved], access_level
        )

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    def _place_upload(self, tenant_id: str, rel_target: str, stream: BinaryIO) -> tuple[list[str], int]:
        target = self.resolver.resolve(tenant_id, rel_target, "upload")
        if self.resolver.is_root(tenant_id, target):
            raise InvalidInput("upload", rel_target, "Missing file name")

        missing: list[Path] = []
        cursor = target.parent
        while not cursor.exists():
            missing.append(cursor)
            cursor = cursor.parent
        target.parent.mkdir(parents=True, exist_ok=True)
        if target.is_dir():
            raise Conflict("upload", rel_target, "A folder with this name already exists")

        tmp = target.parent / f"{TEMP_PREFIX}{uuid.uuid4().hex}"
        try:
            with open(tmp, "wb") as out:
                shutil.copyfileobj(stream, out, settings.upload_chunk_size)
            final = self.resolver.resolve(tenant_id, rel_target, "upload")
            os.replace(tmp, final)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise

        created = [self.resolver.relative(tenant_id, d) for d in missing]
        return created, final.stat().st_size

    async def upload(
        self,
        db: AsyncSession,
        tenant_id: str,
        files: list[UploadSource],
        base_path: str = "",
        access_level: AccessLevel = AccessLevel.PUBLIC,
        relative_paths: list[str] | None = None,
    ) -> UploadResult:
        """Place each file under ``base_path``; failures are reported per file.

        Files that were already placed stay in place when a later one fails.
        A bounded pool of workers shares a reserved-target set so two files of
        the same request can never race for one destination.
        """
        if not files:
            raise InvalidInput("upload", base_path, "No files provided")
        if len(files) > settings.max_upload_files:
            raise InvalidInput("upload", base_path, f"Too many files (max {settings.max_upload_files})")

        # Validate the base once up front so a bad base fails the whole request
        self.resolver.resolve(tenant_id, base_path, "upload")

        relative_paths = relative_paths or []
        targets = [
            join_relative(
                base_path,
                relative_paths[i] if i < len(relative_paths) and relative_paths[i] else item.name,
            )
            for i, item in enumerate(files)
        ]
        rows = await self._reserve_private(
            db, tenant_id, [(t, False) for t, item in zip(targets, files) if item.name], access_level, "upload"
        )

        reserved: set[str] = set()
        reserve_lock = asyncio.Lock()
        workers = asyncio.Semaphore(self.upload_workers)
        result = UploadResult()

        async def _one(index: int, item: UploadSource):
            rel_target = targets[index]
            async with workers:
                try:
                    if not item.name:
                        raise InvalidInput("upload", rel_target, "Missing file name")
                    key = normalize_relative(rel_target)
                    async with reserve_lock:
                        if key in reserved:
                            raise Conflict("upload", rel_target, "Duplicate target within this upload")
                        reserved.add(key)
                    created, size = await asyncio.to_thread(self._place_upload, tenant_id, rel_target, item.stream)
                    return index, {
                        "name": item.name,
                        "size": size,
                        "path": normalize_relative(rel_target),
                        "accessLevel": access_level.value,
                    }, created
                except FileHubError as e:
                    logger.warning("Upload failed for %s: %s", rel_target, e)
                    return index, UploadFailure(item.name, rel_target, e.message, e.status_code), []
                except OSError as e:
                    logger.error("Upload I/O error for %s: %s", rel_target, e)
                    return index, UploadFailure(item.name, rel_target, str(e), 500), []

        outcomes = await asyncio.gather(*(_one(i, f) for i, f in enumerate(files)))
        for _, outcome, created in sorted(outcomes, key=lambda o: o[0]):
            if isinstance(outcome, UploadFailure):
                result.failures.append(outcome)
            else:
                result.files.append(outcome)
                result.folders_created.update(created)

        await self._settle(
            db,
            tenant_id,
            rows,
            [(f["path"], False) for f in result.files] + [(d, True) for d in sorted(result.folders_created)],
            access_level,
        )
        logger.info(
            "Upload to %s:%s — %d placed, %d failed, %d folders created",
            tenant_id, base_path or "/", len(result.files), len(result.failures), len(result.folders_created),
        )
        return result

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def _mkdirs(self, tenant_id: str, rel: str) -> list[str]:
        target = self.resolver.resolve(tenant_id, rel, "create_folder")
        if target.exists() and not target.is_dir():
            raise Conflict("create_folder", rel, "A file with this name already exists")
        missing: list[Path] = []
        cursor = target
        while not cursor.exists():
            missing.append(cursor)
            cursor = cursor.parent
        target.mkdir(parents=True, exist_ok=True)
        return [self.resolver.relative(tenant_id, d) for d in missing]

    async def create_folder(
        self,
        db: AsyncSession,
        tenant_id: str,
        path: str,
        name: str,
        access_level: AccessLevel = AccessLevel.PUBLIC,
    ) -> str:
        """Recursive mkdir; returns the folder's relative path."""
        if not (name or "").strip():
            raise InvalidInput("create_folder", path, "Folder name is required")
        rel = join_relative(path, name.replace("\\", "/"))
        rows = await self._reserve_private(db, tenant_id, [(rel, True)], access_level, "create_folder")
        try:
            created = await asyncio.to_thread(self._mkdirs, tenant_id, rel)
        except (FileHubError, OSError):
            await self.access.release(db, tenant_id, rows)
            raise
        await self._settle(db, tenant_id, rows, [(d, True) for d in created], access_level)
        logger.info("Created folder %s:%s", tenant_id, rel)
        return normalize_relative(rel)

    def _write_new_file(self, tenant_id: str, rel: str, content: str) -> list[str]:
        target = self.resolver.resolve(tenant_id, rel, "create_file")
        missing: list[Path] = []
        cursor = target.parent
        while not cursor.exists():
            missing.append(cursor)
            cursor = cursor.parent
        target.parent.mkdir(parents=True, exist_ok=True)
        try:
            with open(self.resolver.resolve(tenant_id, rel, "create_file"), "x", encoding="utf-8") as fh:
                fh.write(content)
        except FileExistsError:
            raise Conflict("create_file", rel) from None
        return [self.resolver.relative(tenant_id, d) for d in missing]

    async def create_file(
        self,
        db: AsyncSession,
        tenant_id: str,
        path: str,
        name: str,
        content: str = "",
        access_level: AccessLevel = AccessLevel.PUBLIC,
    ) -> str:
        """Create a new text file; never overwrites. Returns the sanitized name."""
        if not (name or "").strip():
            raise InvalidInput("create_file", path, "File name is required")
        safe = sanitize_name(name.strip())
        rel = join_relative(path, safe)
        rows = await self._reserve_private(db, tenant_id, [(rel, False)], access_level, "create_file")
        try:
            created = await asyncio.to_thread(self._write_new_file, tenant_id, rel, content or "")
        except (FileHubError, OSError):
            await self.access.release(db, tenant_id, rows)
            raise
        await self._settle(
            db, tenant_id, rows, [(normalize_relative(rel), False)] + [(d, True) for d in created], access_level
        )
        logger.info("Created file %s:%s", tenant_id, rel)
        return safe

    # ------------------------------------------------------------------
    # Rename / move
    # ------------------------------------------------------------------

    def _rename(self, tenant_id: str, path: str, new_name: str) -> tuple[str, str]:
        source = self.resolver.resolve(tenant_id, path, "rename")
        if self.resolver.is_root(tenant_id, source):
            raise PermissionDenied("rename", path, "Cannot rename the tenant root")
        if not os.path.lexists(source):
            raise NotFound("rename", path)

        old_rel = self.resolver.relative(tenant_id, source)
        parent_rel = self.resolver.relative(tenant_id, source.parent)
        new_rel = join_relative(parent_rel, new_name)
        if new_name == source.name:
            return old_rel, old_rel

        target = self.resolver.resolve(tenant_id, new_rel, "rename")
        if os.path.lexists(target) and not os.path.samefile(source, target):
            raise Conflict("rename", new_rel)

        os.rename(
            self.resolver.resolve(tenant_id, old_rel, "rename"),
            self.resolver.resolve(tenant_id, new_rel, "rename"),
        )
        return old_rel, new_rel

    async def rename(self, db: AsyncSession, tenant_id: str, path: str, new_name: str) -> str:
        """Same-directory rename; renaming to the current name is a no-op."""
        new_name = validate_name(new_name, "rename", path)
        old_rel, new_rel = await asyncio.to_thread(self._rename, tenant_id, path, new_name)
        if old_rel != new_rel:
            await self.access.move_tree(db, tenant_id, old_rel, new_rel)
            logger.info("Renamed %s:%s -> %s", tenant_id, old_rel, new_rel)
        return new_rel

    def _move(self, tenant_id: str, path: str, destination: str) -> tuple[str, str]:
        source = self.resolver.resolve(tenant_id, path, "move")
        dest_dir = self.resolver.resolve(tenant_id, destination, "move")
        if self.resolver.is_root(tenant_id, source):
            raise PermissionDenied("move", path, "Cannot move the tenant root")

        if dest_dir == source or str(dest_dir).startswith(str(source) + os.sep):
            raise MoveIntoSelf("move", path)

        if not os.path.lexists(source):
            raise NotFound("move", path, "Source file or folder not found")
        if not dest_dir.is_dir():
            raise NotFound("move", destination, "Destination folder not found")

        old_rel = self.resolver.relative(tenant_id, source)
        new_rel = join_relative(self.resolver.relative(tenant_id, dest_dir), source.name)
        if os.path.lexists(self.resolver.resolve(tenant_id, new_rel, "move")):
            raise Conflict("move", new_rel, "A file or folder with this name already exists in the destination")

        shutil.move(
            self.resolver.resolve(tenant_id, old_rel, "move"),
            self.resolver.resolve(tenant_id, new_rel, "move"),
        )
        return old_rel, new_rel

    async def move(self, db: AsyncSession, tenant_id: str, path: str, destination: str) -> str:
        """Move into ``destination`` (a folder); refuses moving into itself."""
        if not path:
            raise InvalidInput("move", "", "Path is required")
        if destination is None:
            raise InvalidInput("move", path, "Destination is required")
        old_rel, new_rel = await asyncio.to_thread(self._move, tenant_id, path, destination)
        await self.access.move_tree(db, tenant_id, old_rel, new_rel)
        logger.info("Moved %s:%s -> %s", tenant_id, old_rel, new_rel)
        return new_rel

    # ------------------------------------------------------------------
    # Duplicate
    # ------------------------------------------------------------------

    def _duplicate(self, tenant_id: str, path: str) -> tuple[str, str, str]:
        source = self.resolver.resolve(tenant_id, path, "duplicate")
        if self.resolver.is_root(tenant_id, source):
            raise PermissionDenied("duplicate", path, "Cannot duplicate the tenant root")
        if not source.exists():
            raise NotFound("duplicate", path)

        is_dir = source.is_dir()
        src_rel = self.resolver.relative(tenant_id, source)
        parent_rel = self.resolver.relative(tenant_id, source.parent)

        for attempt in range(1, MAX_COPY_ATTEMPTS + 1):
            new_name = copy_name(source.name, is_dir, attempt)
            new_rel = join_relative(parent_rel, new_name)
            target = self.resolver.resolve(tenant_id, new_rel, "duplicate")
            if os.path.lexists(target):
                continue
            try:
                if is_dir:
                    # copytree creates the target itself and fails if it appeared meanwhile
                    shutil.copytree(self.resolver.resolve(tenant_id, src_rel, "duplicate"), target, symlinks=True)
                else:
                    with open(self.resolver.resolve(tenant_id, src_rel, "duplicate"), "rb") as src, \
                            open(target, "xb") as dst:
                        shutil.copyfileobj(src, dst, settings.upload_chunk_size)
                    shutil.copystat(source, target)
            except FileExistsError:
                continue
            return src_rel, new_rel, new_name

        raise Conflict("duplicate", path, "No free copy name available")

    async def duplicate(self, db: AsyncSession, tenant_id: str, path: str) -> tuple[str, str]:
        """Copy next to the original under a collision-free name; returns (path, name)."""
        if not path:
            raise InvalidInput("duplicate", "", "Path is required")
        src_rel, new_rel, new_name = await asyncio.to_thread(self._duplicate, tenant_id, path)
        await self.access.copy_tree(db, tenant_id, src_rel, new_rel)
        logger.info("Duplicated %s:%s -> %s", tenant_id, src_rel, new_rel)
        return new_rel, new_name

    # ------------------------------------------------------------------
    # Delete / access level
    # ------------------------------------------------------------------

    def _delete(self, tenant_id: str, path: str) -> str:
        target = self.resolver.resolve(tenant_id, path, "delete")
        if self.resolver.is_root(tenant_id, target):
            raise PermissionDenied("delete", path, "Cannot delete the tenant root")
        if not os.path.lexists(target):
            raise NotFound("delete", path)

        rel = self.resolver.relative(tenant_id, target)
        target = self.resolver.resolve(tenant_id, rel, "delete")
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        else:
            target.unlink()
        return rel

    async def delete_item(self, db: AsyncSession, tenant_id: str, path: str) -> str:
        rel = await asyncio.to_thread(self._delete, tenant_id, path)
        await self.access.delete_tree(db, tenant_id, rel)
        logger.info("Deleted %s:%s", tenant_id, rel)
        return rel

    async def set_access_level(
        self, db: AsyncSession, tenant_id: str, path: str, level: AccessLevel
    ) -> FileEntry:
        """Idempotent; setting the current level again changes nothing."""
        target = self.resolver.resolve(tenant_id, path, "access_level")
        if self.resolver.is_root(tenant_id, target):
            raise InvalidInput("access_level", path, "Cannot change the access level of the tenant root")
        if not await asyncio.to_thread(target.exists):
            raise NotFound("access_level", path)

        entry = await asyncio.to_thread(self._entry, tenant_id, target)
        await self.access.set_level(db, tenant_id, entry.path, level, entry.is_directory)
        logger.info("Access level %s:%s -> %s", tenant_id, entry.path, level.value)
        return entry.with_access(await self.access.get_effective(db, tenant_id, entry.path))

    # ------------------------------------------------------------------
    # Storage info / download / maintenance
    # ------------------------------------------------------------------

    def _usage(self, tenant_id: str) -> dict:
        root = self.resolver.tenant_root(tenant_id)
        total_size = file_count = folder_count = visited = 0
        truncated = False
        stack = [root]
        while stack:
            current = stack.pop()
            try:
                with os.scandir(current) as it:
                    for item in it:
                        visited += 1
                        if visited > settings.search_max_nodes:
                            truncated = True
                            stack.clear()
                            break
                        if item.is_symlink():
                            continue
                        if item.is_dir(follow_symlinks=False):
                            folder_count += 1
                            stack.append(Path(item.path))
                        else:
                            file_count += 1
                            total_size += item.stat(follow_symlinks=False).st_size
            except (FileNotFoundError, PermissionError) as e:
                logger.warning("Skipping unreadable directory %s: %s", current, e)
        return {
            "totalSize": total_size,
            "fileCount": file_count,
            "folderCount": folder_count,
            "truncated": truncated,
        }

    async def storage_info(self, tenant_id: str) -> dict:
        return await asyncio.to_thread(self._usage, tenant_id)

    def _archive(self, tenant_id: str, path: str, private: set[str] | None) -> Path:
        """Zip a folder into a temp file; entries in ``private`` are left out."""
        folder = self.resolver.resolve(tenant_id, path, "download")
        fd, tmp_name = tempfile.mkstemp(prefix="filehub-", suffix=".zip")
        os.close(fd)

        def _hidden(full: str) -> bool:
            if private is None:
                return False
            rel = self.resolver.relative(tenant_id, full)
            return effective_level(rel, private) == AccessLevel.PRIVATE

        try:
            with zipfile.ZipFile(tmp_name, "w", compression=zipfile.ZIP_DEFLATED, allowZip64=True) as zf:
                for dirpath, dirnames, filenames in os.walk(folder):
                    dirnames[:] = [
                        d for d in dirnames
                        if not os.path.islink(os.path.join(dirpath, d)) and not _hidden(os.path.join(dirpath, d))
                    ]
                    for fname in filenames:
                        full = os.path.join(dirpath, fname)
                        if fname.startswith(TEMP_PREFIX) or os.path.islink(full) or _hidden(full):
                            continue
                        zf.write(full, os.path.relpath(full, folder.parent))
        except BaseException:
            os.unlink(tmp_name)
            raise
        return Path(tmp_name)

    async def open_for_download(
        self,
        db: AsyncSession,
        tenant_id: str,
        entry: FileEntry,
        include_private: bool = True,
    ) -> tuple[Path, bool]:
        """Physical path to stream; ``(path, is_temporary_archive)``.

        Folders are zipped into a temp file the caller must delete. Without
        ``include_private`` the archive only carries public entries.
        """
        if entry.is_directory:
            private = None if include_private else await self.access.private_paths(db, tenant_id)
            return await asyncio.to_thread(self._archive, tenant_id, entry.path, private), True
        return self.resolver.resolve(tenant_id, entry.path, "download"), False

    async def prune_access_rows(self, db: AsyncSession, min_age_seconds: float = 0) -> int:
        """Drop access rows for paths that no longer exist on disk.

        Rows touched within ``min_age_seconds`` are kept; they may be
        reservations for uploads that are still being written.
        """
        older_than = None
        if min_age_seconds:
            # updated_at is stored as naive UTC
            older_than = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(seconds=min_age_seconds)
        rows = await self.access.all_rows(db, older_than)

        def _missing() -> list[tuple[str, str]]:
            gone = []
            for tenant_id, path in rows:
                try:
                    target = self.resolver.resolve(tenant_id, path, "prune")
                except FileHubError:
                    gone.append((tenant_id, path))
                    continue
                if not os.path.lexists(target):
                    gone.append((tenant_id, path))
            return gone

        gone = await asyncio.to_thread(_missing)
        for tenant_id, path in gone:
            await self.access.delete_tree(db, tenant_id, path)
        if gone:
            logger.info("Pruned %d stale access row(s)", len(gone))
        return len(gone)

    def sweep_orphans(self, max_age_seconds: float) -> int:
        """Remove stale upload temp files left by interrupted requests.

        Idempotent; safe to run while uploads are in progress as long as
        ``max_age_seconds`` exceeds the longest expected upload.
        """
        cutoff = time.time() - max_age_seconds
        removed = 0
        root = self.resolver.storage_root
        if not root.is_dir():
            return 0
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = [d for d in dirnames if not os.path.islink(os.path.join(dirpath, d))]
            for fname in filenames:
                if not fname.startswith(TEMP_PREFIX):
                    continue
                full = os.path.join(dirpath, fname)
                try:
                    if os.lstat(full).st_mtime < cutoff:
                        os.unlink(full)
                        removed += 1
                except FileNotFoundError:
                    continue
        if removed:
            logger.info("Orphan sweep removed %d stale upload file(s)", removed)
        return removed
