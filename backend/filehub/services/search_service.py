"""Recursive name search, within one tenant or fanned out across all of them."""

from __future__ import annotations

import asyncio
import logging
import os
import re
from dataclasses import replace
from pathlib import Path
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from filehub.config import settings
from filehub.services.access_levels import AccessLevelStore, effective_level
from filehub.services.exceptions import InvalidQuery, NotFound
from filehub.services.path_resolver import PathResolver
from filehub.services.storage_service import TEMP_PREFIX, clamp_page, is_hidden, stat_entry
from filehub.services.types import FileEntry, Page, paginate, sort_key
from filehub.tenancy import decorate_name, decorate_path

logger = logging.getLogger(__name__)

Matcher = Callable[[str], bool]


def build_matcher(query: str, regex: bool = False) -> Matcher:
    """Case-insensitive substring matcher, or a compiled regex when ``regex``."""
    if not query or not query.strip():
        raise InvalidQuery("search", "", "Search query is required")
    if regex:
        try:
            pattern = re.compile(query, re.IGNORECASE)
        except re.error as e:
            raise InvalidQuery("search", "", f"Invalid regular expression: {e}") from e
        return lambda name: pattern.search(name) is not None
    needle = query.casefold()
    return lambda name: needle in name.casefold()


class SearchService:
    def __init__(self, resolver: PathResolver, access: AccessLevelStore | None = None):
        self.resolver = resolver
        self.access = access or AccessLevelStore()

    def _walk(
        self,
        tenant_id: str,
        start: str,
        matcher: Matcher,
        show_hidden: bool,
    ) -> tuple[list[FileEntry], bool]:
        """Depth-first walk with an explicit stack; returns (matches, truncated)."""
        top = self.resolver.resolve(tenant_id, start, "search")
        if not top.is_dir():
            raise NotFound("search", start, "Search folder not found")

        max_depth = settings.search_max_depth
        max_nodes = settings.search_max_nodes
        stack: list[tuple[Path, int]] = [(top, 0)]
        seen: set[str] = set()
        matches: list[FileEntry] = []
        visited = 0
        truncated = False

        while stack:
            current, depth = stack.pop()
            try:
                with os.scandir(current) as it:
                    items = list(it)
            except (FileNotFoundError, PermissionError) as e:
                logger.warning("Search skipped %s: %s", current, e)
                continue

            for item in items:
                visited += 1
                if visited > max_nodes:
                    truncated = True
                    stack.clear()
                    break
                if item.is_symlink() or item.name.startswith(TEMP_PREFIX):
                    continue
                if not show_hidden and is_hidden(item.name):
                    continue

                is_dir = item.is_dir(follow_symlinks=False)
                if matcher(item.name):
                    try:
                        entry = stat_entry(self.resolver, tenant_id, Path(item.path), item.stat(follow_symlinks=False))
                    except FileNotFoundError:
                        continue
                    if entry.path not in seen:
                        seen.add(entry.path)
                        matches.append(entry)

                if is_dir:
                    if depth < max_depth:
                        stack.append((Path(item.path), depth + 1))
                    else:
                        truncated = True

        if truncated:
            logger.info("Search in tenant %s truncated after %d entries", tenant_id, visited)
        return matches, truncated

    async def search(
        self,
        db: AsyncSession,
        tenant_id: str,
        query: str,
        regex: bool = False,
        page: int | None = 1,
        limit: int | None = None,
        show_hidden: bool = False,
        search_path: str = "",
    ) -> Page:
        matcher = build_matcher(query, regex)
        page, limit = clamp_page(page, limit)
        matches, truncated = await asyncio.to_thread(
            self._walk, tenant_id, search_path, matcher, show_hidden
        )
        matches.sort(key=sort_key)

        result = paginate(matches, page, limit)
        result.truncated = truncated
        private = await self.access.private_paths(db, tenant_id)
        result.items = [e.with_access(effective_level(e.path, private)) for e in result.items]
        return result

    async def search_all(
        self,
        db: AsyncSession,
        tenants: list[tuple[str, str]],
        query: str,
        regex: bool = False,
        page: int | None = 1,
        limit: int | None = None,
        show_hidden: bool = False,
    ) -> Page:
        """Search every tenant concurrently and merge.

        ``tenants`` is a list of ``(tenant_id, tenant_name)``. Results are
        de-duplicated by tenant and case-folded path, sorted by tenant name
        then file name, and decorated as ``"Name/file"`` / ``"id:path"``.
        """
        matcher = build_matcher(query, regex)
        page, limit = clamp_page(page, limit)
        names = dict(tenants)

        walks = await asyncio.gather(*(
            asyncio.to_thread(self._walk, tenant_id, "", matcher, show_hidden)
            for tenant_id, _ in tenants
        ))

        merged: list[FileEntry] = []
        seen: set[tuple[str, str]] = set()
        truncated = False
        for (tenant_id, _), (matches, cut) in zip(tenants, walks):
            truncated = truncated or cut
            for entry in matches:
                key = (tenant_id, entry.path.casefold())
                if key in seen:
                    continue
                seen.add(key)
                merged.append(entry)

        merged.sort(key=lambda e: (names[e.tenant_id].casefold(), e.name.casefold()))
        result = paginate(merged, page, limit)
        result.truncated = truncated

        private_by_tenant: dict[str, set[str]] = {}
        decorated = []
        for entry in result.items:
            if entry.tenant_id not in private_by_tenant:
                private_by_tenant[entry.tenant_id] = await self.access.private_paths(db, entry.tenant_id)
            tenant_name = names[entry.tenant_id]
            decorated.append(replace(
                entry,
                name=decorate_name(tenant_name, entry.name),
                path=decorate_path(entry.tenant_id, entry.path),
                tenant_name=tenant_name,
                access_level=effective_level(entry.path, private_by_tenant[entry.tenant_id]),
            ))
        result.items = decorated

        logger.info("Multi-tenant search %r over %d tenants: %d results", query, len(tenants), len(merged))
        return result
