"""Client application state, split into narrow slices.

``AppStore`` composes the slices and runs every server action through the
same flow: apply optimistically, call the API once, then either fold the
result in with a reload or roll back and notify.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from filehub.client.api import ApiError, FileHubClient
from filehub.client.optimistic import FileItem, MutationType, OptimisticFileView
from filehub.tenancy import ALL_TENANTS, decorate_name, decorate_path, strip_tenant_prefix

logger = logging.getLogger(__name__)


@dataclass
class AuthSlice:
    principal: dict | None = None
    token: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    @property
    def is_super_admin(self) -> bool:
        return bool(self.principal) and self.principal.get("role") == "super_admin"

    def clear(self) -> None:
        self.principal = None
        self.token = None


@dataclass
class FilesSlice:
    current_path: str = ""
    tenant_id: str | None = None
    pagination: dict | None = None
    storage: dict | None = None
    is_loading: bool = False
    is_search: bool = False
    view: OptimisticFileView = field(default_factory=OptimisticFileView)

    @property
    def files(self) -> list[FileItem]:
        return self.view.view()


@dataclass
class UiSlice:
    view_mode: str = "grid"
    show_hidden: bool = False
    items_per_page: int = 50
    search_query: str = ""
    use_regex: bool = False


@dataclass
class ModalSlice:
    active: str | None = None
    data: dict = field(default_factory=dict)

    def open(self, name: str, **data: Any) -> None:
        self.active = name
        self.data = data

    def close(self) -> None:
        self.active = None
        self.data = {}


@dataclass
class Notification:
    id: int
    level: str
    message: str


class Notifications:
    """Dismissible error/info list."""

    def __init__(self):
        self.items: list[Notification] = []
        self._ids = itertools.count(1)

    def _push(self, level: str, message: str) -> Notification:
        note = Notification(next(self._ids), level, message)
        self.items.append(note)
        return note

    def error(self, message: str) -> Notification:
        logger.warning("Notify error: %s", message)
        return self._push("error", message)

    def info(self, message: str) -> Notification:
        return self._push("info", message)

    def dismiss(self, notification_id: int) -> None:
        self.items = [n for n in self.items if n.id != notification_id]

    def clear(self) -> None:
        self.items.clear()

    @property
    def errors(self) -> list[Notification]:
        return [n for n in self.items if n.level == "error"]


class AppStore:
    def __init__(self, client: FileHubClient):
        self.client = client
        self.auth = AuthSlice()
        self.files = FilesSlice()
        self.ui = UiSlice()
        self.modal = ModalSlice()
        self.notifications = Notifications()

    # --- Auth ---

    async def login(self, username: str, password: str) -> bool:
        try:
            data = await self.client.login(username, password)
        except ApiError as e:
            self.notifications.error(e.message)
            return False
        self.auth.token = data["access_token"]
        self.auth.principal = data.get("user")
        if self.files.tenant_id is None and self.auth.principal:
            self.files.tenant_id = self.auth.principal.get("tenantId")
        return True

    def logout(self) -> None:
        self.client.logout()
        self.auth.clear()
        self.files = FilesSlice()
        self.modal.close()

    # --- Target resolution ---

    def target_of(self, path: str) -> tuple[str | None, str]:
        """``(tenant_id, relative_path)`` an action on ``path`` must address.

        Entries from a search across all tenants carry ``tenantId:path``; the
        prefix is stripped so the server receives the tenant's own path.
        """
        if self.files.tenant_id == ALL_TENANTS:
            tenant_id, relative = strip_tenant_prefix(path)
            return tenant_id, relative
        return self.files.tenant_id, path

    def _tenant_param(self) -> str | None:
        return None if self.files.tenant_id == ALL_TENANTS else self.files.tenant_id

    # --- Loading ---

    async def load_files(self, path: str | None = None, page: int = 1) -> bool:
        if path is not None:
            self.files.current_path = path
        self.files.is_search = False
        return await self._reload(lambda: self.client.list_files(
            self.files.current_path,
            page=page,
            limit=self.ui.items_per_page,
            show_hidden=self.ui.show_hidden,
            tenant_id=self._tenant_param(),
        ))

    async def search(self, query: str | None = None, page: int = 1) -> bool:
        if query is not None:
            self.ui.search_query = query
        if not self.ui.search_query.strip():
            return await self.load_files(page=page)
        self.files.is_search = True
        return await self._reload(lambda: self.client.search(
            self.ui.search_query,
            regex=self.ui.use_regex,
            page=page,
            limit=self.ui.items_per_page,
            show_hidden=self.ui.show_hidden,
            tenant_id=self.files.tenant_id,
        ))

    async def refresh(self) -> bool:
        page = (self.files.pagination or {}).get("page", 1)
        if self.files.is_search:
            return await self.search(page=page)
        return await self.load_files(page=page)

    async def _reload(self, fetch: Callable[[], Awaitable[dict]]) -> bool:
        view = self.files.view
        view.begin_reload()
        self.files.is_loading = True
        try:
            data = await fetch()
        except ApiError as e:
            view.reload_failed()
            self.notifications.error(e.message)
            return False
        finally:
            self.files.is_loading = False
        view.replace(data.get("files", []))
        self.files.pagination = data.get("pagination")
        return True

    # --- Optimistic actions ---

    async def _optimistic(
        self,
        kind: MutationType,
        path: str,
        payload: dict | None,
        call: Callable[[], Awaitable[dict]],
    ) -> bool:
        view = self.files.view
        mutation = view.apply(kind, path, payload)
        try:
            await call()
        except ApiError as e:
            view.fail(mutation.id)
            self.notifications.error(e.message)
            return False
        view.succeed(mutation.id)
        await self.refresh()
        return True

    async def delete_item(self, path: str) -> bool:
        tenant_id, relative = self.target_of(path)
        return await self._optimistic(
            MutationType.DELETE, path, None,
            lambda: self.client.delete_item(relative, tenant_id=tenant_id),
        )

    async def rename_item(self, path: str, new_name: str) -> bool:
        tenant_id, relative = self.target_of(path)
        parent, _, _ = relative.rpartition("/")
        new_path = f"{parent}/{new_name}" if parent else new_name
        display_name = new_name
        if self.files.tenant_id == ALL_TENANTS and tenant_id:
            # Keep the cross-tenant decoration so the entry still addresses its tenant
            new_path = decorate_path(tenant_id, new_path)
            current = next((e for e in self.files.files if e.get("path") == path), {})
            if current.get("tenantName"):
                display_name = decorate_name(current["tenantName"], new_name)
        return await self._optimistic(
            MutationType.RENAME, path, {"newName": display_name, "newPath": new_path},
            lambda: self.client.rename(relative, new_name, tenant_id=tenant_id),
        )

    async def create_folder(self, name: str, access_level: str = "public") -> bool:
        path = "/".join(p for p in (self.files.current_path, name) if p)
        placeholder = {"name": name, "path": path, "isDirectory": True, "size": 0, "accessLevel": access_level}
        return await self._optimistic(
            MutationType.ADD, path, {"file": placeholder},
            lambda: self.client.create_folder(
                self.files.current_path, name, access_level, tenant_id=self._tenant_param()
            ),
        )

    async def create_file(self, name: str, content: str = "", access_level: str = "public") -> bool:
        path = "/".join(p for p in (self.files.current_path, name) if p)
        placeholder = {
            "name": name, "path": path, "isDirectory": False,
            "size": len(content.encode("utf-8")), "accessLevel": access_level,
        }
        return await self._optimistic(
            MutationType.ADD, path, {"file": placeholder},
            lambda: self.client.create_file(
                self.files.current_path, name, content, access_level, tenant_id=self._tenant_param()
            ),
        )

    # --- Non-optimistic actions (result shape decided by the server) ---

    async def _action(self, call: Callable[[], Awaitable[dict]], success_message: str | None = None) -> dict | None:
        try:
            result = await call()
        except ApiError as e:
            self.notifications.error(e.message)
            return None
        if success_message:
            self.notifications.info(success_message)
        await self.refresh()
        return result

    async def move_item(self, path: str, destination: str) -> dict | None:
        tenant_id, relative = self.target_of(path)
        return await self._action(lambda: self.client.move(relative, destination, tenant_id=tenant_id))

    async def duplicate_item(self, path: str) -> dict | None:
        tenant_id, relative = self.target_of(path)
        return await self._action(lambda: self.client.duplicate(relative, tenant_id=tenant_id))

    async def set_access_level(self, path: str, level: str) -> dict | None:
        tenant_id, relative = self.target_of(path)
        return await self._action(
            lambda: self.client.set_access_level(relative, level, tenant_id=tenant_id)
        )

    async def upload(
        self,
        files: list[tuple[str, bytes]],
        access_level: str = "public",
        relative_paths: list[str] | None = None,
    ) -> dict | None:
        """Placed files are kept even when some fail, so this always reloads."""
        try:
            result = await self.client.upload(
                files,
                base_path=self.files.current_path,
                access_level=access_level,
                relative_paths=relative_paths,
                tenant_id=self._tenant_param(),
            )
        except ApiError as e:
            self.notifications.error(e.message)
            return None
        if result.get("success"):
            self.notifications.info(result.get("message", "Upload complete"))
        else:
            for failure in result.get("failures", []):
                self.notifications.error(f"{failure.get('name')}: {failure.get('error')}")
        await self.refresh()
        return result

    async def load_storage_info(self) -> dict | None:
        try:
            self.files.storage = await self.client.storage_info(tenant_id=self._tenant_param())
        except ApiError as e:
            self.notifications.error(e.message)
            return None
        return self.files.storage

    # --- Open / download ---

    async def open_folder(self, item: FileItem) -> bool:
        """Navigate into a folder, leaving search (and all-tenant) mode."""
        tenant_id, relative = self.target_of(item["path"])
        self.files.tenant_id = tenant_id
        self.ui.search_query = ""
        return await self.load_files(relative, page=1)

    async def download(self, path: str) -> bytes | None:
        tenant_id, relative = self.target_of(path)
        try:
            return await self.client.download(relative, tenant_id=tenant_id)
        except ApiError as e:
            self.notifications.error(e.message)
            return None

    def download_url(self, path: str) -> str:
        tenant_id, relative = self.target_of(path)
        return self.client.download_url(relative, tenant_id=tenant_id)
