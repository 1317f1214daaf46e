"""Async HTTP client for the FileHub API.

Requests are never retried. Every non-2xx answer, transport error or timeout
surfaces as :class:`ApiError` so the caller can turn it into a notification.
"""

from __future__ import annotations

import logging
from typing import Any, BinaryIO

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class ApiError(Exception):
    def __init__(self, status: int, message: str, payload: dict | None = None):
        super().__init__(f"{status}: {message}")
        self.status = status
        self.message = message
        self.payload = payload or {}


def _error_message(resp: httpx.Response) -> tuple[str, dict]:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or resp.reason_phrase, {}
    if isinstance(body, dict):
        return str(body.get("error") or body.get("detail") or resp.reason_phrase), body
    return resp.reason_phrase, {}


class FileHubClient:
    """Thin wrapper over ``httpx.AsyncClient``; one call per API route."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        api_prefix: str = "/api",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.token = token
        self._prefix = api_prefix.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def __aenter__(self) -> FileHubClient:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = await self._client.request(
                method, f"{self._prefix}{path}", headers=self._headers(), **kwargs
            )
        except httpx.TimeoutException as exc:
            raise ApiError(408, "Request timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise ApiError(0, f"Network error: {exc}") from exc

        if resp.status_code >= 400:
            message, payload = _error_message(resp)
            raise ApiError(resp.status_code, message, payload)
        return resp

    async def _json(self, method: str, path: str, **kwargs: Any) -> Any:
        resp = await self._send(method, path, **kwargs)
        return resp.json()

    @staticmethod
    def _params(**params: Any) -> dict[str, Any]:
        return {k: v for k, v in params.items() if v is not None}

    # --- Auth ---

    async def login(self, username: str, password: str) -> dict:
        data = await self._json("POST", "/auth/login", json={"username": username, "password": password})
        self.token = data["access_token"]
        return data

    def logout(self) -> None:
        self.token = None

    async def me(self) -> dict:
        return await self._json("GET", "/auth/me")

    # --- Listing / search ---

    async def list_files(
        self,
        path: str = "",
        page: int = 1,
        limit: int | None = None,
        show_hidden: bool = False,
        tenant_id: str | None = None,
    ) -> dict:
        params = self._params(path=path, page=page, limit=limit, showHidden=show_hidden, tenantId=tenant_id)
        return await self._json("GET", "/files", params=params)

    async def search(
        self,
        query: str,
        regex: bool = False,
        page: int = 1,
        limit: int | None = None,
        show_hidden: bool = False,
        tenant_id: str | None = None,
        search_path: str | None = None,
    ) -> dict:
        params = self._params(
            q=query, regex=regex, page=page, limit=limit, showHidden=show_hidden,
            tenantId=tenant_id, searchPath=search_path,
        )
        return await self._json("GET", "/search", params=params)

    # --- Mutations ---

    async def upload(
        self,
        files: list[tuple[str, bytes | BinaryIO]],
        base_path: str = "",
        access_level: str = "public",
        relative_paths: list[str] | None = None,
        tenant_id: str | None = None,
    ) -> dict:
        data: dict[str, Any] = {"basePath": base_path, "mediaAccessLevel": access_level}
        if relative_paths:
            data["relativePaths"] = relative_paths
        if tenant_id:
            data["tenantId"] = tenant_id
        multipart = [("files", (name, content)) for name, content in files]
        return await self._json("POST", "/upload", data=data, files=multipart)

    async def create_folder(
        self, path: str, name: str, access_level: str = "public", tenant_id: str | None = None
    ) -> dict:
        body = self._params(path=path, name=name, mediaAccessLevel=access_level, tenantId=tenant_id)
        return await self._json("POST", "/folder", json=body)

    async def create_file(
        self,
        path: str,
        name: str,
        content: str = "",
        access_level: str = "public",
        tenant_id: str | None = None,
    ) -> dict:
        body = self._params(
            path=path, name=name, content=content, mediaAccessLevel=access_level, tenantId=tenant_id
        )
        return await self._json("POST", "/file", json=body)

    async def delete_item(self, path: str, tenant_id: str | None = None) -> dict:
        return await self._json("DELETE", "/delete", params=self._params(path=path, tenantId=tenant_id))

    async def rename(self, path: str, new_name: str, tenant_id: str | None = None) -> dict:
        body = self._params(path=path, newName=new_name, tenantId=tenant_id)
        return await self._json("POST", "/rename", json=body)

    async def move(self, path: str, destination: str, tenant_id: str | None = None) -> dict:
        body = self._params(path=path, destination=destination, tenantId=tenant_id)
        return await self._json("POST", "/move", json=body)

    async def duplicate(self, path: str, tenant_id: str | None = None) -> dict:
        return await self._json("POST", "/duplicate", json=self._params(path=path, tenantId=tenant_id))

    async def set_access_level(self, path: str, level: str, tenant_id: str | None = None) -> dict:
        body = self._params(path=path, accessLevel=level, tenantId=tenant_id)
        return await self._json("POST", "/access-level", json=body)

    # --- Bytes / info ---

    async def download(self, path: str, tenant_id: str | None = None) -> bytes:
        resp = await self._send("GET", "/download", params=self._params(path=path, tenantId=tenant_id))
        return resp.content

    def download_url(self, path: str, tenant_id: str | None = None) -> str:
        request = self._client.build_request(
            "GET", f"{self._prefix}/download", params=self._params(path=path, tenantId=tenant_id)
        )
        return str(request.url)

    async def storage_info(self, tenant_id: str | None = None) -> dict:
        return await self._json("GET", "/storage", params=self._params(tenantId=tenant_id))

    async def list_tenants(self) -> list[dict]:
        return await self._json("GET", "/tenants")

    async def create_tenant(self, tenant_id: str, name: str) -> dict:
        return await self._json("POST", "/tenants", json={"tenantId": tenant_id, "name": name})
