"""File API routes — listing, upload, mutations and download."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Optional

from fastapi import APIRouter, Body, Depends, File, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.background import BackgroundTask

from filehub.api.deps import get_current_principal, get_optional_principal, resolve_tenant
from filehub.config import settings
from filehub.database import get_db
from filehub.schemas.files import (
    AccessLevelRequest,
    CreateFileRequest,
    CreateFolderRequest,
    MoveRequest,
    PathRequest,
    RenameRequest,
)
from filehub.services import get_storage_service, get_tenant_service
from filehub.services.access_control import Action, authorize, can_access_tenant, visible
from filehub.services.access_levels import parse_access_level
from filehub.services.auth_service import Principal
from filehub.services.exceptions import InvalidInput, NotFound, PermissionDenied
from filehub.services.storage_service import UploadSource
from filehub.tenancy import strip_tenant_prefix

logger = logging.getLogger(__name__)
router = APIRouter()


def _deadline():
    return asyncio.timeout(settings.request_timeout_seconds)


@router.get("/files")
async def list_files(
    path: str = "",
    page: int = 1,
    limit: Optional[int] = None,
    show_hidden: bool = Query(False, alias="showHidden"),
    tenant_id: Optional[str] = Query(None, alias="tenantId"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Paginated directory listing with effective access levels."""
    tenant_id = await resolve_tenant(db, principal, tenant_id, "list")
    async with _deadline():
        result = await get_storage_service().list_directory(
            db, tenant_id, path, page=page, limit=limit, show_hidden=show_hidden
        )
    return {
        "files": [e.to_dict() for e in visible(principal, result.items)],
        "currentPath": path,
        "tenantId": tenant_id,
        "pagination": result.pagination.to_dict(),
    }


@router.post("/upload")
async def upload_files(
    files: list[UploadFile] = File(...),
    base_path: str = Form("", alias="basePath"),
    media_access_level: str = Form("public", alias="mediaAccessLevel"),
    relative_paths: list[str] = Form([], alias="relativePaths"),
    tenant_form: Optional[str] = Form(None, alias="tenantId"),
    tenant_query: Optional[str] = Query(None, alias="tenantId"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Upload one or many files; per-file failures are reported, not raised.

    Answers 200 for any well-formed request. ``success`` is only true when
    every file was placed.
    """
    level = parse_access_level(media_access_level, "upload", base_path)
    tenant_id = await resolve_tenant(db, principal, tenant_form or tenant_query, "upload")
    sources = [UploadSource(name=f.filename or "", stream=f.file) for f in files]

    async with _deadline():
        result = await get_storage_service().upload(
            db, tenant_id, sources, base_path=base_path, access_level=level,
            relative_paths=relative_paths or None,
        )

    placed = len(result.files)
    if relative_paths and placed:
        folder = relative_paths[0].replace("\\", "/").split("/")[0]
        message = f'Folder "{folder}" uploaded successfully ({placed} files)'
    else:
        message = f"{placed} file(s) uploaded successfully"
    if result.failures:
        message += f", {len(result.failures)} failed"

    return {
        "success": result.success,
        "partial": result.partial,
        "message": message,
        "files": result.files,
        "failures": [f.to_dict() for f in result.failures],
        "foldersCreated": len(result.folders_created),
        "accessLevel": level.value,
    }


@router.post("/folder")
async def create_folder(
    body: CreateFolderRequest,
    tenant_id: Optional[str] = Query(None, alias="tenantId"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    level = parse_access_level(body.access_level, "create_folder", body.path)
    tenant_id = await resolve_tenant(db, principal, body.tenant_id or tenant_id, "create_folder")
    async with _deadline():
        path = await get_storage_service().create_folder(db, tenant_id, body.path, body.name, level)
    return {"success": True, "message": "Folder created successfully", "path": path, "accessLevel": level.value}


@router.post("/file")
async def create_file(
    body: CreateFileRequest,
    tenant_id: Optional[str] = Query(None, alias="tenantId"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    level = parse_access_level(body.access_level, "create_file", body.path)
    tenant_id = await resolve_tenant(db, principal, body.tenant_id or tenant_id, "create_file")
    async with _deadline():
        name = await get_storage_service().create_file(
            db, tenant_id, body.path, body.name, body.content, level
        )
    path = "/".join(p for p in (body.path.strip("/"), name) if p)
    return {"success": True, "message": "File created successfully", "name": name, "path": path}


@router.delete("/delete")
async def delete_item(
    path: Optional[str] = Query(None),
    tenant_id: Optional[str] = Query(None, alias="tenantId"),
    body: Optional[PathRequest] = Body(None),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Delete a file or folder; ``path`` may come from the query or a JSON body."""
    target = path if path is not None else (body.path if body else "")
    requested = tenant_id or (body.tenant_id if body else None)
    tenant_id = await resolve_tenant(db, principal, requested, "delete")
    async with _deadline():
        await get_storage_service().delete_item(db, tenant_id, target)
    return {"success": True, "message": "Deleted successfully"}


@router.post("/rename")
async def rename_item(
    body: RenameRequest,
    tenant_id: Optional[str] = Query(None, alias="tenantId"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    tenant_id = await resolve_tenant(db, principal, body.tenant_id or tenant_id, "rename")
    async with _deadline():
        new_path = await get_storage_service().rename(db, tenant_id, body.path, body.new_name)
    return {"success": True, "message": "Renamed successfully", "newPath": new_path}


@router.post("/move")
async def move_item(
    body: MoveRequest,
    tenant_id: Optional[str] = Query(None, alias="tenantId"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    tenant_id = await resolve_tenant(db, principal, body.tenant_id or tenant_id, "move")
    async with _deadline():
        new_path = await get_storage_service().move(db, tenant_id, body.path, body.destination)
    return {"success": True, "message": "Moved successfully", "newPath": new_path}


@router.post("/duplicate")
async def duplicate_item(
    body: PathRequest,
    tenant_id: Optional[str] = Query(None, alias="tenantId"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    tenant_id = await resolve_tenant(db, principal, body.tenant_id or tenant_id, "duplicate")
    async with _deadline():
        new_path, new_name = await get_storage_service().duplicate(db, tenant_id, body.path)
    return {"success": True, "message": "Duplicated successfully", "newPath": new_path, "newName": new_name}


@router.post("/access-level")
async def set_access_level(
    body: AccessLevelRequest,
    tenant_id: Optional[str] = Query(None, alias="tenantId"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    level = parse_access_level(body.access_level, "access_level", body.path)
    tenant_id = await resolve_tenant(db, principal, body.tenant_id or tenant_id, "access_level")
    async with _deadline():
        entry = await get_storage_service().set_access_level(db, tenant_id, body.path, level)
    return {"success": True, "message": f"Access level set to {level.value}", "file": entry.to_dict()}


@router.get("/download")
async def download(
    path: str = "",
    tenant_id: Optional[str] = Query(None, alias="tenantId"),
    principal: Optional[Principal] = Depends(get_optional_principal),
    db: AsyncSession = Depends(get_db),
):
    """Serve file bytes; folders are zipped.

    Public entries are served without a token. ``path`` may carry a
    ``tenantId:`` prefix as produced by multi-tenant search.
    """
    prefixed, relative = strip_tenant_prefix(path, tenant_id)
    tenant_id = prefixed or (principal.tenant_id if principal else None)
    if not tenant_id:
        raise InvalidInput("download", path, "tenantId is required")

    def _denied() -> Exception:
        if principal is None:
            return HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Authentication required",
                headers={"WWW-Authenticate": "Bearer"},
            )
        return PermissionDenied("download", relative, "Access denied")

    storage = get_storage_service()
    try:
        await get_tenant_service().require_tenant(db, tenant_id)
        entry = await storage.get_entry(db, tenant_id, relative)
    except NotFound:
        # Outsiders get the same answer for missing and private paths
        if not can_access_tenant(principal, tenant_id):
            raise _denied() from None
        raise
    if not authorize(principal, entry, Action.READ_BYTES):
        raise _denied()

    async with _deadline():
        physical, is_archive = await storage.open_for_download(
            db, tenant_id, entry, include_private=can_access_tenant(principal, tenant_id)
        )
    if is_archive:
        logger.info("Serving folder archive %s:%s", tenant_id, entry.path or "/")
        return FileResponse(
            physical,
            media_type="application/zip",
            filename=f"{entry.name or tenant_id}.zip",
            background=BackgroundTask(os.unlink, physical),
        )
    return FileResponse(physical, filename=entry.name)


@router.get("/storage")
async def storage_info(
    tenant_id: Optional[str] = Query(None, alias="tenantId"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Usage summary for one tenant."""
    tenant_id = await resolve_tenant(db, principal, tenant_id, "storage")
    async with _deadline():
        return await get_storage_service().storage_info(tenant_id)
