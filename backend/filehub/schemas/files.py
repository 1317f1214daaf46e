"""File operation request bodies — camelCase on the wire."""

from pydantic import BaseModel, ConfigDict, Field


class TenantScopedRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tenant_id: str | None = Field(default=None, alias="tenantId")


class PathRequest(TenantScopedRequest):
    path: str = ""


class CreateFolderRequest(TenantScopedRequest):
    path: str = ""
    name: str
    access_level: str = Field(default="public", alias="mediaAccessLevel")


class CreateFileRequest(CreateFolderRequest):
    content: str = ""


class RenameRequest(TenantScopedRequest):
    path: str
    new_name: str = Field(alias="newName")


class MoveRequest(TenantScopedRequest):
    path: str
    destination: str = ""


class AccessLevelRequest(TenantScopedRequest):
    path: str
    access_level: str = Field(alias="accessLevel")
