"""Tenant schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class TenantCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tenant_id: str = Field(alias="tenantId")
    name: str


class TenantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    tenant_id: str = Field(serialization_alias="tenantId")
    name: str
    created_at: datetime | None = Field(default=None, serialization_alias="createdAt")
