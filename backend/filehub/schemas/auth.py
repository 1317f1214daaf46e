"""Auth schemas."""

from pydantic import BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    username: str
    password: str


class PrincipalInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: str
    role: str = "user"
    tenant_id: str | None = Field(default=None, alias="tenantId")


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: PrincipalInfo
