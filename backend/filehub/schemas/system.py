"""System status schemas."""

from pydantic import BaseModel


class SystemStatus(BaseModel):
    """Host resources relevant to file serving."""
    cpu_percent: float
    memory_total_mb: float
    memory_used_mb: float
    memory_percent: float
    storage_total_gb: float
    storage_used_gb: float
    storage_free_gb: float
    storage_percent: float
    uptime_seconds: float


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "ok"
    version: str
    service: str = "filehub"
