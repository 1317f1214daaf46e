"""System status — host resources and free space on the storage volume."""

import time

import psutil
from fastapi import APIRouter, Depends

from filehub.api.deps import require_super_admin
from filehub.schemas.system import SystemStatus
from filehub.services import get_resolver
from filehub.services.auth_service import Principal

router = APIRouter()

_boot_time = psutil.boot_time()
_GB = 1024 * 1024 * 1024


@router.get("/status", response_model=SystemStatus)
async def system_status(_admin: Principal = Depends(require_super_admin)):
    """CPU, RAM and the disk that holds the tenant storage roots."""
    mem = psutil.virtual_memory()
    disk = psutil.disk_usage(str(get_resolver().storage_root))

    return SystemStatus(
        cpu_percent=psutil.cpu_percent(interval=None),
        memory_total_mb=round(mem.total / 1024 / 1024, 1),
        memory_used_mb=round(mem.used / 1024 / 1024, 1),
        memory_percent=mem.percent,
        storage_total_gb=round(disk.total / _GB, 2),
        storage_used_gb=round(disk.used / _GB, 2),
        storage_free_gb=round(disk.free / _GB, 2),
        storage_percent=disk.percent,
        uptime_seconds=round(time.time() - _boot_time, 0),
    )
