"""API route registration."""

from fastapi import APIRouter

from filehub.api.routes import auth, files, health, search, system, tenants

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(files.router, tags=["files"])
api_router.include_router(search.router, tags=["search"])
api_router.include_router(tenants.router, prefix="/tenants", tags=["tenants"])
api_router.include_router(system.router, prefix="/system", tags=["system"])
