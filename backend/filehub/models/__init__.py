"""SQLAlchemy ORM models for FileHub."""

from filehub.models.base import Base
from filehub.models.file_access import FileAccess
from filehub.models.tenant import Tenant

__all__ = [
    "Base",
    "FileAccess",
    "Tenant",
]
