"""Explicit per-path access levels.

Only paths with an explicitly set level have a row; everything else is
public unless an ancestor directory is private.
"""

from datetime import datetime

from sqlalchemy import String, DateTime, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from filehub.models.base import Base


class FileAccess(Base):
    __tablename__ = "file_access"
    __table_args__ = (
        UniqueConstraint("tenant_id", "path", name="uq_file_access_path"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    path: Mapped[str] = mapped_column(Text, nullable=False)
    is_directory: Mapped[int] = mapped_column(Integer, default=0)
    access_level: Mapped[str] = mapped_column(String(16), nullable=False, default="public")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<FileAccess(tenant={self.tenant_id}, path='{self.path}', level={self.access_level})>"
