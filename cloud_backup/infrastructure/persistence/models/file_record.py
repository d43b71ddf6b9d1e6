"""File record ORM model. One row per completed upload."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from cloud_backup.infrastructure.persistence.database import Base
from cloud_backup.shared.utils.generators import generate_cuid


class FileRecordModel(Base):
    """File record entity. Table: file_record. locator points at the stored object."""

    __tablename__ = "file_record"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=generate_cuid)
    owner_id: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    size_bytes: Mapped[int] = mapped_column(BigInteger, nullable=False)
    locator: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    content_type: Mapped[str] = mapped_column(String, nullable=False)
    download_url: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_file_record_owner_created", "owner_id", "created_at"),
    )
