from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, String, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from filedrive.db.base import Base
from filedrive.models.common import TimestampMixin, UUIDPrimaryKeyMixin, utcnow


class File(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "files"
    __table_args__ = (
        UniqueConstraint("filename", "user_id", "folder_id", name="uq_files_filename_user_folder"),
        Index(
            "uq_files_root_filename_user",
            "filename",
            "user_id",
            unique=True,
            sqlite_where=text("folder_id IS NULL"),
            postgresql_where=text("folder_id IS NULL"),
        ),
    )

    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    cloud_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    format: Mapped[str] = mapped_column(String(32), nullable=False)
    size: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    url: Mapped[str] = mapped_column(String(1024), nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    folder_id: Mapped[str | None] = mapped_column(ForeignKey("folders.id", ondelete="CASCADE"), nullable=True, index=True)

    owner = relationship("User", back_populates="files")

    @property
    def owner_username(self) -> str | None:
        return self.owner.username if self.owner else None
