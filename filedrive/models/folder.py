from sqlalchemy import ForeignKey, Index, String, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from filedrive.db.base import Base
from filedrive.models.common import TimestampMixin, UUIDPrimaryKeyMixin


class Folder(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A node in a per-user folder tree.

    The parent is referenced by id only; children are found by querying rows
    whose ``parent_folder_id`` equals this id.
    """

    __tablename__ = "folders"
    __table_args__ = (
        UniqueConstraint("name", "user_id", "parent_folder_id", name="uq_folders_name_user_parent"),
        # NULL parents compare as distinct, so root siblings need their own index.
        Index(
            "uq_folders_root_name_user",
            "name",
            "user_id",
            unique=True,
            sqlite_where=text("parent_folder_id IS NULL"),
            postgresql_where=text("parent_folder_id IS NULL"),
        ),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    parent_folder_id: Mapped[str | None] = mapped_column(
        ForeignKey("folders.id", ondelete="CASCADE"), nullable=True, index=True
    )

    owner = relationship("User", back_populates="folders")

    @property
    def owner_username(self) -> str | None:
        return self.owner.username if self.owner else None
