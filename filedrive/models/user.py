from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from filedrive.db.base import Base
from filedrive.models.common import TimestampMixin, UUIDPrimaryKeyMixin


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    folders = relationship("Folder", back_populates="owner", passive_deletes=True)
    files = relationship("File", back_populates="owner", passive_deletes=True)
