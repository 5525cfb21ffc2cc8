import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from filedrive.core.errors import ConflictError
from filedrive.core.security import hash_password, verify_password
from filedrive.db.errors import translate_db_errors
from filedrive.models.user import User

logger = logging.getLogger(__name__)


def get_user_by_id(db: Session, user_id: str) -> User | None:
    with translate_db_errors(db):
        return db.scalar(select(User).where(User.id == user_id))


def get_user_by_username(db: Session, username: str) -> User | None:
    with translate_db_errors(db):
        return db.scalar(select(User).where(User.username == username))


def create_user(db: Session, username: str, email: str, password: str) -> User:
    email = email.lower()
    with translate_db_errors(db, "Username or email is already registered."):
        if db.scalar(select(User.id).where(User.email == email)) is not None:
            raise ConflictError("Email is already registered.")
        if db.scalar(select(User.id).where(User.username == username)) is not None:
            raise ConflictError("Username is already taken.")
        user = User(username=username, email=email, password_hash=hash_password(password))
        db.add(user)
        db.commit()
    db.refresh(user)
    logger.info("user_registered", extra={"user_id": user.id})
    return user


def authenticate(db: Session, username: str, password: str) -> User | None:
    user = get_user_by_username(db, username)
    if not user or not verify_password(password, user.password_hash):
        return None
    return user
