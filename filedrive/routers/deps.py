from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from filedrive.core.config import Settings
from filedrive.core.security import decode_access_token
from filedrive.db.session import get_db
from filedrive.models.user import User
from filedrive.services.storage import BlobStore
from filedrive.services.users import get_user_by_id

bearer_scheme = HTTPBearer(auto_error=False)


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise unauthorized
    try:
        payload = decode_access_token(credentials.credentials)
    except ValueError:
        raise unauthorized
    user_id = payload.get("sub")
    user = get_user_by_id(db, user_id) if user_id else None
    if not user:
        raise unauthorized
    return user
