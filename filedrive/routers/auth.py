from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from filedrive.core.security import create_access_token
from filedrive.db.session import get_db
from filedrive.models.user import User
from filedrive.routers.deps import get_current_user
from filedrive.schemas.auth import LoginRequest, TokenResponse, UserCreate, UserRead
from filedrive.services.users import authenticate, create_user

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def register(payload: UserCreate, db: Session = Depends(get_db)) -> User:
    return create_user(db, payload.username, payload.email, payload.password)


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)) -> TokenResponse:
    user = authenticate(db, payload.username, payload.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return TokenResponse(access_token=create_access_token(user.id))


@router.get("/me", response_model=UserRead)
def me(current_user: User = Depends(get_current_user)) -> User:
    return current_user
