# research_chat/routers/auth.py
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ..database import get_db
from ..errors import ChatAppError, http_error
from ..models import Users
from ..schemas import (
    GoogleAuthRequest,
    LoginRequest,
    SessionOut,
    SessionTokenRequest,
    UserOut,
    UserRequest,
    UserUpdateRequest,
)
from ..services import auth as auth_service

authRoutes = APIRouter(prefix="/auth", tags=["auth"])
userRoutes = APIRouter(prefix="/users", tags=["users"])

bearer = HTTPBearer(auto_error=False)
db_link = Annotated[Session, Depends(get_db)]


def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer)],
    db: db_link,
) -> Users:
    if not credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing session token")
    user = auth_service.validate_session(db, credentials.credentials)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired session")
    return user


@authRoutes.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register_user(payload: UserRequest, db: db_link):
    try:
        return auth_service.create_user(
            db,
            email=payload.email,
            password=payload.password,
            display_name=payload.display_name,
            avatar_url=payload.avatar_url,
            google_id=payload.google_id,
        )
    except ChatAppError as e:
        raise http_error(e)


@authRoutes.post("/login", response_model=SessionOut)
def login(payload: LoginRequest, db: db_link):
    try:
        return auth_service.login_user(db, email=payload.email, password=payload.password)
    except ChatAppError as e:
        raise http_error(e)


@authRoutes.post("/google", response_model=SessionOut)
def google_login(payload: GoogleAuthRequest, db: db_link):
    try:
        return auth_service.google_auth(
            db,
            google_id=payload.google_id,
            email=payload.email,
            display_name=payload.display_name,
            avatar_url=payload.avatar_url,
        )
    except ChatAppError as e:
        raise http_error(e)


@authRoutes.post("/logout", response_model=bool)
def logout(payload: SessionTokenRequest, db: db_link):
    return auth_service.logout_user(db, payload.session_token)


@authRoutes.post("/session", response_model=Optional[UserOut])
def validate_session(payload: SessionTokenRequest, db: db_link):
    return auth_service.validate_session(db, payload.session_token)


@authRoutes.get("/me", response_model=UserOut)
def read_me(current_user: Annotated[Users, Depends(get_current_user)]):
    return current_user


@userRoutes.get("/{user_id}", response_model=Optional[UserOut])
def get_user_profile(user_id: int, db: db_link):
    return auth_service.get_user_profile(db, user_id)


@userRoutes.patch("/{user_id}", response_model=UserOut)
def update_user_profile(user_id: int, payload: UserUpdateRequest, db: db_link):
    changes = payload.model_dump(exclude_unset=True)
    try:
        return auth_service.update_user_profile(db, user_id, **changes)
    except ChatAppError as e:
        raise http_error(e)
