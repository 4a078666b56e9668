# research_chat/services/auth.py
"""
Account and session handling.

Sessions are opaque random tokens stored in ``user_sessions``. A token is
valid while it exists, has not expired, and its owner is still active.
Logging in never revokes earlier sessions.
"""
import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import config
from ..database import commit_or_rollback
from ..errors import (
    AccountDeactivatedError,
    ConflictError,
    InvalidCredentialsError,
    NotFoundError,
    WrongAuthMethodError,
)
from ..models import Users, UserSession, utcnow
from ..security import hash_password, new_session_token, verify_password

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("display_name", "avatar_url")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user_by_email(db: Session, email: str) -> Optional[Users]:
    return db.query(Users).filter(Users.email == normalize_email(email)).first()


def create_user(
    db: Session,
    *,
    email: str,
    display_name: str,
    password: Optional[str] = None,
    avatar_url: Optional[str] = None,
    google_id: Optional[str] = None,
) -> Users:
    email = normalize_email(email)
    if get_user_by_email(db, email):
        raise ConflictError("User with this email already exists")
    if google_id and db.query(Users).filter(Users.google_id == google_id).first():
        raise ConflictError("User with this Google account already exists")

    now = utcnow()
    user = Users(
        email=email,
        password_hash=hash_password(password) if password else None,
        display_name=display_name,
        avatar_url=avatar_url or None,
        google_id=google_id or None,
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # lost a race against a concurrent registration
        db.rollback()
        raise ConflictError("User with this email already exists")
    db.refresh(user)
    logger.info("Created user %s (oauth_only=%s)", user.id, user.password_hash is None)
    return user


def _issue_session(db: Session, user: Users) -> UserSession:
    now = utcnow()
    session = UserSession(
        user_id=user.id,
        session_token=new_session_token(),
        expires_at=now + timedelta(hours=config.SESSION_TTL_HOURS),
        created_at=now,
    )
    db.add(session)
    return session


def login_user(db: Session, *, email: str, password: str) -> UserSession:
    user = get_user_by_email(db, email)
    if not user:
        logger.info("Login rejected: unknown email")
        raise InvalidCredentialsError()
    if not user.is_active:
        logger.info("Login rejected: user %s is deactivated", user.id)
        raise AccountDeactivatedError()
    if not user.password_hash:
        raise WrongAuthMethodError()
    if not verify_password(password, user.password_hash):
        logger.info("Login rejected: bad password for user %s", user.id)
        raise InvalidCredentialsError()

    session = _issue_session(db, user)
    commit_or_rollback(db, "User login")
    db.refresh(session)
    logger.info("User %s logged in", user.id)
    return session


def google_auth(
    db: Session,
    *,
    google_id: str,
    email: str,
    display_name: str,
    avatar_url: Optional[str] = None,
) -> UserSession:
    """Find, link or create the Google account, then open a fresh session."""
    now = utcnow()
    user = db.query(Users).filter(Users.google_id == google_id).first()
    if user is None:
        user = get_user_by_email(db, email)
        if user is not None:
            # existing password account, keep its hash and attach Google
            logger.info("Linking Google account to user %s", user.id)
            user.google_id = google_id
        else:
            user = Users(
                email=normalize_email(email),
                password_hash=None,
                google_id=google_id,
                is_active=True,
                created_at=now,
            )
            db.add(user)

    user.display_name = display_name
    user.avatar_url = avatar_url or None
    user.updated_at = now
    try:
        db.flush()
    except IntegrityError:
        # email or Google id was taken by a concurrent sign-up
        db.rollback()
        raise ConflictError("User with this email already exists")

    session = _issue_session(db, user)
    commit_or_rollback(db, "Google authentication")
    db.refresh(session)
    return session


def validate_session(db: Session, session_token: str) -> Optional[Users]:
    return (
        db.query(Users)
        .join(UserSession, UserSession.user_id == Users.id)
        .filter(
            UserSession.session_token == session_token,
            UserSession.expires_at > utcnow(),
            Users.is_active.is_(True),
        )
        .first()
    )


def logout_user(db: Session, session_token: str) -> bool:
    deleted = (
        db.query(UserSession)
        .filter(UserSession.session_token == session_token)
        .delete(synchronize_session=False)
    )
    commit_or_rollback(db, "Logout")
    if deleted:
        logger.info("Session closed")
    return deleted > 0


def get_user_profile(db: Session, user_id: int) -> Optional[Users]:
    return db.get(Users, user_id)


def update_user_profile(db: Session, user_id: int, **changes) -> Users:
    user = db.get(Users, user_id)
    if not user:
        raise NotFoundError(f"User with id {user_id} does not exist")
    for field in PROFILE_FIELDS:
        if field not in changes:
            continue
        if field == "display_name" and changes[field] is None:
            continue  # display name is required, null means "leave it"
        setattr(user, field, changes[field])
    user.updated_at = utcnow()
    commit_or_rollback(db, "Profile update")
    db.refresh(user)
    return user
