# app/auth/token.py
from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Request, Response
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import UnauthorizedError
from app.database import get_db
from app.models.session import UserSession
from app.models.user import User

logger = logging.getLogger(__name__)

SECRET_KEY = settings.SESSION_SECRET
ALGORITHM = settings.SESSION_ALG


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # sqlite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def session_max_age() -> timedelta:
    return timedelta(days=settings.SESSION_MAX_AGE_DAYS)


def create_session_token(sid: str, user_id: int, expires_at: datetime) -> str:
    claims = {"sid": sid, "sub": str(user_id), "exp": expires_at}
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)


def read_session_id(token: Optional[str]) -> Optional[str]:
    if not token:
        return None
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    return payload.get("sid")


def set_session_cookie(response: Response, token: str) -> None:
    max_age = int(session_max_age().total_seconds())
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.cookie_secure(),
        samesite=settings.SESSION_COOKIE_SAMESITE,
        domain=settings.SESSION_COOKIE_DOMAIN,
        max_age=max_age,
        expires=max_age,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        domain=settings.SESSION_COOKIE_DOMAIN,
        path="/",
    )


def start_session(db: Session, response: Response, user: User) -> str:
    """Persist a new session row for `user` and hand the browser its cookie."""
    now = _utcnow()
    purged = (
        db.query(UserSession)
        .filter(UserSession.expires_at <= now)
        .delete(synchronize_session=False)
    )
    if purged:
        logger.info("Purged %s expired sessions", purged)

    sid = secrets.token_urlsafe(32)
    expires_at = now + session_max_age()
    db.add(UserSession(sid=sid, user_id=user.id, expires_at=expires_at))
    db.commit()

    set_session_cookie(response, create_session_token(sid, user.id, expires_at))
    return sid


def end_session(db: Session, request: Request, response: Response) -> None:
    sid = read_session_id(request.cookies.get(settings.SESSION_COOKIE_NAME))
    if sid:
        db.query(UserSession).filter(UserSession.sid == sid).delete(synchronize_session=False)
        db.commit()
    clear_session_cookie(response)


def get_current_user_optional(
    request: Request,
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Resolve the session cookie to a user row, or None for anonymous requests."""
    sid = read_session_id(request.cookies.get(settings.SESSION_COOKIE_NAME))
    if not sid:
        return None

    session_row = db.get(UserSession, sid)
    if not session_row:
        return None
    if _as_utc(session_row.expires_at) <= _utcnow():
        db.delete(session_row)
        db.commit()
        return None

    return db.get(User, session_row.user_id)


def get_current_user(user: Optional[User] = Depends(get_current_user_optional)) -> User:
    if user is None:
        raise UnauthorizedError()
    return user
