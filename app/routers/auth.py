import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.auth.passwords import hash_password, verify_dummy_password, verify_password
from app.auth.token import end_session, get_current_user, start_session
from app.core.config import settings
from app.core.errors import ApiError, ConflictError, NotFoundError, UnauthorizedError, UpstreamError
from app.database import get_db
from app.models.user import User
from app.schemas.user_schema import LoginIn, MessageOut, RegisterIn, UserOut, VerifyEmailIn
from app.services import discord_oauth, store
from app.services.email import send_verification_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Auth"])

STATE_COOKIE = "discord_oauth_state"
STATE_MAX_AGE = 10 * 60


# === Local accounts ===

@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterIn, response: Response, db: Session = Depends(get_db)):
    if store.get_user_by_username(db, payload.username):
        raise ConflictError("Username already exists", field="username")
    if store.get_user_by_email(db, payload.email):
        raise ConflictError("Email already registered", field="email")

    token = secrets.token_hex(32)
    try:
        user = store.create_user(
            db,
            username=payload.username,
            email=payload.email,
            password=hash_password(payload.password),
            verification_token=token,
            is_email_verified=False,
        )
    except IntegrityError:
        # A concurrent registration took the name between the check and the insert
        raise ConflictError("Username or email already taken")

    send_verification_email(user.email, token, user.username)
    start_session(db, response, user)
    return user


@router.post("/login", response_model=UserOut)
def login(payload: LoginIn, response: Response, db: Session = Depends(get_db)):
    user = store.get_user_by_email(db, payload.username) or store.get_user_by_username(db, payload.username)
    # Both failure paths run exactly one scrypt derivation
    valid = verify_password(payload.password, user.password) if user else verify_dummy_password(payload.password)
    if not valid:
        logger.info("Failed login for %s", payload.username)
        raise UnauthorizedError("Invalid email or password")

    start_session(db, response, user)
    logger.info("User %s logged in", user.username)
    return user


@router.post("/logout", response_model=MessageOut)
def logout(request: Request, response: Response, db: Session = Depends(get_db)):
    end_session(db, request, response)
    logger.info("Logged out")
    return {"message": "Logged out"}


@router.get("/user", response_model=UserOut)
def current_user(user: User = Depends(get_current_user)):
    return user


@router.post("/verify-email", response_model=MessageOut)
def verify_email(payload: VerifyEmailIn, response: Response, db: Session = Depends(get_db)):
    user = store.get_user_by_verification_token(db, payload.token)
    if not user:
        raise NotFoundError("Invalid or expired verification token")

    user = store.update_user(db, user.id, {"is_email_verified": True, "verification_token": None})
    start_session(db, response, user)
    logger.info("Verified email for %s", user.username)
    return {"message": "Email verified successfully!"}


# === Discord OAuth ===

@router.get("/auth/discord")
def discord_login():
    if not settings.discord_enabled():
        raise ApiError(status.HTTP_503_SERVICE_UNAVAILABLE, "Discord login is not configured")

    state = secrets.token_urlsafe(16)
    response = RedirectResponse(discord_oauth.authorize_url(state), status_code=status.HTTP_302_FOUND)
    response.set_cookie(
        key=STATE_COOKIE,
        value=state,
        httponly=True,
        secure=settings.cookie_secure(),
        samesite="lax",
        max_age=STATE_MAX_AGE,
        path="/api/auth/discord",
    )
    return response


def _discord_failure() -> RedirectResponse:
    response = RedirectResponse("/auth?error=discord", status_code=status.HTTP_302_FOUND)
    response.delete_cookie(STATE_COOKIE, path="/api/auth/discord")
    return response


@router.get("/auth/discord/callback")
async def discord_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    db: Session = Depends(get_db),
):
    expected_state = request.cookies.get(STATE_COOKIE)
    if error or not code:
        logger.warning("Discord callback without code (error=%s)", error)
        return _discord_failure()
    if not expected_state or not state or not secrets.compare_digest(expected_state.encode(), state.encode()):
        logger.warning("Discord callback state mismatch")
        return _discord_failure()

    try:
        profile = await discord_oauth.fetch_profile(code)
    except UpstreamError:
        return _discord_failure()

    user, _ = discord_oauth.link_or_create_user(db, profile)

    response = RedirectResponse("/lab", status_code=status.HTTP_302_FOUND)
    response.delete_cookie(STATE_COOKIE, path="/api/auth/discord")
    start_session(db, response, user)
    return response
