"""
Discord OAuth2 login.

The callback resolves a Discord identity to a local account with a fixed
precedence, kept as an explicit table so it can be audited and tested on its
own:

    found by discord id | found by email | action
    --------------------+----------------+--------
    yes                 | (any)          | LOGIN   existing account
    no                  | yes            | LINK    set discord_id on that account
    no                  | no             | CREATE  new account
"""

import enum
import logging
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

import httpx
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.auth.passwords import random_password
from app.core.config import settings
from app.core.errors import UpstreamError
from app.models.user import User, default_theme_config
from app.services import store

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://discord.com/api/oauth2/authorize"
TOKEN_URL = "https://discord.com/api/oauth2/token"
ME_URL = "https://discord.com/api/users/@me"
CDN_URL = "https://cdn.discordapp.com"
SCOPES = "identify email"


@dataclass
class DiscordProfile:
    id: str
    username: str
    email: Optional[str] = None
    verified: bool = False
    global_name: Optional[str] = None
    avatar: Optional[str] = None

    @property
    def avatar_url(self) -> Optional[str]:
        if not self.avatar:
            return None
        return f"{CDN_URL}/avatars/{self.id}/{self.avatar}.png"


class DiscordAction(str, enum.Enum):
    LOGIN = "login"
    LINK = "link"
    CREATE = "create"


def resolve_discord_action(by_discord_id: Optional[User], by_email: Optional[User]) -> DiscordAction:
    if by_discord_id is not None:
        return DiscordAction.LOGIN
    if by_email is not None:
        return DiscordAction.LINK
    return DiscordAction.CREATE


def authorize_url(state: str) -> str:
    params = {
        "client_id": settings.DISCORD_CLIENT_ID,
        "redirect_uri": settings.discord_callback_url(),
        "response_type": "code",
        "scope": SCOPES,
        "state": state,
        "prompt": "none",
    }
    return f"{AUTHORIZE_URL}?{urlencode(params)}"


async def fetch_profile(code: str) -> DiscordProfile:
    """Exchange the authorization code and load the Discord user behind it."""
    async with httpx.AsyncClient(timeout=15) as client:
        try:
            res = await client.post(
                TOKEN_URL,
                data={
                    "client_id": settings.DISCORD_CLIENT_ID,
                    "client_secret": settings.DISCORD_CLIENT_SECRET,
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": settings.discord_callback_url(),
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
            token_data = res.json()
            access_token = token_data.get("access_token")
            if res.status_code != 200 or not access_token:
                logger.warning("Discord token exchange failed: %s %s", res.status_code, token_data)
                raise UpstreamError("Failed to retrieve Discord access token")

            user_res = await client.get(ME_URL, headers={"Authorization": f"Bearer {access_token}"})
            if user_res.status_code != 200:
                logger.warning("Discord profile fetch failed: %s", user_res.status_code)
                raise UpstreamError("Failed to fetch Discord profile")
            data = user_res.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Discord request error: %s", e)
            raise UpstreamError("Discord is unavailable") from e

    return DiscordProfile(
        id=str(data["id"]),
        username=data.get("username") or f"discord{data['id']}",
        email=data.get("email"),
        verified=bool(data.get("verified")),
        global_name=data.get("global_name"),
        avatar=data.get("avatar"),
    )


def _base_username(profile: DiscordProfile) -> str:
    base = re.sub(r"[^A-Za-z0-9_.-]", "", profile.username or "")[:24]
    return base if len(base) >= 3 else f"user{profile.id[-6:]}"


def _available_username(db: Session, profile: DiscordProfile) -> str:
    base = _base_username(profile)
    username = base
    counter = 1
    while store.get_user_by_username(db, username):
        username = f"{base}{counter}"
        counter += 1
    return username


def link_or_create_user(db: Session, profile: DiscordProfile) -> tuple[User, DiscordAction]:
    by_id = store.get_user_by_discord_id(db, profile.id)
    by_email = None if by_id else store.get_user_by_email(db, profile.email)
    action = resolve_discord_action(by_id, by_email)

    if action is DiscordAction.LOGIN:
        user = by_id
    elif action is DiscordAction.LINK:
        user = store.update_user(db, by_email.id, {"discord_id": profile.id})
    else:
        try:
            user = store.create_user(
                db,
                username=_available_username(db, profile),
                email=profile.email,
                discord_id=profile.id,
                password=random_password(),
                display_name=profile.global_name or profile.username,
                avatar_url=profile.avatar_url,
                is_email_verified=bool(profile.email and profile.verified),
                theme_config=default_theme_config(),
            )
        except IntegrityError:
            # Lost a race with a parallel callback for the same identity
            user = store.get_user_by_discord_id(db, profile.id)
            if user is None:
                raise
            action = DiscordAction.LOGIN

    logger.info("Discord login %s -> user %s (%s)", profile.id, user.username, action.value)
    return user, action
