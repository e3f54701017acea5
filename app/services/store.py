"""
Typed access to the `users` and `links` tables.

Lookups return the row or None and never raise on absence. Each write is a
single commit; there are no cross-call transactions and concurrent updates
to the same row are last-writer-wins.
"""

import logging
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.models.link import Link
from app.models.user import User, default_geometry, default_theme_config
from app.services import leveling

logger = logging.getLogger(__name__)


# === Users ===

def get_user(db: Session, user_id: int) -> Optional[User]:
    if user_id is None:
        return None
    return db.get(User, user_id)


def get_user_by_username(db: Session, username: str) -> Optional[User]:
    if not username:
        return None
    return db.query(User).filter(User.username == username).first()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    if not email:
        return None
    return db.query(User).filter(User.email == email.strip().lower()).first()


def get_user_by_discord_id(db: Session, discord_id: str) -> Optional[User]:
    if not discord_id:
        return None
    return db.query(User).filter(User.discord_id == str(discord_id)).first()


def get_user_by_verification_token(db: Session, token: str) -> Optional[User]:
    if not token:
        return None
    return db.query(User).filter(User.verification_token == token).first()


def create_user(db: Session, **fields: Any) -> User:
    """Insert a user. Raises IntegrityError when username/email/discord id collide.

    `level` is always derived from `xp`; passing it is an error.
    """
    if "level" in fields:
        raise ValueError("level is derived from xp and cannot be set directly")
    fields.setdefault("xp", 0)
    fields["level"] = leveling.level_for_xp(fields["xp"])
    fields.setdefault("views", 0)
    fields.setdefault("likes", 0)
    fields.setdefault("theme_config", default_theme_config())
    fields.setdefault("geometry", default_geometry())
    fields.setdefault("decorations", [])
    fields.setdefault("social_links", [])
    fields.setdefault("logic_rules", [])
    if fields.get("email"):
        fields["email"] = fields["email"].strip().lower()

    user = User(**fields)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise
    db.refresh(user)
    logger.info("Created user %s (id=%s)", user.username, user.id)
    return user


def update_user(db: Session, user_id: int, changes: dict[str, Any]) -> User:
    """Shallow partial update: each key replaces its column, nested JSON included."""
    user = get_user(db, user_id)
    if not user:
        raise NotFoundError("User not found")

    for field, value in changes.items():
        if not hasattr(User, field):
            raise AttributeError(f"Unknown user column: {field}")
        setattr(user, field, value)

    db.commit()
    db.refresh(user)
    return user


# === Links ===

def get_links_by_user_id(db: Session, user_id: int) -> list[Link]:
    return (
        db.query(Link)
        .filter(Link.user_id == user_id)
        .order_by(Link.order.asc(), Link.id.asc())
        .all()
    )


def create_link(db: Session, user_id: int, **fields: Any) -> Link:
    link = Link(user_id=user_id, **fields)
    db.add(link)
    db.commit()
    db.refresh(link)
    return link


def delete_link(db: Session, link_id: int) -> None:
    db.query(Link).filter(Link.id == link_id).delete(synchronize_session=False)
    db.commit()
