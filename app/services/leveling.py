import math
from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.services import store

XP_PER_VIEW = 5
LEVEL_FACTOR = 0.1


@dataclass(frozen=True)
class ViewProgress:
    views: int
    xp: int
    level: int


def level_for_xp(xp: int) -> int:
    return math.floor(LEVEL_FACTOR * math.sqrt(max(xp, 0))) + 1


def accumulate_view(views: int, xp: int, level: int) -> ViewProgress:
    new_xp = xp + XP_PER_VIEW
    # Stored level never goes down
    return ViewProgress(
        views=views + 1,
        xp=new_xp,
        level=max(level, level_for_xp(new_xp)),
    )


def record_view(db: Session, username: str) -> ViewProgress:
    """Count one profile view for `username`. Every call counts; there is no dedup."""
    user = store.get_user_by_username(db, username)
    if not user:
        raise NotFoundError("User not found")

    progress = accumulate_view(user.views, user.xp, user.level)
    store.update_user(db, user.id, {
        "views": progress.views,
        "xp": progress.xp,
        "level": progress.level,
    })
    return progress
