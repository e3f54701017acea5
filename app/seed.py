"""
Seed the database with a demo profile.

    python -m app.seed
"""

import logging
import sys

from sqlalchemy.orm import Session

from app.auth.passwords import hash_password
from app.core.config import settings
from app.core.logging import configure_logging
from app.database import SessionLocal, init_db
from app.services import store

logger = logging.getLogger(__name__)

DEMO_USERNAME = "void"
DEMO_PASSWORD = "password123"

DEMO_LINKS = [
    {"title": "Discord", "url": "https://discord.gg/void", "icon": "message-circle", "order": 0},
    {"title": "GitHub", "url": "https://github.com/void", "icon": "github", "order": 1},
    {"title": "Twitter", "url": "https://twitter.com/void", "icon": "twitter", "order": 2},
]


def seed(db: Session) -> bool:
    """Create the demo user and links. Returns False if it already exists."""
    if store.get_user_by_username(db, DEMO_USERNAME):
        logger.info("User %s already exists, nothing to seed", DEMO_USERNAME)
        return False

    user = store.create_user(
        db,
        username=DEMO_USERNAME,
        password=hash_password(DEMO_PASSWORD),
        display_name="The Void",
        bio="I am the beginning and the end. #001",
        accent_color="#ffffff",
        frame="neon",
        xp=99999,
        views=1337,
        is_pro=True,
    )
    for link in DEMO_LINKS:
        store.create_link(db, user.id, **link)

    logger.info("Seeded user %s with %s links", user.username, len(DEMO_LINKS))
    return True


def main() -> int:
    configure_logging(settings.LOG_LEVEL)
    init_db()
    db = SessionLocal()
    try:
        seed(db)
    except Exception:
        logger.exception("Seeding failed")
        return 1
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
