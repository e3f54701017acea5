# models/user.py
import copy

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from app.database import Base

# JSONB on Postgres, plain JSON everywhere else (sqlite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")

DEFAULT_THEME_CONFIG = {
    "background": {"type": "static", "value": "#000000", "overlayOpacity": 0.5, "blur": 0},
    "cursor": {"type": "default", "color": "#ffffff", "size": 24},
    "typography": {"headingFont": "Space Grotesk", "bodyFont": "Inter", "accentColor": "#7c3aed"},
    "motion": {"intensity": 1, "reduced": False},
}

DEFAULT_GEOMETRY = {"radius": 40, "blur": 20, "opacity": 3}


def default_theme_config() -> dict:
    return copy.deepcopy(DEFAULT_THEME_CONFIG)


def default_geometry() -> dict:
    return dict(DEFAULT_GEOMETRY)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=True)      # null for Discord-only accounts
    discord_id = Column(String, unique=True, index=True, nullable=True)
    password = Column(String, nullable=False)                            # "hash.salt", placeholder for OAuth
    is_email_verified = Column(Boolean, default=False, nullable=False)
    verification_token = Column(String, nullable=True)

    # Presentation
    display_name = Column(String, nullable=True)
    bio = Column(Text, nullable=True)
    avatar_url = Column(String, nullable=True)
    background_url = Column(String, nullable=True)
    audio_url = Column(String, nullable=True)
    accent_color = Column(String, default="#7c3aed")
    frame = Column(String, default="none")
    glow_enabled = Column(Boolean, default=True)

    # Structured customization, nested JSON is always replaced whole
    theme_config = Column(JSONType, default=default_theme_config, nullable=False)
    geometry = Column(JSONType, default=default_geometry, nullable=False)
    entrance_animation = Column(String, default="none")
    effect_intensity = Column(Float, default=1.0)
    effect_speed = Column(Float, default=1.0)
    decorations = Column(JSONType, default=list, nullable=False)
    social_links = Column(JSONType, default=list, nullable=False)
    logic_rules = Column(JSONType, default=list, nullable=False)  # [{trigger, action, value}]

    # Gamification, only written by the view accumulator
    level = Column(Integer, default=1, nullable=False)
    xp = Column(Integer, default=0, nullable=False)
    views = Column(Integer, default=0, nullable=False)
    likes = Column(Integer, default=0, nullable=False)

    is_pro = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    links = relationship(
        "Link",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Link.order",
    )

    def __repr__(self):
        return f"<User {self.username}>"
