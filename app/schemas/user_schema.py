# schemas/user_schema.py
import re
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.schemas.link_schema import LinkOut

Frame = Literal["none", "glass", "neon", "minimal", "transparent", "glowing-border"]
EntranceAnimation = Literal["none", "aura", "sparkles", "burst", "cosmic", "cyber"]
LogicTrigger = Literal["mobile", "night", "idle", "scroll", "returning"]
LogicAction = Literal["switch_theme", "skip_intro", "scale_motion", "ambient_move"]

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
_USERNAME = re.compile(r"^[A-Za-z0-9_.-]+$")


class CamelModel(BaseModel):
    # camelCase on the wire, snake_case in Python
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# === Nested config blobs ===
# geometry and themeConfig are stored exactly as sent; only their shape is checked

class SocialLink(CamelModel):
    id: str
    platform: str
    url: str = ""


class LogicRule(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    trigger: LogicTrigger
    action: LogicAction
    value: Any = None


# === Requests ===

class RegisterIn(BaseModel):
    username: str = Field(..., min_length=3, max_length=32)
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=8, max_length=128)

    @field_validator("username", "email", mode="before")
    @classmethod
    def strip_whitespace(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("username")
    @classmethod
    def check_username(cls, v: str) -> str:
        if not _USERNAME.match(v):
            raise ValueError("Username may only contain letters, numbers, '.', '_' and '-'")
        return v

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        v = v.lower()
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError("Invalid email address")
        return v


class LoginIn(BaseModel):
    # `username` may hold an email address; `email` is accepted as an alias
    username: str = Field(..., min_length=1, validation_alias=AliasChoices("username", "email"))
    password: str = Field(..., min_length=1)


class VerifyEmailIn(BaseModel):
    token: str = Field(..., min_length=1)


class ProfileUpdate(CamelModel):
    """
    Partial profile update for PATCH /api/user.

    Every field is optional and only the fields present in the request are
    written. Nested values (geometry, themeConfig, socialLinks, logicRules)
    replace the stored value whole and are stored as sent; callers that want
    to change a single key must send the full object. Gamification and
    account fields are not part of this model and are ignored if sent.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    display_name: Optional[str] = Field(None, max_length=64)
    bio: Optional[str] = Field(None, max_length=500)
    avatar_url: Optional[str] = None
    background_url: Optional[str] = None
    audio_url: Optional[str] = None
    accent_color: Optional[str] = None
    frame: Optional[Frame] = None
    glow_enabled: Optional[bool] = None
    theme_config: Optional[dict[str, Any]] = None
    geometry: Optional[dict[str, Any]] = None
    entrance_animation: Optional[EntranceAnimation] = None
    effect_intensity: Optional[float] = Field(None, ge=0, le=10)
    effect_speed: Optional[float] = Field(None, ge=0, le=10)
    decorations: Optional[list[str]] = None
    social_links: Optional[list[SocialLink]] = None
    logic_rules: Optional[list[LogicRule]] = None

    @field_validator(
        "frame", "glow_enabled", "theme_config", "geometry", "entrance_animation",
        "effect_intensity", "effect_speed", "decorations", "social_links", "logic_rules",
    )
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("This field cannot be null")
        return v

    @field_validator("accent_color")
    @classmethod
    def check_accent_color(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not _HEX_COLOR.match(v):
            raise ValueError("Accent color must be a hex color like #7c3aed")
        return v

    @field_validator("geometry")
    @classmethod
    def check_geometry(cls, v: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
        if v is not None:
            for value in v.values():
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise ValueError("Geometry values must be numbers")
        return v

    def to_changes(self) -> dict[str, Any]:
        """Column-name -> value for the fields the caller actually sent."""
        changes = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            if isinstance(value, list):
                value = [
                    v.model_dump(by_alias=True, exclude_unset=True) if isinstance(v, BaseModel) else v
                    for v in value
                ]
            changes[name] = value
        return changes


# === Responses ===

class PublicUserOut(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    username: str
    display_name: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    background_url: Optional[str] = None
    audio_url: Optional[str] = None
    accent_color: Optional[str] = None
    frame: Optional[str] = None
    glow_enabled: Optional[bool] = None

    theme_config: dict[str, Any]
    geometry: dict[str, Any]
    entrance_animation: Optional[str] = None
    effect_intensity: Optional[float] = None
    effect_speed: Optional[float] = None
    decorations: list[str] = []
    social_links: list[dict[str, Any]] = []
    logic_rules: list[dict[str, Any]] = []

    level: int
    xp: int
    views: int
    likes: int
    is_pro: bool
    created_at: Optional[datetime] = None


class UserOut(PublicUserOut):
    # The signed-in owner's view adds account fields; hash and token never leave
    email: Optional[str] = None
    discord_id: Optional[str] = None
    is_email_verified: bool = False


class PublicProfileOut(PublicUserOut):
    links: list[LinkOut] = []


class ViewOut(BaseModel):
    views: int


class MessageOut(BaseModel):
    message: str
