"""
Client-side editor state for the profile lab.

`LabStore` keeps the full profile config locally and stages every change
until a save point, where `flush()` sends only the staged top-level keys in
one PATCH. The server replaces nested objects (geometry, themeConfig,
socialLinks) whole, so the nested helpers always stage the complete object
rather than the single key that changed. Only keys the server persists can
be staged, so nothing is dropped silently on save.

`LabClient` is a thin wrapper over the JSON API using an `httpx.Client`
that keeps the session cookie between calls.
"""

import copy
import json
import logging
import secrets
import string
from typing import Any, Optional

import httpx

from app.models.user import DEFAULT_GEOMETRY, DEFAULT_THEME_CONFIG
from app.schemas.user_schema import ProfileUpdate

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: dict[str, Any] = {
    "displayName": "Alex Rivera",
    "bio": "creative director & product designer",
    "avatarUrl": "",
    "backgroundUrl": "",
    "audioUrl": "",
    "accentColor": "#7c3aed",
    "geometry": dict(DEFAULT_GEOMETRY),
    "themeConfig": copy.deepcopy(DEFAULT_THEME_CONFIG),
    "entranceAnimation": "none",
    "effectIntensity": 1,
    "effectSpeed": 1,
    "frame": "none",
    "glowEnabled": True,
    "decorations": [],
    "logicRules": [],
    "socialLinks": [
        {"id": "1", "platform": "Spotify", "url": ""},
        {"id": "2", "platform": "Instagram", "url": ""},
        {"id": "3", "platform": "Snapchat", "url": ""},
        {"id": "4", "platform": "Threads", "url": ""},
        {"id": "5", "platform": "Roblox", "url": ""},
    ],
}

# Wire names the server persists through PATCH /api/user
EDITABLE_KEYS = frozenset(field.alias for field in ProfileUpdate.model_fields.values())

_ID_ALPHABET = string.ascii_lowercase + string.digits


def _new_link_id() -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))


class LabClientError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class LabClient:
    def __init__(self, http: httpx.Client):
        self.http = http

    def _check(self, response: httpx.Response) -> Any:
        if response.is_success:
            if response.status_code == 204 or not response.content:
                return None
            return response.json()

        try:
            message = response.json().get("message") or response.reason_phrase
        except ValueError:
            message = response.text or response.reason_phrase
        raise LabClientError(response.status_code, message)

    # Account

    def register(self, username: str, email: str, password: str) -> dict:
        return self._check(self.http.post(
            "/api/register", json={"username": username, "email": email, "password": password}
        ))

    def login(self, username: str, password: str) -> dict:
        return self._check(self.http.post("/api/login", json={"username": username, "password": password}))

    def logout(self) -> dict:
        return self._check(self.http.post("/api/logout"))

    def me(self) -> dict:
        return self._check(self.http.get("/api/user"))

    # Profile

    def update_profile(self, changes: dict) -> dict:
        return self._check(self.http.patch("/api/user", json=changes))

    def get_profile(self, username: str) -> dict:
        return self._check(self.http.get(f"/api/u/{username}"))

    def add_view(self, username: str) -> int:
        return self._check(self.http.post(f"/api/u/{username}/view"))["views"]

    # Links and media

    def create_link(self, title: str, url: str, icon: str = "link", order: int = 0) -> dict:
        return self._check(self.http.post(
            "/api/links", json={"title": title, "url": url, "icon": icon, "order": order}
        ))

    def delete_link(self, link_id: int) -> None:
        self._check(self.http.delete(f"/api/links/{link_id}"))

    def upload(self, filename: str, content: bytes, content_type: str = "application/octet-stream") -> dict:
        return self._check(self.http.post("/api/upload", files={"file": (filename, content, content_type)}))


class LabStore:
    def __init__(self, config: Optional[dict] = None):
        self.config: dict[str, Any] = copy.deepcopy(DEFAULT_CONFIG)
        if config:
            self.config.update(copy.deepcopy({k: v for k, v in config.items() if k in EDITABLE_KEYS}))
        self._staged: dict[str, Any] = {}

    @property
    def dirty(self) -> bool:
        return bool(self._staged)

    @property
    def staged(self) -> dict[str, Any]:
        return copy.deepcopy(self._staged)

    def _stage(self, key: str, value: Any) -> None:
        if key not in EDITABLE_KEYS:
            raise ValueError(f"{key} is not a saved profile field")
        self.config[key] = value
        self._staged[key] = copy.deepcopy(value)

    def update(self, **partial: Any) -> None:
        for key, value in partial.items():
            self._stage(key, value)

    def update_geometry(self, key: str, value: float) -> None:
        self._stage("geometry", {**self.config.get("geometry", {}), key: value})

    def update_theme(self, key: str, value: Any) -> None:
        self._stage("themeConfig", {**self.config.get("themeConfig", {}), key: value})

    def add_social_link(self, platform: str) -> str:
        link_id = _new_link_id()
        links = [dict(link) for link in self.config.get("socialLinks", [])]
        links.append({"id": link_id, "platform": platform, "url": ""})
        self._stage("socialLinks", links)
        return link_id

    def update_social_link(self, link_id: str, url: str) -> None:
        links = [
            {**link, "url": url} if link["id"] == link_id else dict(link)
            for link in self.config.get("socialLinks", [])
        ]
        self._stage("socialLinks", links)

    def remove_social_link(self, link_id: str) -> None:
        links = [dict(link) for link in self.config.get("socialLinks", []) if link["id"] != link_id]
        self._stage("socialLinks", links)

    def reset(self) -> None:
        for key, value in copy.deepcopy(DEFAULT_CONFIG).items():
            self._stage(key, value)

    def export_json(self) -> str:
        return json.dumps(self.config, indent=2)

    def import_json(self, text: str) -> None:
        try:
            imported = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError("Invalid JSON") from e
        if not isinstance(imported, dict):
            raise ValueError("Invalid JSON")

        # Keys the server would not store are left out of the import
        known = {k: v for k, v in imported.items() if k in EDITABLE_KEYS}
        merged = {**copy.deepcopy(DEFAULT_CONFIG), **known}
        for key, value in merged.items():
            self._stage(key, value)

    def flush(self, client: LabClient) -> Optional[dict]:
        """PATCH the staged keys. Nothing is sent when clean; the stage survives a failed save."""
        if not self._staged:
            return None

        user = client.update_profile(self._staged)
        for key, value in user.items():
            if key in self.config:
                self.config[key] = value
        logger.debug("Flushed %s", sorted(self._staged))
        self._staged = {}
        return user
