"""Data models for gallery records, accounts, and identities."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

logger = logging.getLogger(__name__)

ApiProvider = Literal["gemini", "openai"]
API_PROVIDERS: tuple[str, ...] = ("gemini", "openai")

# Defaults applied to rows written before provenance metadata existed.
LEGACY_DEFAULTS: dict[str, Any] = {
    "mime_type": "image/png",
    "username": "",
    "is_private": False,
    "api_provider": "gemini",
    "model": "unknown",
    "image_size": "unknown",
    "generation_time": 0,
}


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """Parse a stored timestamp, falling back to the epoch for missing values.

    Args:
        value: ISO-8601 string, datetime, or None.

    Returns:
        Aware UTC datetime.
    """
    if isinstance(value, datetime):
        parsed = value
    elif value:
        parsed = datetime.fromisoformat(str(value))
    else:
        return datetime.fromtimestamp(0, tz=timezone.utc)

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class GeneratedImage:
    """A generated image persisted to the gallery.

    ``image_data`` holds the base64-encoded payload.  ``user_id`` is set once
    at creation and never changes; only ``is_private`` is mutated afterwards.
    """

    id: str
    prompt: str
    image_data: str
    user_id: str
    username: str
    api_provider: str
    model: str
    image_size: str
    generation_time: int
    mime_type: str = "image/png"
    is_private: bool = False
    output_tokens: int | None = None
    cost: float | None = None
    aspect_ratio: str | None = None
    quality: str | None = None
    style: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "GeneratedImage":
        """Build a record from a stored row, defaulting legacy fields.

        Args:
            row: Mapping of column name to stored value.

        Returns:
            GeneratedImage with every required field populated.
        """
        values = dict(LEGACY_DEFAULTS)
        values.update({key: value for key, value in row.items() if value is not None})

        return cls(
            id=str(values["id"]),
            prompt=values.get("prompt", ""),
            image_data=values.get("image_data", ""),
            mime_type=values["mime_type"],
            user_id=values.get("user_id", ""),
            username=values["username"],
            is_private=bool(values["is_private"]),
            api_provider=values["api_provider"],
            model=values["model"],
            image_size=values["image_size"],
            generation_time=int(values["generation_time"]),
            output_tokens=values.get("output_tokens"),
            cost=values.get("cost"),
            aspect_ratio=values.get("aspect_ratio"),
            quality=values.get("quality"),
            style=values.get("style"),
            created_at=parse_timestamp(values.get("created_at")),
            updated_at=parse_timestamp(values.get("updated_at")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for transport: timestamps as ISO-8601 text, payload as base64 text."""
        return {
            "id": self.id,
            "prompt": self.prompt,
            "image_data": self.image_data,
            "mime_type": self.mime_type,
            "user_id": self.user_id,
            "username": self.username,
            "is_private": self.is_private,
            "api_provider": self.api_provider,
            "model": self.model,
            "image_size": self.image_size,
            "generation_time": self.generation_time,
            "output_tokens": self.output_tokens,
            "cost": self.cost,
            "aspect_ratio": self.aspect_ratio,
            "quality": self.quality,
            "style": self.style,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class Account:
    """A registered user.  The password is only ever held as a salted hash."""

    id: str
    email: str
    username: str
    password_hash: str
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Account":
        return cls(
            id=str(row["id"]),
            email=row["email"],
            username=row["username"],
            password_hash=row["password_hash"],
            created_at=parse_timestamp(row.get("created_at")),
            updated_at=parse_timestamp(row.get("updated_at")),
        )

    def to_public_dict(self) -> dict[str, Any]:
        """Serialize without the password hash."""
        return {
            "id": self.id,
            "email": self.email,
            "username": self.username,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class Identity:
    """Decoded identity token contents."""

    user_id: str
    email: str
    username: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.user_id, "email": self.email, "username": self.username}
