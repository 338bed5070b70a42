"""Persistence for generated images.

Rows are keyed by an opaque UUID and carry the owner, the visibility flag,
and the provenance metadata returned by the image provider.  Listings are
always newest first.  Rows written before provenance metadata existed are
defaulted on read by :meth:`GeneratedImage.from_row`.
"""

import logging
import uuid
from typing import Any

from .database import Database
from .models import GeneratedImage, utcnow

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id",
    "prompt",
    "image_data",
    "mime_type",
    "user_id",
    "username",
    "is_private",
    "api_provider",
    "model",
    "image_size",
    "generation_time",
    "output_tokens",
    "cost",
    "aspect_ratio",
    "quality",
    "style",
    "created_at",
    "updated_at",
)


def _timestamp(value) -> str:
    return value.isoformat(timespec="microseconds")


def _to_row(image: GeneratedImage) -> dict[str, Any]:
    return {
        "id": image.id,
        "prompt": image.prompt,
        "image_data": image.image_data,
        "mime_type": image.mime_type,
        "user_id": image.user_id,
        "username": image.username,
        "is_private": int(image.is_private),
        "api_provider": image.api_provider,
        "model": image.model,
        "image_size": image.image_size,
        "generation_time": image.generation_time,
        "output_tokens": image.output_tokens,
        "cost": image.cost,
        "aspect_ratio": image.aspect_ratio,
        "quality": image.quality,
        "style": image.style,
        "created_at": _timestamp(image.created_at),
        "updated_at": _timestamp(image.updated_at),
    }


class ImageStore:
    """CRUD operations on the ``images`` table."""

    def __init__(self, db: Database):
        self.db = db

    def create(self, **fields) -> GeneratedImage:
        """Persist a new image and return it.

        Args:
            **fields: GeneratedImage fields except ``id`` and timestamps,
                which are assigned here.

        Returns:
            The stored GeneratedImage.

        Raises:
            PersistenceError: If the insert fails.
        """
        now = utcnow()
        image = GeneratedImage(id=uuid.uuid4().hex, created_at=now, updated_at=now, **fields)
        row = _to_row(image)

        placeholders = ", ".join("?" for _ in _COLUMNS)
        with self.db.session() as conn:
            conn.execute(
                f"INSERT INTO images ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
                tuple(row[column] for column in _COLUMNS),
            )

        logger.info(f"Saved image {image.id} for user {image.user_id} ({image.model})")
        return image

    def get(self, image_id: str) -> GeneratedImage | None:
        with self.db.session() as conn:
            row = conn.execute("SELECT * FROM images WHERE id = ?", (image_id,)).fetchone()
        return GeneratedImage.from_row(dict(row)) if row else None

    def list_public(self, limit: int) -> list[GeneratedImage]:
        """Return public images, newest first."""
        with self.db.session() as conn:
            rows = conn.execute(
                """
                SELECT * FROM images
                WHERE is_private = 0
                ORDER BY created_at DESC, rowid DESC
                LIMIT ?
                """,
                (limit,),
            ).fetchall()
        return [GeneratedImage.from_row(dict(row)) for row in rows]

    def list_by_owner(self, user_id: str, limit: int) -> list[GeneratedImage]:
        """Return every image owned by ``user_id`` regardless of visibility, newest first."""
        with self.db.session() as conn:
            rows = conn.execute(
                """
                SELECT * FROM images
                WHERE user_id = ?
                ORDER BY created_at DESC, rowid DESC
                LIMIT ?
                """,
                (user_id, limit),
            ).fetchall()
        return [GeneratedImage.from_row(dict(row)) for row in rows]

    def set_privacy(self, image_id: str, is_private: bool) -> bool:
        """Update the visibility flag.

        Returns:
            True if a row was updated, False if the id is unknown.
        """
        with self.db.session() as conn:
            cursor = conn.execute(
                "UPDATE images SET is_private = ?, updated_at = ? WHERE id = ?",
                (int(is_private), _timestamp(utcnow()), image_id),
            )
            updated = cursor.rowcount > 0

        if updated:
            logger.info(f"Image {image_id} is now {'private' if is_private else 'public'}")
        return updated

    def delete(self, image_id: str) -> bool:
        """Delete an image.

        Returns:
            True if a row was deleted, False if the id is unknown.
        """
        with self.db.session() as conn:
            cursor = conn.execute("DELETE FROM images WHERE id = ?", (image_id,))
            deleted = cursor.rowcount > 0

        if deleted:
            logger.info(f"Deleted image {image_id}")
        else:
            logger.debug(f"Image {image_id} not found for delete")
        return deleted

    def count(self) -> int:
        with self.db.session() as conn:
            row = conn.execute("SELECT COUNT(*) FROM images").fetchone()
        return row[0] if row else 0
