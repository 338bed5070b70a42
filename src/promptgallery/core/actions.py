"""Gallery operations: generate, list, delete, and toggle privacy.

These functions compose the sanitizer, the image providers, and the image
store.  They hold no per-request state; the caller's identity is passed in
explicitly (``None`` when unauthenticated).

Response Shapes
---------------
Mutating operations never raise.  Every :class:`GalleryError` (and any
unexpected failure, which is logged) becomes::

    {"success": False, "error": "<message>"}

Successful responses carry ``"success": True`` plus operation-specific keys.
Listing operations return plain lists of serialized images and fall back to
an empty list on failure.

Listing Cache
-------------
The public "recent" listing is cached per limit in a process-local
:class:`ListingCache`.  Generating, deleting, or changing visibility
invalidates it.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from .config import GalleryConfig
from .errors import (
    AuthError,
    ForbiddenError,
    GalleryError,
    NotFoundError,
    ProviderError,
    ValidationError,
)
from .image_store import ImageStore
from .models import GeneratedImage, Identity
from .providers import ProviderAdapterBase, provider_registry, select_provider
from .sanitizer import PromptSanitizer

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[bool], ProviderAdapterBase]


class ListingCache:
    """Process-local cache of serialized listings.

    Every :meth:`invalidate` bumps a generation counter.  A reader takes
    :attr:`generation` before querying the store and passes it to
    :meth:`set`; a listing read before a concurrent invalidation is then
    dropped instead of cached.
    """

    def __init__(self) -> None:
        self._entries: dict[Any, list[dict]] = {}
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def get(self, key: Any) -> list[dict] | None:
        with self._lock:
            entry = self._entries.get(key)
        return list(entry) if entry is not None else None

    def set(self, key: Any, value: list[dict], generation: int) -> bool:
        """Store ``value`` unless the cache was invalidated since ``generation``.

        Returns:
            True if the value was stored.
        """
        with self._lock:
            if generation != self._generation:
                return False
            self._entries[key] = list(value)
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def invalidate(self) -> None:
        with self._lock:
            self._entries.clear()
            self._generation += 1
        logger.debug("Listing cache invalidated")


def _failure(message: str, **extra) -> dict[str, Any]:
    return {"success": False, "error": message, **extra}


class GalleryActions:
    """Request-level gallery operations.

    Args:
        images: Image persistence.
        config: Application configuration.
        sanitizer: Prompt screen; defaults to one built from ``config``.
        provider_factory: Maps the ``use_alternate_provider`` flag to a
            provider adapter; defaults to :func:`select_provider`.
        cache: Listing cache; a fresh one is created if omitted.
    """

    def __init__(
        self,
        images: ImageStore,
        config: GalleryConfig,
        sanitizer: PromptSanitizer | None = None,
        provider_factory: ProviderFactory | None = None,
        cache: ListingCache | None = None,
    ) -> None:
        self.images = images
        self.config = config
        self.sanitizer = sanitizer or PromptSanitizer(
            extra_terms=config.extra_blocked_terms,
            max_length=config.max_prompt_length,
        )
        self.provider_factory = provider_factory or (
            lambda use_alternate: select_provider(use_alternate, config)
        )
        self.cache = cache or ListingCache()

    # -- Generation ---------------------------------------------------------

    def generate_and_save(
        self,
        identity: Identity | None,
        prompt: str | None,
        use_alternate_provider: bool = False,
        is_private: bool = False,
        count: int = 1,
    ) -> dict[str, Any]:
        """Generate images for ``prompt`` and save them to the caller's gallery.

        Steps:
        1. Require an identity.
        2. Reject an empty prompt, then screen it with the sanitizer.
        3. Call the selected provider (Gemini, or OpenAI when
           ``use_alternate_provider`` is set).
        4. Treat zero returned images as a failure.
        5. Persist every returned image owned by the caller.
        6. Invalidate cached listings.

        Returns:
            ``{"success": True, "images": [...]}`` with the serialized
            records, or a failure response.  A blocked prompt's failure
            response also carries ``blocked_terms``.
        """
        try:
            if identity is None:
                raise AuthError("Authentication required")

            if not prompt or not prompt.strip():
                return _failure("Prompt is required")

            screened = self.sanitizer.validate(prompt)
            if not screened.is_valid:
                if screened.blocked_terms:
                    terms = ", ".join(screened.blocked_terms)
                    return _failure(
                        f"Your prompt contains inappropriate content: {terms}. "
                        "Please modify your prompt and try again.",
                        blocked_terms=screened.blocked_terms,
                    )
                raise ValidationError(screened.warnings[0])

            provider = self.provider_factory(use_alternate_provider)
            logger.info(
                f"Generating {count} image(s) for user {identity.user_id} with {provider.name}"
            )
            results = provider.generate(screened.sanitized_prompt, count)

            if not results:
                raise ProviderError("No images were generated")
            if len(results) < count:
                logger.warning(f"Provider returned {len(results)} of {count} requested images")

            saved: list[GeneratedImage] = []
            for result in results:
                metadata = result.metadata
                saved.append(
                    self.images.create(
                        prompt=screened.sanitized_prompt,
                        image_data=result.image_bytes,
                        mime_type=result.mime_type,
                        user_id=identity.user_id,
                        username=identity.username,
                        is_private=is_private,
                        api_provider=provider.name,
                        model=metadata.model,
                        image_size=metadata.image_size,
                        generation_time=metadata.generation_time,
                        output_tokens=metadata.output_tokens,
                        cost=metadata.cost,
                        aspect_ratio=metadata.aspect_ratio,
                        quality=metadata.quality,
                        style=metadata.style,
                    )
                )

            self.cache.invalidate()
            return {
                "success": True,
                "images": [image.to_dict() for image in saved],
                "warnings": screened.warnings,
            }

        except GalleryError as e:
            logger.warning(f"Image generation failed: {e}")
            return _failure(str(e))
        except Exception as e:
            logger.exception(f"Unexpected error in generate_and_save: {e}")
            return _failure("Failed to generate image")

    # -- Listing ------------------------------------------------------------

    def _resolve_limit(self, limit: int | None) -> int:
        if limit is None or limit < 1:
            return self.config.default_list_limit
        return min(limit, self.config.max_list_limit)

    def get_recent_images(self, limit: int | None = None) -> list[dict]:
        """Return public images, newest first, at most ``limit`` of them."""
        limit = self._resolve_limit(limit)

        cached = self.cache.get(("recent", limit))
        if cached is not None:
            return cached

        generation = self.cache.generation
        try:
            images = [image.to_dict() for image in self.images.list_public(limit)]
        except GalleryError as e:
            logger.error(f"Error fetching recent images: {e}")
            return []

        if not self.cache.set(("recent", limit), images, generation):
            logger.debug("Listing changed during read, result not cached")
        return images

    def get_my_images(self, identity: Identity | None, limit: int | None = None) -> list[dict]:
        """Return the caller's images of any visibility, newest first."""
        if identity is None:
            logger.debug("get_my_images called without identity")
            return []

        try:
            images = self.images.list_by_owner(identity.user_id, self._resolve_limit(limit))
        except GalleryError as e:
            logger.error(f"Error fetching images for user {identity.user_id}: {e}")
            return []
        return [image.to_dict() for image in images]

    def get_image(self, identity: Identity | None, image_id: str) -> dict[str, Any]:
        """Return one image.  Private images are visible only to their owner."""
        try:
            image = self.images.get(image_id)
            if image is None:
                raise NotFoundError("Image not found")
            if image.is_private and (identity is None or identity.user_id != image.user_id):
                # Private images are indistinguishable from missing ones for other users.
                raise NotFoundError("Image not found")
            return {"success": True, "image": image.to_dict()}
        except GalleryError as e:
            return _failure(str(e))

    # -- Owner mutations ----------------------------------------------------

    def _load_owned(self, identity: Identity | None, image_id: str, action: str) -> GeneratedImage:
        if identity is None:
            raise AuthError("Authentication required")

        image = self.images.get(image_id)
        if image is None:
            raise NotFoundError("Image not found")
        if image.user_id != identity.user_id:
            logger.warning(
                f"User {identity.user_id} attempted to {action} image {image_id} "
                f"owned by {image.user_id}"
            )
            raise ForbiddenError(f"You do not have permission to {action} this image")
        return image

    def delete_image(self, identity: Identity | None, image_id: str) -> dict[str, Any]:
        """Delete an image owned by the caller."""
        try:
            self._load_owned(identity, image_id, "delete")
            if not self.images.delete(image_id):
                raise NotFoundError("Image not found")
            self.cache.invalidate()
            return {"success": True}
        except GalleryError as e:
            return _failure(str(e))
        except Exception as e:
            logger.exception(f"Unexpected error deleting image {image_id}: {e}")
            return _failure("Failed to delete image")

    def toggle_image_privacy(self, identity: Identity | None, image_id: str) -> dict[str, Any]:
        """Flip the visibility of an image owned by the caller.

        Returns:
            ``{"success": True, "is_private": <new value>}`` or a failure response.
        """
        try:
            image = self._load_owned(identity, image_id, "modify")
            is_private = not image.is_private
            if not self.images.set_privacy(image_id, is_private):
                raise NotFoundError("Image not found")
            self.cache.invalidate()
            return {"success": True, "is_private": is_private}
        except GalleryError as e:
            return _failure(str(e))
        except Exception as e:
            logger.exception(f"Unexpected error updating image {image_id}: {e}")
            return _failure("Failed to update image privacy")

    # -- Diagnostics --------------------------------------------------------

    def check_connections(self) -> dict[str, Any]:
        """Check each provider API and the database.

        Returns:
            Dictionary with ``gemini_api``, ``openai_api`` and ``database``
            booleans and a summary ``message``.
        """
        status = {
            "gemini_api": self.provider_factory(False).check_connection(),
            "openai_api": self.provider_factory(True).check_connection(),
            "database": self.images.db.ping(),
        }
        failing = [name for name, ok in status.items() if not ok]
        if failing:
            message = f"Unavailable: {', '.join(failing)}"
        else:
            message = (
                f"All connections healthy ({self.images.count()} images stored, "
                f"providers: {', '.join(provider_registry.list_available())})"
            )
        return {**status, "message": message}
