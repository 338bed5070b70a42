"""Core functionality for Prompt Gallery.

This package holds everything below the HTTP layer:

- **config.py**: Pydantic Settings configuration (``PROMPTGALLERY_`` prefix)
- **sanitizer.py**: Prompt length and denylist screening
- **providers/**: Gemini and OpenAI adapters with candidate fallback
- **database.py**: Lazily opened, shared SQLite connection
- **image_store.py / account_store.py**: Record persistence
- **auth.py**: Password hashing, identity tokens, signup/signin
- **actions.py**: Request-level operations composing the above

Architecture Overview
---------------------
Each request flows one way::

    caller -> GalleryActions -> {PromptSanitizer, provider adapter} -> ImageStore -> response

Usage Example
-------------
    from promptgallery.core import GalleryActions, ImageStore, Database, config

    db = Database(config.database_path)
    actions = GalleryActions(ImageStore(db), config)
    actions.get_recent_images(limit=10)
"""

from promptgallery.core.account_store import AccountStore
from promptgallery.core.actions import GalleryActions, ListingCache
from promptgallery.core.auth import AuthGateway
from promptgallery.core.config import GalleryConfig, config
from promptgallery.core.database import Database
from promptgallery.core.image_store import ImageStore
from promptgallery.core.providers import provider_registry, select_provider
from promptgallery.core.sanitizer import PromptSanitizer, validate_prompt

__all__ = [
    "AccountStore",
    "AuthGateway",
    "Database",
    "GalleryActions",
    "GalleryConfig",
    "ImageStore",
    "ListingCache",
    "PromptSanitizer",
    "config",
    "provider_registry",
    "select_provider",
    "validate_prompt",
]
