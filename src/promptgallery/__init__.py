"""Prompt Gallery - text-to-image generation with a shared gallery."""

__version__ = "0.1.0"

from promptgallery.core.config import GalleryConfig, config
from promptgallery.core.providers import ProviderAdapterBase, provider_registry

__all__ = [
    "GalleryConfig",
    "ProviderAdapterBase",
    "config",
    "provider_registry",
]
