"""Image provider adapters.

Importing this package registers the Gemini and OpenAI adapters with
``provider_registry``.
"""

from typing import Any

from ..config import GalleryConfig
from .base import (
    GeneratedImageResult,
    ImageMetadata,
    ProviderAdapterBase,
    ProviderRegistry,
    provider_registry,
)
from .gemini import GeminiImageProvider
from .openai_images import OpenAICandidate, OpenAIImageProvider

provider_registry.register(GeminiImageProvider)
provider_registry.register(OpenAIImageProvider)

DEFAULT_PROVIDER = GeminiImageProvider.name
ALTERNATE_PROVIDER = OpenAIImageProvider.name


def select_provider(
    use_alternate_provider: bool,
    config: GalleryConfig,
    client: Any = None,
) -> ProviderAdapterBase:
    """Return the OpenAI adapter when ``use_alternate_provider`` is set, else Gemini."""
    name = ALTERNATE_PROVIDER if use_alternate_provider else DEFAULT_PROVIDER
    return provider_registry.instantiate(name, config, client=client)


__all__ = [
    "ALTERNATE_PROVIDER",
    "DEFAULT_PROVIDER",
    "GeminiImageProvider",
    "GeneratedImageResult",
    "ImageMetadata",
    "OpenAICandidate",
    "OpenAIImageProvider",
    "ProviderAdapterBase",
    "ProviderRegistry",
    "provider_registry",
    "select_provider",
]
