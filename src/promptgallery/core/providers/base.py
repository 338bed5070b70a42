"""Base classes and registry for image provider adapters.

Each external image-generation API (Google Imagen/Gemini, OpenAI DALL-E) has
an adapter that implements one contract::

    adapter.generate(prompt, count) -> list[GeneratedImageResult]

Internally an adapter walks an ordered list of *candidates* (model names, or
model/size/quality tuples) and returns the first success.  Which errors move
on to the next candidate and which abort the whole call is provider-specific.
Failures surface as :class:`~promptgallery.core.errors.ProviderError` with a
message suitable for showing to the user.

Usage Example
-------------
    >>> from promptgallery.core.providers import provider_registry
    >>> from promptgallery.core.config import config
    >>>
    >>> provider_registry.list_available()
    ['gemini', 'openai']
    >>> adapter = provider_registry.instantiate("gemini", config)
    >>> results = adapter.generate("a lighthouse at dawn", count=1)
    >>> results[0].metadata.model
    'imagen-4.0-generate-001'

Zero Results
------------
A provider call can succeed while every returned image has an empty payload.
Those images are filtered out, so ``generate`` may return an empty list; the
caller treats that as a failure.
"""

import base64
import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any

from ..config import GalleryConfig

logger = logging.getLogger(__name__)


@dataclass
class ImageMetadata:
    """Provenance reported alongside each generated image.

    Attributes:
        model: Candidate model identifier that produced the image.
        generation_time: Wall-clock latency of the successful call in milliseconds.
        image_size: Dimensions descriptor, e.g. ``"1024x1024"``.
        aspect_ratio: Aspect ratio descriptor, if known.
        cost: Estimated cost in USD, if known.
        output_tokens: Tokens reported by the provider, if any.
        quality: Quality tier, if the provider has one.
        style: Style descriptor, if the provider has one.
    """

    model: str
    generation_time: int
    image_size: str
    aspect_ratio: str | None = None
    cost: float | None = None
    output_tokens: int | None = None
    quality: str | None = None
    style: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class GeneratedImageResult:
    """One image returned by a provider.

    Attributes:
        image_bytes: Base64-encoded image payload.
        mime_type: Payload MIME type.
        metadata: Provenance of the image.
    """

    image_bytes: str
    mime_type: str
    metadata: ImageMetadata


def encode_image_bytes(payload: bytes | str | None) -> str:
    """Return a base64 text payload for raw bytes; text is assumed already encoded."""
    if not payload:
        return ""
    if isinstance(payload, str):
        return payload
    return base64.b64encode(payload).decode("ascii")


def error_details(exc: Exception) -> tuple[int | None, str]:
    """Normalize an SDK exception to ``(status code, message)``.

    Works with ``google.genai.errors.APIError`` (``code``/``message``) and
    ``openai.APIStatusError`` (``status_code``/``message``) as well as generic
    exceptions.
    """
    status = getattr(exc, "status_code", None) or getattr(exc, "code", None)
    try:
        status = int(status) if status is not None else None
    except (TypeError, ValueError):
        status = None

    message = getattr(exc, "message", None) or str(exc) or exc.__class__.__name__
    return status, str(message)


class ProviderAdapterBase(ABC):
    """Abstract base class for image provider adapters.

    Attributes
    ----------
    name : str
        Registry key (``"gemini"`` or ``"openai"``). Also stored as the
        ``api_provider`` of persisted images.
    description : str
        Brief description of the provider.
    config : GalleryConfig
        Configuration object containing API keys and candidate settings.
    """

    name: str = "base"
    description: str = "Base class for image providers"
    version: str = "0.1.0"

    def __init__(self, config: GalleryConfig, client: Any = None) -> None:
        """Initialize the provider adapter.

        Args:
            config: Configuration object
            client: Pre-built SDK client. When omitted the client is created
                lazily from the configured API key on first use.
        """
        self.config = config
        self._client = client

        logger.info(f"Initialized {self.name} provider")

    @property
    @abstractmethod
    def candidates(self) -> list:
        """Ordered fallback candidates for this provider."""
        pass

    @abstractmethod
    def generate(self, prompt: str, count: int = 1) -> list[GeneratedImageResult]:
        """Generate ``count`` images for ``prompt``.

        Returns
        -------
        list[GeneratedImageResult]
            Images from the first candidate that succeeded. May be empty if
            the provider returned only empty payloads.

        Raises
        ------
        ProviderError
            If every candidate failed or a non-recoverable error occurred.
        """
        pass

    @abstractmethod
    def check_connection(self) -> bool:
        """Return True if the provider API answers with the configured key."""
        pass

    def get_provider_info(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "candidates": [str(candidate) for candidate in self.candidates],
        }


class ProviderRegistry:
    """Registry for image provider adapters.

    Usage
    -----
        >>> from promptgallery.core.providers import provider_registry
        >>> provider_registry.register(MyProvider)
        >>> adapter = provider_registry.instantiate("my-provider", config)
    """

    def __init__(self) -> None:
        self._providers: dict[str, type[ProviderAdapterBase]] = {}

    def register(self, provider_class: type[ProviderAdapterBase]) -> None:
        """Register a provider adapter class.

        Registering a name twice replaces the earlier class.
        """
        provider_name = provider_class.name

        if provider_name in self._providers:
            logger.warning(f"Image provider '{provider_name}' is already registered, overwriting")

        self._providers[provider_name] = provider_class
        logger.info(f"Registered image provider: {provider_name}")

    def instantiate(
        self,
        provider_name: str,
        config: GalleryConfig,
        client: Any = None,
    ) -> ProviderAdapterBase:
        """Create an instance of a registered provider.

        Raises
        ------
        KeyError
            If provider_name is not registered
        """
        if provider_name not in self._providers:
            available = ", ".join(self.list_available())
            raise KeyError(
                f"Image provider '{provider_name}' not found. Available providers: {available}"
            )

        return self._providers[provider_name](config=config, client=client)

    def list_available(self) -> list[str]:
        return list(self._providers.keys())


# Global provider registry instance
provider_registry = ProviderRegistry()
