"""Google Imagen/Gemini image provider.

Candidates are model identifiers tried in ``config.gemini_models`` order
(newest Imagen first, Gemini models last).  For each candidate one
``client.models.generate_images`` call is made.

Fallback Rules
--------------
- success with images: return immediately, tagged with the candidate model
- 404 or a "not found" message: try the next candidate
- 400 mentioning "billed users": abort, billing must be enabled
- 403: abort, the key lacks permission
- anything else (including a response with no images): log, try the next

When every candidate fails the last error is reported.

Usage Example
-------------
    >>> from promptgallery.core.providers.gemini import GeminiImageProvider
    >>> from promptgallery.core.config import config
    >>>
    >>> provider = GeminiImageProvider(config)
    >>> results = provider.generate("a watercolor fox", count=1)
"""

import logging
import time

from google import genai
from google.genai import types

from ..errors import ProviderError
from .base import (
    GeneratedImageResult,
    ImageMetadata,
    ProviderAdapterBase,
    encode_image_bytes,
    error_details,
)

logger = logging.getLogger(__name__)

BILLING_MESSAGE = (
    "Imagen API requires billing to be enabled. Please set up billing in Google Cloud "
    "Console and ensure the Imagen API is enabled."
)
PERMISSION_MESSAGE = (
    "API key does not have permission to access Imagen API. "
    "Please check your API key permissions."
)
QUOTA_MESSAGE = "API quota exceeded. Please try again later or increase your quota."

# Smallest square output keeps per-image cost down.
ASPECT_RATIO = "1:1"
IMAGE_SIZE = "256x256"
ESTIMATED_COST = 0.01


class GeminiImageProvider(ProviderAdapterBase):
    """Imagen/Gemini adapter with model-name fallback."""

    name = "gemini"
    description = "Google Imagen and Gemini image generation"
    version = "1.0.0"

    @property
    def candidates(self) -> list[str]:
        return list(self.config.gemini_models)

    def _get_client(self) -> genai.Client:
        if self._client is None:
            if not self.config.gemini_api_key:
                raise ProviderError("Google AI API key is not configured")
            self._client = genai.Client(api_key=self.config.gemini_api_key)
        return self._client

    def generate(self, prompt: str, count: int = 1) -> list[GeneratedImageResult]:
        """Generate images, walking the candidate models until one succeeds.

        Args:
            prompt: Sanitized prompt text.
            count: Number of images to request.

        Returns:
            Results from the first successful model, empty payloads removed.

        Raises:
            ProviderError: On billing/permission errors, or when every
                candidate failed.
        """
        client = self._get_client()
        last_message: str | None = None

        for model_name in self.candidates:
            logger.info(f"Trying model: {model_name}")
            started = time.monotonic()

            try:
                response = client.models.generate_images(
                    model=model_name,
                    prompt=prompt,
                    config=types.GenerateImagesConfig(
                        number_of_images=count,
                        aspect_ratio=ASPECT_RATIO,
                    ),
                )
            except Exception as e:
                status, message = error_details(e)
                last_message = message

                if status == 404 or "not found" in message.lower():
                    logger.info(f"Model {model_name} not found, trying next...")
                    continue

                if status == 400 and "billed users" in message:
                    logger.error(f"Model {model_name} requires billing: {message}")
                    raise ProviderError(BILLING_MESSAGE) from e

                if status == 403:
                    logger.error(f"Permission denied for model {model_name}: {message}")
                    raise ProviderError(PERMISSION_MESSAGE) from e

                logger.warning(f"Error with model {model_name}: {message}")
                continue

            generated = response.generated_images or []
            if not generated:
                last_message = "No images were generated"
                logger.warning(f"Model {model_name} returned no images, trying next...")
                continue

            elapsed_ms = int((time.monotonic() - started) * 1000)
            logger.info(f"Success with model: {model_name} ({elapsed_ms} ms)")

            results = []
            for item in generated:
                image = getattr(item, "image", None)
                payload = encode_image_bytes(getattr(image, "image_bytes", None))
                if not payload:
                    continue

                results.append(
                    GeneratedImageResult(
                        image_bytes=payload,
                        mime_type=getattr(image, "mime_type", None) or "image/png",
                        metadata=ImageMetadata(
                            model=model_name,
                            generation_time=elapsed_ms,
                            image_size=IMAGE_SIZE,
                            aspect_ratio=ASPECT_RATIO,
                            cost=ESTIMATED_COST,
                        ),
                    )
                )

            if len(results) < len(generated):
                logger.warning(
                    f"Dropped {len(generated) - len(results)} empty image(s) from {model_name}"
                )
            return results

        last_message = last_message or "Unknown error"
        logger.error(f"All image models failed. Last error: {last_message}")

        if "quota" in last_message.lower():
            raise ProviderError(QUOTA_MESSAGE)
        raise ProviderError(f"All image models failed. Last error: {last_message}")

    def check_connection(self) -> bool:
        try:
            client = self._get_client()
            next(iter(client.models.list()), None)
        except Exception as e:
            logger.warning(f"Gemini connection check failed: {e}")
            return False
        return True
