"""OpenAI DALL-E image provider.

Candidates are model/size/quality tuples ordered cheapest first, so the
provider only pays for a larger or higher-quality image when the cheaper
configuration is unavailable to the account.

Fallback Rules
--------------
- 404 or 403: try the next tuple
- 401, 429, 400: abort with a specific message (bad key, rate limit, bad request)
- anything else: log, try the next tuple

Successful results carry the call latency and the tuple's declared
size, quality and cost.
"""

import logging
import time
from dataclasses import dataclass

from openai import OpenAI

from ..errors import ProviderError
from .base import (
    GeneratedImageResult,
    ImageMetadata,
    ProviderAdapterBase,
    encode_image_bytes,
    error_details,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OpenAICandidate:
    """One DALL-E configuration.

    Attributes:
        model: OpenAI model name.
        size: Output dimensions.
        quality: Quality tier.
        cost: Price per image in USD.
        max_images: Largest ``n`` the model accepts per request.
        style: Style sent with the request, for models that accept one.
    """

    model: str
    size: str
    quality: str
    cost: float
    max_images: int = 10
    style: str | None = None

    def __str__(self) -> str:
        return f"{self.model} {self.size} {self.quality}"


DEFAULT_CANDIDATES = [
    OpenAICandidate("dall-e-2", "256x256", "standard", 0.016),
    OpenAICandidate("dall-e-2", "512x512", "standard", 0.018),
    OpenAICandidate("dall-e-2", "1024x1024", "standard", 0.020),
    OpenAICandidate("dall-e-3", "1024x1024", "standard", 0.040, max_images=1, style="vivid"),
    OpenAICandidate("dall-e-3", "1024x1024", "hd", 0.080, max_images=1, style="vivid"),
]

ABORT_MESSAGES = {
    401: "Invalid OpenAI API key. Please check your API key.",
    429: "Rate limit exceeded. Please try again later.",
    400: "Invalid request. Please check your prompt and try again.",
}
SKIP_STATUSES = (403, 404)


class OpenAIImageProvider(ProviderAdapterBase):
    """DALL-E adapter with cheapest-first configuration fallback."""

    name = "openai"
    description = "OpenAI DALL-E image generation"
    version = "1.0.0"

    @property
    def candidates(self) -> list[OpenAICandidate]:
        return list(DEFAULT_CANDIDATES)

    def _get_client(self) -> OpenAI:
        if self._client is None:
            if not self.config.openai_api_key:
                raise ProviderError("OpenAI API key is not configured")
            self._client = OpenAI(api_key=self.config.openai_api_key)
        return self._client

    def generate(self, prompt: str, count: int = 1) -> list[GeneratedImageResult]:
        """Generate images with the cheapest configuration that works.

        Args:
            prompt: Sanitized prompt text.
            count: Number of images to request (capped per model).

        Returns:
            Results from the first successful tuple, empty payloads removed.

        Raises:
            ProviderError: On key, rate-limit or request errors, or when every
                tuple failed.
        """
        client = self._get_client()
        last_message: str | None = None

        for candidate in self.candidates:
            logger.info(f"Trying OpenAI configuration: {candidate}")
            started = time.monotonic()

            request = {
                "model": candidate.model,
                "prompt": prompt,
                "n": min(count, candidate.max_images),
                "size": candidate.size,
                "quality": candidate.quality,
                "response_format": "b64_json",
            }
            if candidate.style:
                request["style"] = candidate.style

            try:
                response = client.images.generate(**request)
            except Exception as e:
                status, message = error_details(e)
                last_message = message

                if status in SKIP_STATUSES:
                    logger.info(f"{candidate} unavailable ({status}), trying next...")
                    continue

                if status in ABORT_MESSAGES:
                    logger.error(f"OpenAI request failed with {status}: {message}")
                    raise ProviderError(ABORT_MESSAGES[status]) from e

                logger.warning(f"Error with {candidate}: {message}")
                continue

            data = response.data or []
            if not data:
                last_message = "No images were generated"
                logger.warning(f"{candidate} returned no images, trying next...")
                continue

            elapsed_ms = int((time.monotonic() - started) * 1000)
            usage = getattr(response, "usage", None)
            output_tokens = getattr(usage, "output_tokens", None)
            logger.info(f"Success with {candidate} ({elapsed_ms} ms)")

            results = []
            for item in data:
                payload = encode_image_bytes(getattr(item, "b64_json", None))
                if not payload:
                    continue

                results.append(
                    GeneratedImageResult(
                        image_bytes=payload,
                        mime_type="image/png",
                        metadata=ImageMetadata(
                            model=candidate.model,
                            generation_time=elapsed_ms,
                            image_size=candidate.size,
                            aspect_ratio="1:1",
                            cost=candidate.cost,
                            output_tokens=output_tokens,
                            quality=candidate.quality,
                            style=candidate.style,
                        ),
                    )
                )
            return results

        last_message = last_message or "Unknown error"
        logger.error(f"All OpenAI configurations failed. Last error: {last_message}")
        raise ProviderError(f"Failed to generate image: {last_message}")

    def check_connection(self) -> bool:
        try:
            self._get_client().models.list()
        except Exception as e:
            logger.warning(f"OpenAI connection check failed: {e}")
            return False
        return True
