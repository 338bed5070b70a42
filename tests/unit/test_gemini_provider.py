"""Unit tests for the Gemini image provider.

All tests use a MagicMock in place of ``google.genai.Client`` so no network
access occurs.  The mock raises :class:`FakeAPIError`, which carries the same
``code`` / ``message`` attributes as ``google.genai.errors.APIError``.
"""

import base64
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from promptgallery.core.errors import ProviderError
from promptgallery.core.providers.gemini import (
    BILLING_MESSAGE,
    PERMISSION_MESSAGE,
    QUOTA_MESSAGE,
    GeminiImageProvider,
)


class FakeAPIError(Exception):
    def __init__(self, code: int, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


def make_response(*payloads: bytes):
    return SimpleNamespace(
        generated_images=[
            SimpleNamespace(image=SimpleNamespace(image_bytes=payload, mime_type="image/png"))
            for payload in payloads
        ]
    )


@pytest.fixture
def gemini_config(test_config):
    return test_config.model_copy(update={"gemini_models": ["model-a", "model-b", "model-c"]})


@pytest.fixture
def client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def provider(gemini_config, client) -> GeminiImageProvider:
    return GeminiImageProvider(gemini_config, client=client)


def tried_models(client: MagicMock) -> list[str]:
    return [call.kwargs["model"] for call in client.models.generate_images.call_args_list]


class TestGenerate:
    def test_first_model_succeeds(self, provider, client):
        client.models.generate_images.return_value = make_response(b"png-bytes")

        results = provider.generate("a fox", count=1)

        assert len(results) == 1
        assert results[0].image_bytes == base64.b64encode(b"png-bytes").decode("ascii")
        assert results[0].mime_type == "image/png"
        assert results[0].metadata.model == "model-a"
        assert results[0].metadata.image_size == "256x256"
        assert results[0].metadata.generation_time >= 0
        assert tried_models(client) == ["model-a"]

    def test_request_parameters(self, provider, client):
        client.models.generate_images.return_value = make_response(b"x", b"y")

        provider.generate("a fox", count=2)

        call = client.models.generate_images.call_args
        assert call.kwargs["prompt"] == "a fox"
        assert call.kwargs["config"].number_of_images == 2
        assert call.kwargs["config"].aspect_ratio == "1:1"

    def test_not_found_falls_through(self, provider, client):
        client.models.generate_images.side_effect = [
            FakeAPIError(404, "Model not found"),
            make_response(b"png"),
        ]

        results = provider.generate("a fox")

        assert results[0].metadata.model == "model-b"
        assert tried_models(client) == ["model-a", "model-b"]

    def test_not_found_message_without_status(self, provider, client):
        client.models.generate_images.side_effect = [
            Exception("models/model-a is not found for API version v1beta"),
            make_response(b"png"),
        ]

        assert provider.generate("a fox")[0].metadata.model == "model-b"

    def test_generic_error_falls_through(self, provider, client):
        client.models.generate_images.side_effect = [
            FakeAPIError(500, "Internal error"),
            make_response(b"png"),
        ]

        assert provider.generate("a fox")[0].metadata.model == "model-b"

    def test_empty_response_falls_through(self, provider, client):
        client.models.generate_images.side_effect = [
            SimpleNamespace(generated_images=[]),
            make_response(b"png"),
        ]

        assert provider.generate("a fox")[0].metadata.model == "model-b"

    def test_billing_error_aborts(self, provider, client):
        client.models.generate_images.side_effect = FakeAPIError(
            400, "Imagen API is only accessible to billed users at this time."
        )

        with pytest.raises(ProviderError) as exc_info:
            provider.generate("a fox")

        assert str(exc_info.value) == BILLING_MESSAGE
        assert tried_models(client) == ["model-a"]

    def test_permission_error_aborts(self, provider, client):
        client.models.generate_images.side_effect = FakeAPIError(403, "Permission denied")

        with pytest.raises(ProviderError) as exc_info:
            provider.generate("a fox")

        assert str(exc_info.value) == PERMISSION_MESSAGE
        assert tried_models(client) == ["model-a"]

    def test_all_models_fail(self, provider, client):
        client.models.generate_images.side_effect = FakeAPIError(500, "Backend unavailable")

        with pytest.raises(ProviderError) as exc_info:
            provider.generate("a fox")

        assert str(exc_info.value) == "All image models failed. Last error: Backend unavailable"
        assert tried_models(client) == ["model-a", "model-b", "model-c"]

    def test_quota_message_when_last_error_mentions_quota(self, provider, client):
        client.models.generate_images.side_effect = FakeAPIError(429, "Quota exceeded for project")

        with pytest.raises(ProviderError) as exc_info:
            provider.generate("a fox")

        assert str(exc_info.value) == QUOTA_MESSAGE

    def test_empty_payloads_are_dropped(self, provider, client):
        client.models.generate_images.return_value = make_response(b"png", b"")

        results = provider.generate("a fox", count=2)

        assert len(results) == 1

    def test_missing_api_key(self, gemini_config):
        provider = GeminiImageProvider(gemini_config)

        with pytest.raises(ProviderError, match="API key is not configured"):
            provider.generate("a fox")


class TestConnection:
    def test_check_connection_ok(self, provider, client):
        client.models.list.return_value = iter([SimpleNamespace(name="model-a")])
        assert provider.check_connection() is True

    def test_check_connection_failure(self, provider, client):
        client.models.list.side_effect = FakeAPIError(401, "API key not valid")
        assert provider.check_connection() is False

    def test_check_connection_without_key(self, gemini_config):
        assert GeminiImageProvider(gemini_config).check_connection() is False


def test_provider_info(provider):
    info = provider.get_provider_info()
    assert info["name"] == "gemini"
    assert info["candidates"] == ["model-a", "model-b", "model-c"]
