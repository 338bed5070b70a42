"""Shared pytest fixtures for Prompt Gallery tests."""

import base64
import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from promptgallery.api.main import create_app
from promptgallery.core.account_store import AccountStore
from promptgallery.core.actions import GalleryActions
from promptgallery.core.auth import AuthGateway
from promptgallery.core.config import GalleryConfig
from promptgallery.core.database import Database
from promptgallery.core.image_store import ImageStore
from promptgallery.core.models import Identity
from promptgallery.core.providers import (
    GeneratedImageResult,
    ImageMetadata,
    ProviderAdapterBase,
)

FAKE_PNG = base64.b64encode(b"\x89PNG\r\n\x1a\nfake-image").decode("ascii")


class FakeProvider(ProviderAdapterBase):
    """In-memory provider that never touches the network.

    Attributes
    ----------
    calls : list[tuple[str, int]]
        ``(prompt, count)`` for every ``generate`` call.
    returned : int | None
        Number of images to return; defaults to the requested count.
    error : Exception | None
        Raised from ``generate`` instead of returning images.
    healthy : bool
        Result of ``check_connection``.
    """

    def __init__(self, config: GalleryConfig, name: str = "gemini", model: str = "fake-model"):
        self.name = name
        self.model = model
        self.calls: list[tuple[str, int]] = []
        self.returned: int | None = None
        self.error: Exception | None = None
        self.healthy = True
        super().__init__(config)

    @property
    def candidates(self) -> list[str]:
        return [self.model]

    def generate(self, prompt: str, count: int = 1) -> list[GeneratedImageResult]:
        self.calls.append((prompt, count))
        if self.error is not None:
            raise self.error

        returned = count if self.returned is None else self.returned
        return [
            GeneratedImageResult(
                image_bytes=FAKE_PNG,
                mime_type="image/png",
                metadata=ImageMetadata(
                    model=self.model,
                    generation_time=42,
                    image_size="256x256",
                    aspect_ratio="1:1",
                    cost=0.01,
                ),
            )
            for _ in range(returned)
        ]

    def check_connection(self) -> bool:
        return self.healthy


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> GalleryConfig:
    """Create a test configuration backed by a temporary database.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        GalleryConfig instance for testing
    """
    return GalleryConfig(
        database_path=temp_dir / "data" / "gallery.db",
        jwt_secret="test-secret",
        gemini_api_key=None,
        openai_api_key=None,
        _env_file=None,
    )


@pytest.fixture
def db(test_config: GalleryConfig) -> Generator[Database, None, None]:
    database = Database(test_config.database_path)
    try:
        yield database
    finally:
        database.close()


@pytest.fixture
def image_store(db: Database) -> ImageStore:
    return ImageStore(db)


@pytest.fixture
def account_store(db: Database) -> AccountStore:
    return AccountStore(db)


@pytest.fixture
def auth_gateway(account_store: AccountStore, test_config: GalleryConfig) -> AuthGateway:
    return AuthGateway(account_store, test_config)


@pytest.fixture
def fake_providers(test_config: GalleryConfig) -> dict[bool, FakeProvider]:
    """Fake providers keyed by the ``use_alternate_provider`` flag."""
    return {
        False: FakeProvider(test_config, name="gemini", model="imagen-4.0-generate-001"),
        True: FakeProvider(test_config, name="openai", model="dall-e-2"),
    }


@pytest.fixture
def actions(
    image_store: ImageStore,
    test_config: GalleryConfig,
    fake_providers: dict[bool, FakeProvider],
) -> GalleryActions:
    return GalleryActions(image_store, test_config, provider_factory=fake_providers.__getitem__)


@pytest.fixture
def identity() -> Identity:
    return Identity(user_id="user-alice", email="alice@example.com", username="alice")


@pytest.fixture
def other_identity() -> Identity:
    return Identity(user_id="user-bob", email="bob@example.com", username="bob")


@pytest.fixture
def test_client(
    test_config: GalleryConfig,
    fake_providers: dict[bool, FakeProvider],
) -> Generator[TestClient, None, None]:
    """FastAPI TestClient wired to a temporary database and fake providers."""
    app = create_app(test_config, provider_factory=fake_providers.__getitem__)
    with TestClient(app) as client:
        yield client
