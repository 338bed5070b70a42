"""Configuration management for Prompt Gallery.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the PROMPTGALLERY_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (PROMPTGALLERY_* prefix)
2. .env file in the project root
3. Default values defined in GalleryConfig

Example .env file:
    PROMPTGALLERY_GEMINI_API_KEY=...
    PROMPTGALLERY_OPENAI_API_KEY=sk-...
    PROMPTGALLERY_JWT_SECRET=change-me
    PROMPTGALLERY_DATABASE_PATH=data/gallery.db

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
This ensures a single source of truth for all configuration values across
the application.

Usage Example
-------------
    from promptgallery.core.config import config

    print(config.database_path)
    print(config.token_ttl_days)

Provider Candidates
-------------------
``gemini_models`` is the ordered list of Imagen/Gemini model identifiers the
Gemini provider walks through until one succeeds.  The OpenAI candidate list
carries per-tuple cost metadata and lives next to its provider in
``promptgallery.core.providers.openai_images``.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_GEMINI_MODELS = [
    "imagen-4.0-generate-001",
    "imagen-3.0-fast-generate-001",
    "imagen-3.0-generate-001",
    "imagen-2.0-generate-001",
    "imagegeneration@006",
    "imagegeneration@005",
    "imagegeneration@002",
    "gemini-1.5-flash-latest",
    "gemini-1.5-pro-latest",
]


class GalleryConfig(BaseSettings):
    """Main configuration for Prompt Gallery.

    Values are loaded from environment variables with the PROMPTGALLERY_
    prefix, with fallback to the defaults defined here.

    Attributes
    ----------
    Provider Settings:
        gemini_api_key : str | None
            Google AI API key. The Gemini provider refuses to run without it.
        openai_api_key : str | None
            OpenAI API key. The OpenAI provider refuses to run without it.
        gemini_models : list[str]
            Ordered candidate model identifiers for the Gemini provider.

    Auth Settings:
        jwt_secret : str
            Secret used to sign identity tokens.
        jwt_algorithm : str
            JWT signing algorithm.
        token_ttl_days : int
            Token and cookie lifetime in days.
        auth_cookie_name : str
            Name of the HTTP-only cookie carrying the identity token.
        cookie_secure : bool
            Set the Secure flag on the auth cookie (enable behind HTTPS).

    Gallery Settings:
        database_path : Path
            SQLite database file holding accounts and images.
        max_prompt_length : int
            Maximum prompt length accepted by the sanitizer.
        default_list_limit : int
            Default number of images returned by listing endpoints.
        max_list_limit : int
            Upper bound applied to requested listing sizes.
        extra_blocked_terms : list[str]
            Additional denylist words appended to the built-in list.

    Server Settings:
        server_host : str
            Bind address for uvicorn.
        server_port : int
            Port for uvicorn (1024-65535).

    Examples
    --------
    Create a custom configuration:

        >>> custom = GalleryConfig(
        ...     database_path="/tmp/gallery.db",
        ...     jwt_secret="test-secret",
        ... )
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PROMPTGALLERY_",
        case_sensitive=False,
    )

    # Provider settings
    gemini_api_key: str | None = Field(
        default=None,
        description="Google AI API key for Imagen/Gemini image generation",
    )
    openai_api_key: str | None = Field(
        default=None,
        description="OpenAI API key for DALL-E image generation",
    )
    gemini_models: list[str] = Field(
        default_factory=lambda: list(DEFAULT_GEMINI_MODELS),
        description="Gemini candidate models, tried in order",
    )

    # Auth settings
    jwt_secret: str = Field(
        default="change-this-secret-in-production",
        description="Secret key used to sign identity tokens",
    )
    jwt_algorithm: str = Field(default="HS256")
    token_ttl_days: int = Field(
        default=7,
        description="Identity token lifetime in days",
        ge=1,
        le=365,
    )
    auth_cookie_name: str = Field(default="auth-token")
    cookie_secure: bool = Field(
        default=False,
        description="Send the auth cookie only over HTTPS",
    )

    # Gallery settings
    database_path: Path = Field(
        default=Path("data/gallery.db"),
        description="SQLite database file for accounts and images",
    )
    max_prompt_length: int = Field(default=1000, ge=1)
    default_list_limit: int = Field(default=10, ge=1, le=100)
    max_list_limit: int = Field(
        default=100,
        description="Largest listing size a caller may request",
        ge=1,
        le=1000,
    )
    extra_blocked_terms: list[str] = Field(
        default_factory=list,
        description="Extra denylist words for the prompt sanitizer",
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address (0.0.0.0 for local network)",
    )
    server_port: int = Field(
        default=8000,
        description="Server port",
        ge=1024,
        le=65535,
    )

    def __init__(self, **kwargs):
        """Initialize configuration and create the database directory.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        # Ensure the database parent directory exists
        self.database_path.parent.mkdir(parents=True, exist_ok=True)


# Global configuration instance
# Loads values from environment variables (PROMPTGALLERY_* prefix) and .env file.
config = GalleryConfig()
