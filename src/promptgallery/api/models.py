"""Pydantic request models for the Prompt Gallery API.

FastAPI uses these models for request validation and OpenAPI documentation.
Field-format rules for signup (email shape, username pattern, password
length) are enforced by :mod:`promptgallery.core.auth` so that the API
returns the same messages as the core; here the fields are only typed.

Models
------
GenerateRequest
    Payload for ``POST /api/generate``.
SignupRequest
    Payload for ``POST /api/auth/signup``.
SigninRequest
    Payload for ``POST /api/auth/signin``.
PromptCheckRequest
    Payload for ``POST /api/prompt/validate``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class GenerateRequest(BaseModel):
    """Request body for the ``POST /api/generate`` endpoint.

    Attributes:
        prompt: Text prompt describing the image.
        use_alternate_provider: ``True`` to use OpenAI instead of Gemini.
        is_private: ``True`` to hide the image from the public gallery.
        count: Number of images to request (1-4).
    """

    prompt: str = Field(
        default="",
        description="Text prompt describing the image.",
    )
    use_alternate_provider: bool = Field(
        default=False,
        description="Use the OpenAI provider instead of Gemini.",
    )
    is_private: bool = Field(
        default=False,
        description="Keep the image out of the public gallery.",
    )
    count: int = Field(
        default=1,
        ge=1,
        le=4,
        description="Number of images to generate (1-4).",
    )


class SignupRequest(BaseModel):
    """Request body for ``POST /api/auth/signup``."""

    email: str = Field(default="", description="Email address (stored lowercase).")
    username: str = Field(default="", description="3-20 letters, digits or underscores.")
    password: str = Field(default="", description="At least 6 characters.")


class SigninRequest(BaseModel):
    """Request body for ``POST /api/auth/signin``."""

    email: str = Field(default="")
    password: str = Field(default="")


class PromptCheckRequest(BaseModel):
    """Request body for ``POST /api/prompt/validate``."""

    prompt: str = Field(default="", description="Prompt text to screen.")
