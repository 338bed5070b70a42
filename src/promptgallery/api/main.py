"""Prompt Gallery — FastAPI Application.

This module defines the FastAPI ``app`` instance, all REST API routes, and
the ``main()`` CLI function that launches the uvicorn server.

Architecture
------------
Routes are thin: they read the ``auth-token`` cookie, decode it into an
:class:`~promptgallery.core.models.Identity`, and hand it explicitly to
:class:`~promptgallery.core.actions.GalleryActions`.  The shared
:class:`~promptgallery.core.database.Database` is created with the app and
opens its SQLite connection lazily on the first query.

Provider calls block for seconds, so ``POST /api/generate`` runs the action
in a worker thread to keep the event loop free.

Endpoints
---------
========  ==============================  ====================================
Method    Path                            Purpose
========  ==============================  ====================================
POST      ``/api/generate``               Generate and save images
GET       ``/api/images/recent``          Public images, newest first
GET       ``/api/images/mine``            Caller's images, any visibility
GET       ``/api/images/{id}``            Single image
DELETE    ``/api/images/{id}``            Delete an owned image
POST      ``/api/images/{id}/privacy``    Toggle visibility of an owned image
POST      ``/api/prompt/validate``        Screen a prompt without generating
GET       ``/api/prompt/suggestions``     Safe example prompts
POST      ``/api/test-connection``        Check providers and database
POST      ``/api/auth/signup``            Create account, set auth cookie
POST      ``/api/auth/signin``            Check credentials, set auth cookie
POST      ``/api/auth/logout``            Clear auth cookie
GET       ``/api/auth/verify``            Decode the auth cookie
========  ==============================  ====================================

Usage
-----
CLI (installed entry point)::

    promptgallery

Direct invocation::

    python -m promptgallery.api.main
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from promptgallery import __version__
from promptgallery.api.models import (
    GenerateRequest,
    PromptCheckRequest,
    SigninRequest,
    SignupRequest,
)
from promptgallery.core.account_store import AccountStore
from promptgallery.core.actions import GalleryActions, ProviderFactory
from promptgallery.core.auth import AuthGateway
from promptgallery.core.config import GalleryConfig, config
from promptgallery.core.database import Database
from promptgallery.core.errors import (
    AuthError,
    ConflictError,
    ForbiddenError,
    GalleryError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from promptgallery.core.image_store import ImageStore
from promptgallery.core.models import Account, Identity
from promptgallery.core.sanitizer import safe_prompt_suggestions

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Application lifecycle.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Close the shared database connection on shutdown.

    The connection itself is opened lazily by the first request that needs
    it, so there is nothing to do on startup beyond logging.
    """
    logger.info(f"Prompt Gallery {__version__} starting (database: {app.state.db.db_path})")

    yield  # Application runs here.

    app.state.db.close()
    logger.info("Database closed on shutdown.")


# ---------------------------------------------------------------------------
# Request dependencies.
# ---------------------------------------------------------------------------


def get_actions(request: Request) -> GalleryActions:
    return request.app.state.actions


def get_auth(request: Request) -> AuthGateway:
    return request.app.state.auth


def get_identity(request: Request) -> Identity | None:
    """Decode the auth cookie; ``None`` when it is absent or invalid."""
    cfg: GalleryConfig = request.app.state.config
    return request.app.state.auth.verify_token(request.cookies.get(cfg.auth_cookie_name))


def require_identity(identity: Identity | None = Depends(get_identity)) -> Identity:
    """Like :func:`get_identity` but rejects unauthenticated requests.

    Raises:
        AuthError: Rendered as a 401 by the ``GalleryError`` handler.
    """
    if identity is None:
        raise AuthError("Authentication required")
    return identity


# ---------------------------------------------------------------------------
# Error and session helpers.
# ---------------------------------------------------------------------------


def _error_response(error: GalleryError) -> JSONResponse:
    """Map a core error to a JSON error response with a matching status code."""
    if isinstance(error, ConflictError):
        status_code = 409
    elif isinstance(error, ValidationError):
        status_code = 400
    elif isinstance(error, NotFoundError):
        status_code = 404
    elif isinstance(error, ForbiddenError):
        status_code = 403
    elif isinstance(error, AuthError):
        status_code = 401
    elif isinstance(error, PersistenceError):
        logger.error(f"Request failed on persistence: {error}")
        return JSONResponse({"success": False, "error": "Internal server error"}, status_code=500)
    else:
        status_code = 500
    return JSONResponse({"success": False, "error": str(error)}, status_code=status_code)


def _session_response(cfg: GalleryConfig, account: Account, token: str) -> JSONResponse:
    """Build the signup/signin response and attach the auth cookie."""
    response = JSONResponse({"success": True, "user": account.to_public_dict(), "token": token})
    response.set_cookie(
        key=cfg.auth_cookie_name,
        value=token,
        max_age=cfg.token_ttl_days * 24 * 60 * 60,
        path="/",
        httponly=True,
        secure=cfg.cookie_secure,
        samesite="lax",
    )
    return response


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


def create_app(
    cfg: GalleryConfig = config,
    provider_factory: ProviderFactory | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        cfg: Configuration to use; defaults to the global instance.
        provider_factory: Override provider selection (used by tests to
            inject fake providers).

    Returns:
        Configured FastAPI application with its database, stores, auth
        gateway and actions on ``app.state``.
    """
    app = FastAPI(
        title="Prompt Gallery",
        description="Text-to-image generation with a shared public/private gallery.",
        version=__version__,
        lifespan=lifespan,
    )

    # Browsers only send the auth cookie cross-origin with credentials, so
    # restrict ``allow_origins`` to the deployed frontend in production.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    db = Database(cfg.database_path)
    images = ImageStore(db)
    app.state.config = cfg
    app.state.db = db
    app.state.auth = AuthGateway(AccountStore(db), cfg)
    app.state.actions = GalleryActions(images, cfg, provider_factory=provider_factory)

    @app.exception_handler(GalleryError)
    async def gallery_error_handler(request: Request, exc: GalleryError) -> JSONResponse:
        return _error_response(exc)

    _register_routes(app)
    return app


def _register_routes(app: FastAPI) -> None:
    """Attach every route to ``app``."""

    # -- Generation ---------------------------------------------------------

    @app.post("/api/generate")
    async def generate_images(
        req: GenerateRequest,
        identity: Identity = Depends(require_identity),
        actions: GalleryActions = Depends(get_actions),
    ) -> dict:
        """Generate images for a prompt and save them to the caller's gallery.

        Returns:
            ``{"success": True, "images": [...]}`` or
            ``{"success": False, "error": "..."}``.
        """
        return await asyncio.to_thread(
            actions.generate_and_save,
            identity,
            req.prompt,
            req.use_alternate_provider,
            req.is_private,
            req.count,
        )

    # -- Gallery ------------------------------------------------------------

    @app.get("/api/images/recent")
    async def recent_images(
        limit: int | None = None,
        actions: GalleryActions = Depends(get_actions),
    ) -> list[dict]:
        """Return public images, newest first."""
        return actions.get_recent_images(limit)

    @app.get("/api/images/mine")
    async def my_images(
        limit: int | None = None,
        identity: Identity = Depends(require_identity),
        actions: GalleryActions = Depends(get_actions),
    ) -> list[dict]:
        """Return the caller's images, public and private, newest first."""
        return actions.get_my_images(identity, limit)

    @app.get("/api/images/{image_id}")
    async def get_image(
        image_id: str,
        identity: Identity | None = Depends(get_identity),
        actions: GalleryActions = Depends(get_actions),
    ) -> dict:
        """Return a single image.

        Raises:
            NotFoundError: If the image is unknown or private to another user.
        """
        result = actions.get_image(identity, image_id)
        if not result["success"]:
            raise NotFoundError(result["error"])
        return result["image"]

    @app.delete("/api/images/{image_id}")
    async def delete_image(
        image_id: str,
        identity: Identity = Depends(require_identity),
        actions: GalleryActions = Depends(get_actions),
    ) -> dict:
        """Delete an image owned by the caller."""
        return actions.delete_image(identity, image_id)

    @app.post("/api/images/{image_id}/privacy")
    async def toggle_privacy(
        image_id: str,
        identity: Identity = Depends(require_identity),
        actions: GalleryActions = Depends(get_actions),
    ) -> dict:
        """Flip the visibility of an image owned by the caller."""
        return actions.toggle_image_privacy(identity, image_id)

    # -- Prompt helpers -----------------------------------------------------

    @app.post("/api/prompt/validate")
    async def validate_prompt(
        req: PromptCheckRequest,
        actions: GalleryActions = Depends(get_actions),
    ) -> dict:
        """Screen a prompt without calling any provider."""
        return actions.sanitizer.validate(req.prompt).to_dict()

    @app.get("/api/prompt/suggestions")
    async def prompt_suggestions() -> dict:
        return {"suggestions": safe_prompt_suggestions()}

    @app.post("/api/test-connection")
    async def test_connection(actions: GalleryActions = Depends(get_actions)) -> dict:
        """Check the Gemini and OpenAI APIs and the database."""
        return await asyncio.to_thread(actions.check_connections)

    # -- Auth ---------------------------------------------------------------

    @app.post("/api/auth/signup")
    async def signup(
        req: SignupRequest,
        request: Request,
        auth: AuthGateway = Depends(get_auth),
    ) -> JSONResponse:
        """Create an account and set the auth cookie (valid 7 days)."""
        account, token = auth.signup(req.email, req.username, req.password)
        return _session_response(request.app.state.config, account, token)

    @app.post("/api/auth/signin")
    async def signin(
        req: SigninRequest,
        request: Request,
        auth: AuthGateway = Depends(get_auth),
    ) -> JSONResponse:
        """Check credentials and set the auth cookie."""
        account, token = auth.signin(req.email, req.password)
        return _session_response(request.app.state.config, account, token)

    @app.post("/api/auth/logout")
    async def logout(request: Request) -> JSONResponse:
        response = JSONResponse({"success": True})
        response.delete_cookie(request.app.state.config.auth_cookie_name, path="/")
        return response

    @app.get("/api/auth/verify")
    async def verify(request: Request) -> JSONResponse:
        """Return the identity in the auth cookie, or 401."""
        cfg: GalleryConfig = request.app.state.config
        token = request.cookies.get(cfg.auth_cookie_name)
        if not token:
            return JSONResponse(
                {"success": False, "error": "No authentication token found"},
                status_code=401,
            )

        identity = request.app.state.auth.verify_token(token)
        if identity is None:
            return JSONResponse(
                {"success": False, "error": "Invalid authentication token"},
                status_code=401,
            )
        return JSONResponse({"success": True, "user": identity.to_dict()})


# ---------------------------------------------------------------------------
# FastAPI application instance.
# ---------------------------------------------------------------------------
app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host and port from :data:`~promptgallery.core.config.config`
    (``PROMPTGALLERY_SERVER_HOST`` / ``PROMPTGALLERY_SERVER_PORT``).

    This function is registered as the ``promptgallery`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    uvicorn.run(
        "promptgallery.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
