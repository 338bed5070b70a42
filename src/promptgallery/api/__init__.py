"""Prompt Gallery — FastAPI REST API layer.

This package contains the FastAPI application and the Pydantic request
models.

Modules
-------
main
    FastAPI application with all route handlers, the ``create_app()``
    factory, and the ``main()`` CLI entry point.
models
    Pydantic models for API request validation.
"""
