"""Convenience import path exposing the FastAPI media tracker app."""

from __future__ import annotations

from app.main import app, create_app

__all__ = ["app", "create_app"]
