"""User registration, login and profile-picture service."""

from __future__ import annotations

from typing import Any

from .database import Database, PersistenceError, resolve_database_path


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the web application for a wired context."""

    from .web import create_app as _create_app

    return _create_app(*args, **kwargs)


def create_application(*args: Any, **kwargs: Any):
    """Factory function that builds settings, context and web application."""

    from .application import create_application as _create_application

    return _create_application(*args, **kwargs)


__all__ = [
    "Database",
    "PersistenceError",
    "resolve_database_path",
    "create_app",
    "create_application",
]
