"""Application context shared by the request handlers."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from fastapi import FastAPI

from .config import Settings, load_settings
from .database import Database
from .security import PasswordHasher
from .sessions import IdentityManager, SessionManager
from .uploads import UploadHandler


@dataclass(frozen=True)
class ApplicationContext:
    """Collaborators constructed once at startup and injected into the router."""

    settings: Settings
    database: Database
    hasher: PasswordHasher
    uploads: UploadHandler
    identity: IdentityManager


def build_context(
    settings: Settings,
    *,
    database: Optional[Database] = None,
    initialize_database: bool = True,
) -> ApplicationContext:
    """Wire up the store, hasher, upload handler and identity manager."""

    if database is None:
        database = Database(settings.database_path)
    if initialize_database:
        database.initialize()

    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    sessions = SessionManager(ttl=settings.session_ttl)
    identity = IdentityManager(database=database, hasher=hasher, sessions=sessions)

    return ApplicationContext(
        settings=settings,
        database=database,
        hasher=hasher,
        uploads=UploadHandler(settings.upload_dir),
        identity=identity,
    )


def create_application(*, config_path: Optional[Path] = None) -> FastAPI:
    """Create the ASGI application from the configured settings."""

    from .web import create_app

    settings = load_settings(config_path)
    return create_app(build_context(settings))


__all__ = ["ApplicationContext", "build_context", "create_application"]
