"""SQLite-backed persistence for user accounts."""
from __future__ import annotations

import sqlite3
from contextlib import closing, contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional

from .models import User


SQLITE_URL_PREFIX = "sqlite:///"


class PersistenceError(RuntimeError):
    """Raised when the credential database cannot be read or written."""


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the application database.

    Accepts either a filesystem path or a ``sqlite:///`` URL.
    """

    if env_value:
        raw = env_value.strip()
        if raw.startswith(SQLITE_URL_PREFIX):
            raw = raw[len(SQLITE_URL_PREFIX):]
        return Path(raw).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "userauth.sqlite3").resolve(strict=False)


def _current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


def _serialize_datetime(value: datetime) -> str:
    return value.isoformat()


def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value)


class Database:
    """Simple wrapper around SQLite for persisting user accounts.

    The store does not enforce unique email addresses: registering the same
    address twice creates two records, and lookups by email return the
    earliest one.
    """

    def __init__(self, path: Path) -> None:
        _ensure_directory(path)
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            with closing(self._connect()) as conn:
                with conn:
                    yield conn
        except sqlite3.Error as exc:
            raise PersistenceError(f"Database operation failed: {exc}") from exc

    def initialize(self) -> None:
        """Create the required tables if they do not already exist."""

        with self._transaction() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    email TEXT NOT NULL,
                    password_hash TEXT NOT NULL,
                    profile_picture TEXT NOT NULL DEFAULT '',
                    created_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_users_email ON users(email);
                """
            )

    # ------------------------------------------------------------------
    # User management
    # ------------------------------------------------------------------
    def create_user(
        self,
        name: str,
        email: str,
        password_hash: str,
        profile_picture: str = "",
    ) -> User:
        """Insert a new user record built from an already hashed password."""

        if not password_hash:
            raise ValueError("Password hash must not be empty")

        created_at = _current_timestamp()
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO users (name, email, password_hash, profile_picture, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    name,
                    email,
                    password_hash,
                    profile_picture or "",
                    _serialize_datetime(created_at),
                ),
            )
            user_id = cursor.lastrowid

        return User(
            id=int(user_id),
            name=name,
            email=email,
            password_hash=password_hash,
            profile_picture=profile_picture or "",
            created_at=created_at,
        )

    def get_user(self, user_id: int) -> Optional[User]:
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE email = ? ORDER BY id LIMIT 1",
                (email,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def list_users(self) -> List[User]:
        with self._transaction() as conn:
            rows = conn.execute("SELECT * FROM users ORDER BY id").fetchall()
        return [self._row_to_user(row) for row in rows]

    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=int(row["id"]),
            name=str(row["name"]),
            email=str(row["email"]),
            password_hash=str(row["password_hash"]),
            profile_picture=str(row["profile_picture"] or ""),
            created_at=_parse_datetime(str(row["created_at"])),
        )


__all__ = ["Database", "PersistenceError", "SQLITE_URL_PREFIX", "resolve_database_path"]
