from __future__ import annotations

from pathlib import Path

import pytest

from userauth.database import Database, PersistenceError, resolve_database_path


@pytest.fixture()
def database(tmp_path: Path) -> Database:
    db_path = tmp_path / "userauth.sqlite3"
    db = Database(db_path)
    db.initialize()
    return db


def test_create_and_lookup_user(database: Database) -> None:
    user = database.create_user("Ada", "ada@x.com", "$2b$10$hashed", "profilePicture-1-2.png")

    assert user.id > 0
    assert user.profile_picture == "profilePicture-1-2.png"

    by_email = database.get_user_by_email("ada@x.com")
    assert by_email == user

    by_id = database.get_user(user.id)
    assert by_id is not None
    assert by_id.name == "Ada"
    assert by_id.password_hash == "$2b$10$hashed"


def test_profile_picture_defaults_to_empty(database: Database) -> None:
    user = database.create_user("Ada", "ada@x.com", "$2b$10$hashed")

    stored = database.get_user(user.id)
    assert stored is not None
    assert stored.profile_picture == ""
    assert not stored.has_profile_picture


def test_email_lookup_is_exact_and_case_sensitive(database: Database) -> None:
    database.create_user("Ada", "ada@x.com", "$2b$10$hashed")

    assert database.get_user_by_email("ADA@x.com") is None
    assert database.get_user_by_email("ada@x.com ") is None
    assert database.get_user_by_email("unknown@x.com") is None


def test_duplicate_emails_are_accepted(database: Database) -> None:
    first = database.create_user("Ada", "ada@x.com", "$2b$10$first")
    second = database.create_user("Ada Again", "ada@x.com", "$2b$10$second")

    assert first.id != second.id
    assert database.get_user_by_email("ada@x.com") == first
    assert [user.id for user in database.list_users()] == [first.id, second.id]


def test_missing_user_returns_none(database: Database) -> None:
    assert database.get_user(999) is None


def test_empty_password_hash_is_rejected(database: Database) -> None:
    with pytest.raises(ValueError):
        database.create_user("Ada", "ada@x.com", "")


def test_unreachable_database_raises_persistence_error(tmp_path: Path) -> None:
    # A directory cannot be opened as an SQLite database file.
    target = tmp_path / "not-a-file"
    target.mkdir()
    database = Database(target)

    with pytest.raises(PersistenceError):
        database.initialize()

    with pytest.raises(PersistenceError):
        database.create_user("Ada", "ada@x.com", "$2b$10$hashed")


def test_resolve_database_path_accepts_sqlite_urls(tmp_path: Path) -> None:
    expected = (tmp_path / "users.sqlite3").resolve()

    assert resolve_database_path(f"sqlite:///{tmp_path}/users.sqlite3") == expected
    assert resolve_database_path(str(tmp_path / "users.sqlite3")) == expected
    assert resolve_database_path(None).name == "userauth.sqlite3"
