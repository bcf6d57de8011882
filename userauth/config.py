"""Configuration management for the user account service."""
from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from datetime import timedelta
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from .database import SQLITE_URL_PREFIX, resolve_database_path
from .security import DEFAULT_BCRYPT_ROUNDS


PROJECT_ROOT = Path(__file__).resolve().parent.parent

CONFIG_ENV = "USERAUTH_CONFIG"


def _default_upload_dir() -> Path:
    return (PROJECT_ROOT / "public" / "profile-pics").resolve(strict=False)


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the web application."""

    session_secret: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = 3000
    database_path: Path = field(default_factory=lambda: resolve_database_path(None))
    upload_dir: Path = field(default_factory=_default_upload_dir)
    session_ttl: timedelta = timedelta(hours=8)
    secure_cookies: bool = False
    bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS


def _env_flag(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _as_int(name: str, value: object) -> int:
    try:
        return int(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"Setting '{name}' must be an integer, got {value!r}") from exc


def _as_float(name: str, value: object) -> float:
    try:
        return float(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"Setting '{name}' must be a number, got {value!r}") from exc


def _resolve_path(value: object, base_path: Path | None) -> Path:
    raw = Path(str(value)).expanduser()
    if not raw.is_absolute() and base_path is not None:
        raw = base_path / raw
    return raw.resolve(strict=False)


def _resolve_database(value: object, base_path: Path | None) -> Path:
    raw = str(value).strip()
    if raw.startswith(SQLITE_URL_PREFIX):
        raw = raw[len(SQLITE_URL_PREFIX):]
    return _resolve_path(raw, base_path)


def _apply(settings: Settings, data: Dict[str, object], base_path: Path | None) -> Settings:
    changes: Dict[str, object] = {}
    if data.get("session_secret"):
        changes["session_secret"] = str(data["session_secret"])
    if data.get("host"):
        changes["host"] = str(data["host"]).strip()
    if data.get("port") is not None:
        changes["port"] = _as_int("port", data["port"])
    if data.get("database_url"):
        changes["database_path"] = _resolve_database(data["database_url"], base_path)
    if data.get("upload_dir"):
        changes["upload_dir"] = _resolve_path(data["upload_dir"], base_path)
    if data.get("session_ttl_hours") is not None:
        changes["session_ttl"] = timedelta(hours=_as_float("session_ttl_hours", data["session_ttl_hours"]))
    if data.get("secure_cookies") is not None:
        raw_secure = data["secure_cookies"]
        changes["secure_cookies"] = raw_secure if isinstance(raw_secure, bool) else _env_flag(str(raw_secure))
    if data.get("bcrypt_rounds") is not None:
        changes["bcrypt_rounds"] = _as_int("bcrypt_rounds", data["bcrypt_rounds"])
    return replace(settings, **changes)


def _environment_overrides(environ: Mapping[str, str]) -> Dict[str, object]:
    mapping = {
        "PORT": "port",
        "USERAUTH_HOST": "host",
        "USERAUTH_SESSION_SECRET": "session_secret",
        "USERAUTH_DATABASE_URL": "database_url",
        "USERAUTH_UPLOAD_DIR": "upload_dir",
        "USERAUTH_SESSION_TTL_HOURS": "session_ttl_hours",
        "USERAUTH_SESSION_SECURE": "secure_cookies",
        "USERAUTH_BCRYPT_ROUNDS": "bcrypt_rounds",
    }
    overrides: Dict[str, object] = {}
    for env_name, key in mapping.items():
        value = environ.get(env_name)
        if value is not None and value.strip():
            overrides[key] = value
    return overrides


def load_config_file(config_path: Path) -> Dict[str, object]:
    """Load raw settings from a YAML file."""

    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Configuration file {config_path} must contain a mapping")
    return raw


def load_settings(
    config_path: Optional[Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Build settings from defaults, an optional YAML file and the environment.

    Environment variables take precedence over values from the file.
    """

    env = os.environ if environ is None else environ
    if config_path is None and env.get(CONFIG_ENV):
        config_path = Path(env[CONFIG_ENV]).expanduser()

    settings = Settings()
    if config_path is not None:
        resolved = config_path.resolve(strict=False)
        settings = _apply(settings, load_config_file(resolved), resolved.parent)

    return _apply(settings, _environment_overrides(env), None)


__all__ = ["CONFIG_ENV", "Settings", "load_config_file", "load_settings"]
