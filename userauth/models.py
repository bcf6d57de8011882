"""Domain models for the user account service."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class User:
    """Represents a registered account stored in the credential database."""

    id: int
    name: str
    email: str
    password_hash: str
    profile_picture: str
    created_at: datetime

    @property
    def has_profile_picture(self) -> bool:
        return bool(self.profile_picture)


__all__ = ["User"]
