"""Password hashing helpers for the credential store."""
from __future__ import annotations

import anyio
from passlib.context import CryptContext


DEFAULT_BCRYPT_ROUNDS = 10


class HashingError(RuntimeError):
    """Raised when the hashing backend fails to produce a password hash."""


class PasswordHasher:
    """One-way salted password hashing backed by passlib's bcrypt scheme.

    Every call to :meth:`hash` draws a fresh salt, so hashing the same
    plaintext twice yields different values that both verify. Comparison of
    candidate passwords is delegated to passlib, which performs it in
    constant time.
    """

    def __init__(self, *, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> None:
        self._rounds = rounds
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    @property
    def rounds(self) -> int:
        return self._rounds

    def hash(self, plaintext: str) -> str:
        try:
            return self._context.hash(plaintext)
        except (ValueError, TypeError, MemoryError) as exc:
            raise HashingError(f"Unable to hash password: {exc}") from exc

    def verify(self, plaintext: str, hashed: str) -> bool:
        if not hashed:
            return False
        try:
            return self._context.verify(plaintext, hashed)
        except (ValueError, TypeError):
            return False

    def dummy_verify(self) -> bool:
        """Run a verification against a throwaway hash; always returns False."""

        return self._context.dummy_verify()

    async def dummy_verify_async(self) -> bool:
        return await anyio.to_thread.run_sync(self.dummy_verify)

    async def hash_async(self, plaintext: str) -> str:
        """Hash ``plaintext`` in a worker thread."""

        return await anyio.to_thread.run_sync(self.hash, plaintext)

    async def verify_async(self, plaintext: str, hashed: str) -> bool:
        """Verify ``plaintext`` against ``hashed`` in a worker thread."""

        return await anyio.to_thread.run_sync(self.verify, plaintext, hashed)


__all__ = ["DEFAULT_BCRYPT_ROUNDS", "HashingError", "PasswordHasher"]
