"""Storage for uploaded profile pictures."""
from __future__ import annotations

import logging
import secrets
import shutil
import time
from contextlib import suppress
from pathlib import Path
from typing import BinaryIO, Optional

import anyio
from starlette.datastructures import UploadFile


logger = logging.getLogger("userauth.uploads")

PROFILE_PICTURE_FIELD = "profilePicture"

_RANDOM_SUFFIX_LIMIT = 1_000_000_000


class StorageError(RuntimeError):
    """Raised when an uploaded file cannot be written to disk."""


def generate_filename(original_name: str, field_tag: str = PROFILE_PICTURE_FIELD) -> str:
    """Return ``<field>-<epoch millis>-<random><extension>`` for an upload."""

    timestamp = int(time.time() * 1000)
    suffix = secrets.randbelow(_RANDOM_SUFFIX_LIMIT)
    extension = Path(original_name).suffix
    return f"{field_tag}-{timestamp}-{suffix}{extension}"


class UploadHandler:
    """Write single-file uploads into a fixed directory under unique names."""

    def __init__(self, directory: Path, *, field_tag: str = PROFILE_PICTURE_FIELD) -> None:
        self._directory = directory
        self._field_tag = field_tag

    @property
    def directory(self) -> Path:
        return self._directory

    async def store(self, upload: Optional[UploadFile]) -> str:
        """Persist ``upload`` and return its stored filename.

        Returns an empty string when no file was submitted.
        """

        if upload is None or not upload.filename:
            return ""

        filename = generate_filename(upload.filename, self._field_tag)
        await anyio.to_thread.run_sync(self._write, upload.file, filename)
        logger.info("Stored upload %s as %s", upload.filename, filename)
        return filename

    async def discard(self, filename: str) -> None:
        """Remove a previously stored upload; missing files are ignored."""

        if not filename:
            return
        await anyio.to_thread.run_sync(self._remove, self._directory / Path(filename).name)

    def _remove(self, target: Path) -> None:
        try:
            target.unlink(missing_ok=True)
        except OSError:
            logger.warning("Unable to remove stored upload %s", target, exc_info=True)

    def _write(self, source: BinaryIO, filename: str) -> None:
        target = self._directory / filename
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            source.seek(0)
            with target.open("wb") as handle:
                shutil.copyfileobj(source, handle)
        except OSError as exc:
            # A partial write must not leave an orphaned file behind.
            with suppress(OSError):
                target.unlink(missing_ok=True)
            raise StorageError(f"Unable to store upload {filename}: {exc}") from exc


__all__ = [
    "PROFILE_PICTURE_FIELD",
    "StorageError",
    "UploadHandler",
    "generate_filename",
]
