from __future__ import annotations

import io
import re
from pathlib import Path
from unittest import mock

import anyio
import pytest
from starlette.datastructures import UploadFile

from userauth.uploads import StorageError, UploadHandler, generate_filename


def _upload(filename: str, payload: bytes = b"\x89PNG fake image") -> UploadFile:
    return UploadFile(file=io.BytesIO(payload), filename=filename)


def test_generated_name_keeps_extension_and_field_tag() -> None:
    name = generate_filename("holiday photo.JPG")
    assert re.fullmatch(r"profilePicture-\d{13,}-\d{1,9}\.JPG", name)


def test_generated_name_without_extension() -> None:
    name = generate_filename("avatar", field_tag="avatar")
    assert re.fullmatch(r"avatar-\d+-\d+", name)


def test_store_writes_file_under_generated_name(tmp_path: Path) -> None:
    handler = UploadHandler(tmp_path / "profile-pics")

    stored = anyio.run(handler.store, _upload("me.png", b"image-bytes"))

    assert stored.startswith("profilePicture-")
    assert stored.endswith(".png")
    assert (tmp_path / "profile-pics" / stored).read_bytes() == b"image-bytes"


def test_store_without_file_returns_empty_reference(tmp_path: Path) -> None:
    handler = UploadHandler(tmp_path / "profile-pics")

    assert anyio.run(handler.store, None) == ""
    assert anyio.run(handler.store, _upload("")) == ""
    assert not (tmp_path / "profile-pics").exists()


def test_store_failure_raises_storage_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocked"
    blocker.write_text("not a directory")
    handler = UploadHandler(blocker)

    with pytest.raises(StorageError):
        anyio.run(handler.store, _upload("me.png"))


def test_discard_removes_stored_file(tmp_path: Path) -> None:
    handler = UploadHandler(tmp_path)
    stored = anyio.run(handler.store, _upload("me.png"))

    anyio.run(handler.discard, stored)
    anyio.run(handler.discard, stored)
    anyio.run(handler.discard, "")

    assert not (tmp_path / stored).exists()


def test_partial_write_leaves_no_file_behind(tmp_path: Path) -> None:
    handler = UploadHandler(tmp_path)

    def _fail_midway(source, destination) -> None:
        destination.write(b"partial")
        raise OSError(28, "No space left on device")

    with mock.patch("userauth.uploads.shutil.copyfileobj", side_effect=_fail_midway):
        with pytest.raises(StorageError):
            anyio.run(handler.store, _upload("me.png"))

    assert list(tmp_path.iterdir()) == []
