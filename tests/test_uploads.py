import io
from unittest.mock import patch

import pytest
from fastapi import UploadFile

from bookrental.uploads import build_filename, discard_upload, save_upload


def make_upload(content=b"cover-bytes", filename="cover.png"):
    return UploadFile(file=io.BytesIO(content), filename=filename)


def test_build_filename_keeps_extension():
    with patch("bookrental.uploads.time.time", return_value=1700000000.123):
        assert build_filename("cover", "dune.jpeg") == "cover-1700000000123.jpeg"
        assert build_filename("cover", None) == "cover-1700000000123"


@pytest.mark.asyncio
async def test_save_upload_writes_file(tmp_path):
    path = await save_upload(make_upload(), str(tmp_path / "covers"))
    assert path.endswith(".png")
    assert open(path, "rb").read() == b"cover-bytes"


@pytest.mark.asyncio
async def test_same_millisecond_upload_does_not_overwrite(tmp_path):
    with patch("bookrental.uploads.time.time", return_value=1700000000.123):
        path = await save_upload(make_upload(b"first"), str(tmp_path))
        with pytest.raises(FileExistsError):
            await save_upload(make_upload(b"second"), str(tmp_path))
    assert open(path, "rb").read() == b"first"


def test_discard_upload_ignores_missing_file(tmp_path):
    stored = tmp_path / "cover-1.png"
    stored.write_bytes(b"x")
    discard_upload(str(stored))
    assert not stored.exists()
    discard_upload(str(stored))
