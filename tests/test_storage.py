import io
import os
import stat

import pytest

from rsshkit.storage import store, store_disk


def test_store_disk_writes_content_and_mode(tmp_path):
    target = tmp_path / "payload"
    result = store_disk(str(target), io.BytesIO(b"binary data"))
    assert result == str(target)
    assert target.read_bytes() == b"binary data"
    if os.name == "posix":
        assert stat.S_IMODE(target.stat().st_mode) == 0o700


def test_store_disk_overwrites(tmp_path):
    target = tmp_path / "payload"
    target.write_bytes(b"old content that is long")
    store_disk(str(target), io.BytesIO(b"new"))
    assert target.read_bytes() == b"new"


def test_store_disk_missing_directory(tmp_path):
    with pytest.raises(FileNotFoundError):
        store_disk(str(tmp_path / "nope" / "file"), io.BytesIO(b"x"))


def test_store_round_trip(tmp_path):
    data = bytes(range(256)) * 10
    path = store(str(tmp_path / "stored"), io.BytesIO(data))
    with open(path, "rb") as fh:
        assert fh.read() == data