"""Store a stream as an executable file, in memory where possible."""

from __future__ import annotations

import os
import shutil
from typing import BinaryIO


def store_disk(path: str, reader: BinaryIO) -> str:
    """Write ``reader`` to ``path`` with mode 0700 and return the path."""
    with open(path, "wb") as out:
        os.chmod(path, 0o700)
        shutil.copyfileobj(reader, out)
    return path


def store(filename: str, reader: BinaryIO) -> str:
    """Copy ``reader`` into an anonymous memory file, else onto disk.

    Returns a path from which the data can be opened.
    """
    memfd_create = getattr(os, "memfd_create", None)
    if memfd_create is None:
        return store_disk(filename, reader)
    try:
        fd = memfd_create(os.path.basename(filename) or "store")
    except OSError:
        return store_disk(filename, reader)
    try:
        with os.fdopen(fd, "wb", closefd=False) as out:
            shutil.copyfileobj(reader, out)
    except OSError:
        os.close(fd)
        return store_disk(filename, reader)
    return f"/proc/self/fd/{fd}"