"""Atomic file replacement shared by the settings file and the cache files."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import BinaryIO, Callable, Optional, TypeVar

_T = TypeVar("_T")


def atomic_write(path: Path, write: Callable[[BinaryIO], _T]) -> _T:
    """Replace *path* with whatever *write* produces, atomically.

    *write* receives a binary temp file created in the same directory as
    *path*, so ``os.replace`` is an atomic rename on POSIX systems and a
    reader never observes a partially written file.  On any failure the
    temp file is removed and *path* is left untouched.

    Returns:
        Whatever *write* returned.
    """
    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="wb",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        )
        tmp_path = fd.name
        result = write(fd)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
        return result
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise
