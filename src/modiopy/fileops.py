"""
modiopy.fileops
---------------

Crash-safe file writes for the blob store.

A payload is written next to its destination under a temporary name, synced
to disk and then renamed over the destination, so readers only ever see a
missing file or a complete one.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Optional

from .exceptions import ModioError


def _fsync_fileobj(fp) -> None:
    fp.flush()
    try:
        os.fsync(fp.fileno())
    except OSError:
        # not every filesystem supports fsync
        pass


def atomic_write(dest_path: Path, data: bytes, *, tmp_suffix: Optional[str] = None) -> Path:
    """
    Replace `dest_path` with `data` in one rename.

    Parameters
    ----------
    dest_path : Path
        Target file; missing parent directories are created.
    data : bytes
        Complete file content.
    tmp_suffix : Optional[str]
        Suffix of the temporary file (".tmp" if omitted).

    Returns
    -------
    Path
        `dest_path`.

    Raises
    ------
    ModioError
        If writing the temporary file or the rename fails. The
        temporary file is removed.
    """
    dest_path = Path(dest_path)
    dest_path.parent.mkdir(parents=True, exist_ok=True)

    tmp = None
    try:
        fd, tmp_name = tempfile.mkstemp(dir=dest_path.parent, suffix=tmp_suffix or ".tmp")
        tmp = Path(tmp_name)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            _fsync_fileobj(f)
        os.replace(tmp, dest_path)
        return dest_path
    except OSError as exc:
        if tmp is not None:
            safe_remove(tmp)
        raise ModioError(f"atomic_write failed for {dest_path}: {exc}") from exc


def safe_remove(path: Path) -> None:
    """Remove `path` if it exists."""
    try:
        Path(path).unlink()
    except FileNotFoundError:
        pass
