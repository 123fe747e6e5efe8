"""Zero-overwrite-then-unlink for files that held secrets.

This is best effort. It keeps an obvious plaintext token from sitting in a
backup or swap image after migration, but it is not a guarantee against
forensic recovery: copy-on-write and journaling filesystems, SSD
wear-levelling and snapshots can all keep the old blocks around.
"""

from __future__ import annotations

import os
from pathlib import Path

from loguru import logger

from google_readonly.config import shorten_path
from google_readonly.errors import TokenIOError

_CHUNK_SIZE = 64 * 1024


def secure_delete(path: str | Path) -> None:
    """Overwrite a file with zeros, sync it to disk, then remove it.

    A missing file is not an error.

    Raises:
        TokenIOError: If the file exists but cannot be overwritten or removed.
    """
    path = Path(path)
    try:
        fd = os.open(path, os.O_RDWR)
    except FileNotFoundError:
        return
    except OSError as e:
        raise TokenIOError(shorten_path(path), f"cannot open for erase: {e.strerror}") from e

    try:
        with os.fdopen(fd, "r+b") as f:
            remaining = os.fstat(f.fileno()).st_size
            zeros = bytes(min(remaining, _CHUNK_SIZE))
            while remaining > 0:
                n = min(remaining, _CHUNK_SIZE)
                f.write(zeros[:n])
                remaining -= n
            f.flush()
            os.fsync(f.fileno())
    except OSError as e:
        raise TokenIOError(shorten_path(path), f"overwrite failed: {e.strerror}") from e

    try:
        path.unlink()
    except FileNotFoundError:
        return
    except OSError as e:
        raise TokenIOError(shorten_path(path), f"unlink failed: {e.strerror}") from e

    logger.debug("Securely erased {}", shorten_path(path))
