"""Gzip compression of closed backup files."""

from __future__ import annotations

import gzip
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from .backups import COMPRESS_SUFFIX

LOGGER = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024


def compress_backup(path: Path) -> Optional[Path]:
    """Replace ``path`` with ``path.gz`` holding the same byte stream.

    The archive is written to a temporary file in the same directory, synced,
    and moved onto the final name with :func:`os.replace`; the original is
    removed only after that succeeds. A stale ``.gz`` left by an interrupted
    run is overwritten. Returns the archive path, or ``None`` when ``path`` no
    longer exists.
    """

    source = Path(path)
    destination = source.with_name(source.name + COMPRESS_SUFFIX)

    try:
        src_handle = source.open("rb")
    except FileNotFoundError:
        LOGGER.debug("Backup %s vanished before compression", source)
        return None

    try:
        fd, tmp_path = tempfile.mkstemp(
            dir=source.parent,
            prefix=".tmp_gz_",
            suffix=COMPRESS_SUFFIX,
        )
    except OSError:
        src_handle.close()
        raise
    try:
        with src_handle, os.fdopen(fd, "wb") as raw:
            with gzip.GzipFile(filename="", mode="wb", fileobj=raw, mtime=0) as archive:
                shutil.copyfileobj(src_handle, archive, _CHUNK_SIZE)
            raw.flush()
            os.fsync(raw.fileno())
        shutil.copymode(source, tmp_path)
        os.replace(tmp_path, destination)
    finally:
        if os.path.exists(tmp_path):
            try:
                os.remove(tmp_path)
            except OSError:
                LOGGER.debug("Unable to remove temporary archive: %s", tmp_path)

    try:
        source.unlink()
    except FileNotFoundError:
        pass
    LOGGER.debug("Compressed %s -> %s", source.name, destination.name)
    return destination


__all__ = ["compress_backup"]
