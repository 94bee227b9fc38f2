"""Crash-safe file helpers for keybind storage."""
from __future__ import annotations

import json
import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, BinaryIO, Iterator, Mapping

logger = logging.getLogger(__name__)


def ensure_private_dir(path: Path, *, mode: int = 0o700) -> Path:
    """Create ``path`` with its parents and restrict it to the owner where supported."""
    path.mkdir(parents=True, exist_ok=True)
    try:
        os.chmod(path, mode)
    except OSError:
        logger.debug("Could not chmod directory: %s", path, exc_info=True)
    return path


@contextmanager
def atomic_replace(path: Path) -> Iterator[BinaryIO]:
    """Yield a temp file beside ``path`` that replaces it when the block exits cleanly.

    The data is fsynced before the rename. If the block raises, the temp file
    is removed and ``path`` keeps its previous content.
    """
    directory = ensure_private_dir(path.parent)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=directory)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as handle:
            yield handle
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        try:
            tmp_path.unlink()
        except OSError:
            logger.debug("Could not remove temp file %s", tmp_path, exc_info=True)
        raise


def atomic_write_bytes(path: Path, data: bytes) -> None:
    with atomic_replace(path) as handle:
        handle.write(data)


def canonical_dumps(obj: Mapping[str, Any]) -> str:
    """Sorted keys and no whitespace, so equal payloads encode to equal bytes."""
    return json.dumps(obj, separators=(",", ":"), sort_keys=True)
