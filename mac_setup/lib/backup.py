from __future__ import annotations

import hashlib
import logging
import os
from pathlib import Path
from typing import Optional

from .command import Executor

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".backup.mac-setup"


def backup_path(target: Path) -> Path:
    return target.with_name(target.name + BACKUP_SUFFIX)


def _entry_bytes(path: Path) -> Optional[bytes]:
    # Links are compared by where they point; sockets and FIFOs are ignored.
    if path.is_symlink():
        return os.readlink(path).encode("utf-8")
    if path.is_file():
        return path.read_bytes()
    return None


def content_digest(path: Path) -> str:
    """sha256 of a file, or of a directory tree (relative names + contents)."""
    h = hashlib.sha256()
    if path.is_dir():
        for item in sorted(path.rglob("*")):
            data = _entry_bytes(item)
            if data is None:
                continue
            h.update(item.relative_to(path).as_posix().encode("utf-8"))
            h.update(b"\0")
            h.update(data)
            h.update(b"\0")
    elif path.is_file():
        h.update(path.read_bytes())
    elif path.is_symlink():
        # dangling
        h.update(os.readlink(path).encode("utf-8"))
    return h.hexdigest()


def backup_if_needed(
    target: Path,
    *,
    executor: Executor,
    managed_digest: Optional[str] = None,
) -> bool:
    """Back up ``target`` the first time it is about to be overwritten.

    The backup's existence is the guard: once it exists it is never
    refreshed, even if ``target`` changed since. Content this tool wrote
    itself (``managed_digest`` matches) is not foreign and is not backed up.
    Returns True when a backup was made.
    """

    if not (target.exists() or target.is_symlink()):
        return False

    backup = backup_path(target)
    if backup.exists() or backup.is_symlink():
        logger.debug("Backup already present for %s", target)
        return False

    if managed_digest is not None and content_digest(target) == managed_digest:
        logger.debug("%s holds managed content; no backup needed", target)
        return False

    executor.copy(target, backup)
    logger.info("Backed up %s -> %s", target, backup)
    return True
