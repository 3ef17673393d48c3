from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Set

from .command import Executor

logger = logging.getLogger(__name__)


def user_data_dir(home: Path) -> Path:
    """Created the first time VS Code is launched (after Gatekeeper approval)."""
    return home / "Library/Application Support/Code"


class VSCode:
    def __init__(self, executor: Executor, *, code: str = "code") -> None:
        self.executor = executor
        self.code = code

    def list_installed(self) -> Optional[Set[str]]:
        r = self.executor.query([self.code, "--list-extensions"])
        if not r.ok:
            return None
        # extension ids are case-insensitive
        return {line.strip().lower() for line in r.stdout.splitlines() if line.strip()}

    def install(self, extension_id: str) -> bool:
        r = self.executor.run([self.code, "--install-extension", extension_id], check=False)
        if r.ok:
            logger.info("Installed: %s", extension_id)
        else:
            logger.warning("Failed: %s", extension_id)
        return r.ok
