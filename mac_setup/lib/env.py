from __future__ import annotations

import logging
import os
import platform
import shutil
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

logger = logging.getLogger(__name__)

Which = Callable[[str], Optional[str]]


class PreconditionError(RuntimeError):
    """The host is not fit to run any step."""


@dataclass(frozen=True)
class Paths:
    home: Path

    @property
    def state_dir(self) -> Path:
        return self.home / ".local/state/mac-setup"

    @property
    def state_default(self) -> Path:
        return self.state_dir / "state.json"

    @property
    def log_default(self) -> Path:
        return self.state_dir / "install.log"

    @property
    def setup_dir_default(self) -> Path:
        return self.home / ".mac-setup"


def default_paths() -> Paths:
    return Paths(home=Path.home())


def check_platform(system: Optional[str] = None) -> None:
    system = system or platform.system()
    if system != "Darwin":
        raise PreconditionError(f"This tool is macOS-only (platform={system})")


def check_not_root(euid: Optional[int] = None) -> None:
    euid = os.geteuid() if euid is None else euid
    if euid == 0:
        raise PreconditionError(
            "Do not run as root. Use your normal user (sudo will be invoked as needed)."
        )


def is_interactive() -> bool:
    # conservative: require both stdin and stdout to be TTY
    return sys.stdin.isatty() and sys.stdout.isatty()


class ToolGate:
    """Met when an executable is on PATH. Re-checked on every call."""

    def __init__(self, binary: str, *, hint: str, which: Which = shutil.which) -> None:
        self.binary = binary
        self.name = f"tool:{binary}"
        self.hint = hint
        self._which = which

    def ensure(self) -> bool:
        return self._which(self.binary) is not None


class PathGate:
    """Met when a path exists."""

    def __init__(self, name: str, path: Path, *, hint: str) -> None:
        self.name = name
        self.path = path
        self.hint = hint

    def ensure(self) -> bool:
        return self.path.exists()
