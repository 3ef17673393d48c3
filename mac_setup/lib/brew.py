from __future__ import annotations

import logging
import os
import platform
import re
import shutil
import time
from pathlib import Path
from typing import Mapping, Optional, Sequence, Set

from .command import Executor
from .env import Which

logger = logging.getLogger(__name__)

INSTALL_URL = "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"
PREFIXES = ("/opt/homebrew", "/usr/local")

# formula or cask -> executable it provides, where the two differ
PROVIDES = {
    "powershell": "pwsh",
    "visual-studio-code": "code",
}

BREWFILE_ENTRY = re.compile(r'^\s*(?:brew|cask)\s+"([^"]+)"')


def brewfile_binaries(brewfile: Path) -> Set[str]:
    """Executables a Brewfile is expected to put on PATH."""
    names = set()
    for line in brewfile.read_text(encoding="utf-8").splitlines():
        m = BREWFILE_ENTRY.match(line)
        if m:
            name = m.group(1).rsplit("/", 1)[-1]
            names.add(PROVIDES.get(name, name))
    return names


class Homebrew:
    """Homebrew as the package source.

    brew may be installed but not yet on PATH (fresh install, no shellenv in
    this process), so the well-known prefixes are probed too.
    """

    def __init__(
        self,
        executor: Executor,
        *,
        which: Which = shutil.which,
        prefixes: Sequence[str] = PREFIXES,
        machine: Optional[str] = None,
        cache_dir: Optional[Path] = None,
    ) -> None:
        self.executor = executor
        self._which = which
        self.prefixes = tuple(prefixes)
        self.machine = machine or platform.machine()
        self.cache_dir = cache_dir or Path.home() / "Library/Caches/Homebrew"
        # binaries a previewed bundle install would have provided
        self.forecast: Set[str] = set()

    def default_prefix(self) -> str:
        # Intel macs historically use /usr/local
        return "/usr/local" if self.machine == "x86_64" else "/opt/homebrew"

    def locate(self) -> Optional[str]:
        found = self._which("brew")
        if found:
            return found
        for prefix in self.prefixes:
            candidate = Path(prefix) / "bin/brew"
            if candidate.is_file() and os.access(candidate, os.X_OK):
                return str(candidate)
        return None

    def is_available(self) -> bool:
        return self.locate() is not None

    @property
    def bin(self) -> str:
        return self.locate() or f"{self.default_prefix()}/bin/brew"

    @property
    def prefix(self) -> str:
        return str(Path(self.bin).parent.parent)

    def shellenv_line(self) -> str:
        return f'eval "$({self.bin} shellenv)"'

    def activate(self) -> None:
        """Put a located-but-not-on-PATH brew onto this process's PATH."""
        if self._which("brew"):
            return
        located = self.locate()
        if not located:
            return
        bin_dir = str(Path(located).parent)
        path = os.environ.get("PATH", "")
        if bin_dir not in path.split(os.pathsep):
            os.environ["PATH"] = bin_dir + os.pathsep + path if path else bin_dir
            logger.info("Added %s to PATH", bin_dir)

    def install_homebrew(self) -> None:
        self.executor.run(
            ["/bin/bash", "-c", f'/bin/bash -c "$(curl -fsSL {INSTALL_URL})"'],
            interactive=True,
        )

    def version(self) -> Optional[str]:
        r = self.executor.query([self.bin, "--version"])
        if not r.ok or not r.stdout:
            return None
        return r.stdout.splitlines()[0].strip()

    def catalog_age_hours(self) -> Optional[float]:
        """Age of the local formula catalog, or None if it cannot be told."""
        marker = self.cache_dir / "api/formula.jws.json"
        try:
            mtime = marker.stat().st_mtime
        except OSError:
            return None
        return max(0.0, (time.time() - mtime) / 3600.0)

    def update_catalog(self) -> None:
        self.executor.run([self.bin, "update"])

    def check_satisfied(self, brewfile: Path) -> bool:
        r = self.executor.query([self.bin, "bundle", "check", "--no-upgrade", f"--file={brewfile}"])
        return r.ok

    def install(self, brewfile: Path, *, env: Mapping[str, str] | None = None) -> None:
        if self.executor.preview:
            self.forecast.update(brewfile_binaries(brewfile))
        self.executor.run(
            [self.bin, "bundle", "install", f"--file={brewfile}"],
            env=env,
            interactive=True,
        )
