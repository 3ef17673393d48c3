"""Managed shell fragments (``~/.zshrc.d/NN-name.zsh``) and the host file that sources them.

Fragments are regenerated wholesale on every write, never patched, so the
same inputs always produce byte-identical files. Name fragments so that
lexicographic order is load order (``00-homebrew.zsh`` before anything that
needs brew on PATH).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .command import Executor

logger = logging.getLogger(__name__)

MANAGED_HEADER = "# Managed by mac-setup"
SOURCING_MARKER = "# mac-setup .zshrc.d sourcing"


def _read(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None


def has_line(path: Path, line: str) -> bool:
    text = _read(path)
    if text is None:
        return False
    return line in text.splitlines()


def append_unique_line(path: Path, line: str, *, executor: Executor) -> bool:
    """Append ``line`` to ``path`` unless it is already there verbatim."""
    if has_line(path, line):
        return False
    text = _read(path) or ""
    prefix = "" if (not text or text.endswith("\n")) else "\n"
    executor.append_text(path, f"{prefix}{line}\n")
    logger.info("Added line to %s", path)
    return True


class FragmentManager:
    def __init__(
        self,
        directory: Path,
        host_file: Path,
        *,
        executor: Executor,
        home: Optional[Path] = None,
    ) -> None:
        self.directory = directory
        self.host_file = host_file
        self.executor = executor
        self.home = home or Path.home()

    def path_for(self, identifier: str) -> Path:
        if "/" in identifier or identifier.startswith("."):
            raise ValueError(f"Invalid fragment identifier: {identifier!r}")
        return self.directory / identifier

    def render(self, identifier: str, content: str) -> str:
        body = content if content.endswith("\n") else content + "\n"
        return f"{MANAGED_HEADER} ({identifier})\n{body}"

    def is_current(self, identifier: str, content: str) -> bool:
        return _read(self.path_for(identifier)) == self.render(identifier, content)

    def write_fragment(self, identifier: str, content: str) -> Path:
        path = self.path_for(identifier)
        self.executor.mkdir(self.directory)
        self.executor.write_text(path, self.render(identifier, content))
        logger.info("Wrote fragment %s", path)
        return path

    def _shell_dir(self) -> str:
        try:
            rel = self.directory.relative_to(self.home)
        except ValueError:
            return f'"{self.directory}"'
        return f'"$HOME"/{rel.as_posix()}'

    def sourcing_block(self) -> str:
        return (
            f"\n{SOURCING_MARKER}\n"
            f"for file in {self._shell_dir()}/*.zsh; do\n"
            '  [ -r "$file" ] && source "$file"\n'
            "done\n"
        )

    def host_sources_fragments(self) -> bool:
        text = _read(self.host_file)
        return text is not None and SOURCING_MARKER in text

    def ensure_host_sources(self) -> bool:
        """Make the host file source every fragment, exactly once.

        Returns True when the host file was changed.
        """
        if self.host_sources_fragments():
            return False
        if self.host_file.exists():
            self.executor.append_text(self.host_file, self.sourcing_block())
            logger.info("Appended sourcing block to %s", self.host_file)
        else:
            self.executor.write_text(self.host_file, self.sourcing_block())
            logger.info("Created %s with sourcing block", self.host_file)
        return True
