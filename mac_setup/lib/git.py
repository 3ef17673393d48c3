from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .command import Executor

logger = logging.getLogger(__name__)


class Git:
    def __init__(self, executor: Executor, *, git: str = "git") -> None:
        self.executor = executor
        self.git = git

    def is_clone(self, dest: Path) -> bool:
        return (dest / ".git").is_dir()

    def clone(self, url: str, dest: Path) -> None:
        self.executor.run([self.git, "clone", url, str(dest)])

    def pull(self, dest: Path, *, ff_only: bool = True) -> bool:
        argv = [self.git, "-C", str(dest), "pull"]
        if ff_only:
            argv.append("--ff-only")
        return self.executor.run(argv, check=False).ok

    def fetch(self, dest: Path) -> bool:
        return self.executor.run([self.git, "-C", str(dest), "remote", "update"], check=False).ok

    def rev_parse(self, dest: Path, rev: str) -> Optional[str]:
        r = self.executor.query([self.git, "-C", str(dest), "rev-parse", rev])
        if not r.ok:
            return None
        return r.stdout.strip() or None

    def upstream_moved(self, dest: Path) -> bool:
        """Fetch, then report whether the upstream head differs from HEAD."""
        local = self.rev_parse(dest, "HEAD")
        self.fetch(dest)
        remote = self.rev_parse(dest, "@{u}")
        if remote is None:
            return False
        return local != remote

    def get_global(self, key: str) -> Optional[str]:
        r = self.executor.query([self.git, "config", "--global", "--get", key])
        if not r.ok:
            return None
        return r.stdout.strip() or None

    def set_global(self, key: str, value: str) -> None:
        self.executor.run([self.git, "config", "--global", key, value])


# dotfiles/gitconfig is installed beside ~/.gitconfig and included from it,
# so `git config --global` writes never touch the copied file.
SHARED_GITCONFIG = ".gitconfig.mac-setup"
INCLUDE_MARKER = "# mac-setup: shared settings from dotfiles/gitconfig"


def shared_gitconfig(home: Path) -> Path:
    return home / SHARED_GITCONFIG


def include_block() -> str:
    return f"{INCLUDE_MARKER}\n[include]\n\tpath = ~/{SHARED_GITCONFIG}\n"


def includes_shared(gitconfig: Path) -> bool:
    try:
        text = gitconfig.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return False
    return INCLUDE_MARKER in text.splitlines()


def ensure_shared_include(gitconfig: Path, *, executor: Executor) -> bool:
    """Make ``gitconfig`` include the shared file, exactly once.

    Returns True when ``gitconfig`` was changed.
    """
    if includes_shared(gitconfig):
        return False
    if gitconfig.exists():
        text = gitconfig.read_text(encoding="utf-8")
        prefix = "" if (not text or text.endswith("\n")) else "\n"
        executor.append_text(gitconfig, prefix + include_block())
    else:
        executor.write_text(gitconfig, include_block())
    logger.info("Added include of ~/%s to %s", SHARED_GITCONFIG, gitconfig)
    return True
