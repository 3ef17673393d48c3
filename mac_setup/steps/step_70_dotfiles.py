from __future__ import annotations

import logging
from fnmatch import fnmatch
from pathlib import Path
from typing import List, Tuple

from ..context import SetupContext
from ..lib.backup import backup_if_needed, content_digest
from ..lib.git import ensure_shared_include, includes_shared, shared_gitconfig
from ..pipeline import Step, StepError

logger = logging.getLogger(__name__)

# Non-config artifacts that live next to the dotfiles.
SKIP_PATTERNS = ("README*", "*.md", "*.txt")


def _in_sync(src: Path, target: Path) -> bool:
    try:
        if src.is_dir() != target.is_dir() or not target.exists():
            return False
        return content_digest(src) == content_digest(target)
    except OSError as e:
        logger.debug("Cannot compare %s with %s: %s", src, target, e)
        return False


class DotfilesStep(Step):
    """Copy ``dotfiles/<name>`` to ``~/.<name>``, backing up what was there first.

    ``gitconfig`` is the exception: it lands in ``~/.gitconfig.mac-setup``
    and ``~/.gitconfig`` includes it, leaving ``~/.gitconfig`` to git.
    """

    step_id = "dotfiles"
    phase = "dotfiles"
    remediation = "Copy the files in dotfiles/ to your home directory manually"

    def plan(self, ctx: SetupContext) -> List[Tuple[Path, Path]]:
        src_dir = ctx.config.dotfiles_dir
        if not src_dir.is_dir():
            return []

        pairs: List[Tuple[Path, Path]] = []
        for src in sorted(src_dir.iterdir()):
            name = src.name
            if any(fnmatch(name, pat) for pat in SKIP_PATTERNS):
                continue
            if not (src.is_file() or src.is_dir()):
                continue
            target = ctx.home / (name if name.startswith(".") else f".{name}")
            if target.name == ".gitconfig":
                if not ctx.options.is_enabled("git_config"):
                    continue
                target = shared_gitconfig(ctx.home)
            pairs.append((src, target))
        return pairs

    def _provisioned(self, ctx: SetupContext, src: Path, target: Path) -> bool:
        if not _in_sync(src, target):
            return False
        return target != shared_gitconfig(ctx.home) or includes_shared(ctx.home / ".gitconfig")

    def is_satisfied(self, ctx: SetupContext) -> bool:
        plan = self.plan(ctx)
        if not plan:
            logger.info("No dotfiles/ directory present")
        return all(self._provisioned(ctx, src, target) for src, target in plan)

    def _install(self, ctx: SetupContext, src: Path, target: Path) -> int:
        """Bring one target up to date; returns the number of backups made."""
        backups = 0
        if not _in_sync(src, target):
            if backup_if_needed(target, executor=ctx.executor, managed_digest=ctx.managed_digest(target)):
                backups += 1
            if src.is_dir():
                ctx.executor.replace_tree(src, target)
            else:
                ctx.executor.copy(src, target)
            ctx.remember_managed(target, src)

        if target == shared_gitconfig(ctx.home):
            gitconfig = ctx.home / ".gitconfig"
            if not includes_shared(gitconfig) and backup_if_needed(
                gitconfig, executor=ctx.executor, managed_digest=ctx.managed_digest(gitconfig)
            ):
                backups += 1
            ensure_shared_include(gitconfig, executor=ctx.executor)
        return backups

    def run(self, ctx: SetupContext) -> None:
        applied = skipped = backed_up = 0
        failed: List[str] = []
        for src, target in self.plan(ctx):
            if self._provisioned(ctx, src, target):
                skipped += 1
                continue
            try:
                backed_up += self._install(ctx, src, target)
            except OSError as e:
                logger.error("Could not provision %s: %s", target, e)
                failed.append(str(target))
                continue
            applied += 1

        logger.info(
            "Dotfiles provisioning: applied=%d backed_up=%d skipped=%d failed=%d",
            applied,
            backed_up,
            skipped,
            len(failed),
        )
        if failed:
            raise StepError("Could not provision: " + ", ".join(failed))
