"""First-run entry point for a fresh machine.

Gets git onto the machine (Xcode Command Line Tools), clones or refreshes
the provisioning repository into ``~/.mac-setup`` and hands over to the
installer with the remaining arguments.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Callable, Optional

from .lib.command import Executor
from .lib.env import PreconditionError, check_platform, default_paths, is_interactive
from .lib.git import Git
from .lib.xcode import CommandLineTools
from .logging_utils import configure_logging
from . import main as installer

logger = logging.getLogger(__name__)

REPO_URL = "https://github.com/simonclausen/mac-setup.git"


def ensure_command_line_tools(
    executor: Executor,
    *,
    interactive: bool,
    timeout_s: float = 600,
) -> None:
    clt = CommandLineTools(executor)
    if clt.is_installed():
        return

    logger.info("Installing Xcode Command Line Tools (this includes git)...")
    clt.request_install()
    if interactive:
        executor.ask("Press enter when Xcode Command Line Tools installation is complete...")
    if not clt.wait_for_install(timeout_s=timeout_s):
        raise PreconditionError("Xcode Command Line Tools installation failed")


def sync_repository(git: Git, dest: Path, *, repo_url: str = REPO_URL) -> None:
    """Clone ``repo_url`` into ``dest``, or pull when the upstream head moved."""
    if not git.is_clone(dest):
        logger.info("Cloning setup repository into %s", dest)
        git.clone(repo_url, dest)
        return

    if not git.upstream_moved(dest):
        logger.info("Repository already up-to-date")
        return

    logger.info("Updating repository (git pull)")
    if not git.pull(dest) and not git.pull(dest, ff_only=False):
        logger.warning("Could not update %s; continuing with the existing checkout", dest)


def bootstrap(
    installer_args: list[str],
    *,
    setup_dir: Optional[Path] = None,
    repo_url: str = REPO_URL,
    executor: Optional[Executor] = None,
    interactive: Optional[bool] = None,
    run_installer: Callable[[list[str]], int] = installer.main,
) -> int:
    setup_dir = setup_dir or default_paths().setup_dir_default
    executor = executor or Executor()
    interactive = is_interactive() if interactive is None else interactive

    logger.info("macOS Setup Bootstrapper")
    check_platform()
    ensure_command_line_tools(executor, interactive=interactive)
    sync_repository(Git(executor), setup_dir, repo_url=repo_url)

    logger.info("Starting main installation (passing args: %s)", " ".join(installer_args) or "none")
    return run_installer([*installer_args, "--setup-dir", str(setup_dir)])


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(
        prog="mac-setup-bootstrap",
        description="Clone the provisioning repository and run mac-setup; other arguments are passed through",
    )
    p.add_argument("--repo-url", default=REPO_URL, help="Provisioning repository to clone")
    p.add_argument("--setup-dir", default=None, help="Where to clone it (default: ~/.mac-setup)")
    args, rest = p.parse_known_args(argv)

    configure_logging(str(default_paths().log_default))
    try:
        rc = bootstrap(
            rest,
            setup_dir=Path(args.setup_dir).expanduser() if args.setup_dir else None,
            repo_url=args.repo_url,
        )
    except PreconditionError as e:
        logger.error("%s", e)
        return 2
    except RuntimeError as e:
        logger.error("Bootstrap failed: %s", e)
        return 1

    if rc == 0:
        logger.info("Bootstrap complete!")
    return rc
