from __future__ import annotations

import logging

from ..context import SetupContext
from ..lib.fragments import append_unique_line, has_line
from ..pipeline import Step

logger = logging.getLogger(__name__)

FRAGMENT = "00-homebrew.zsh"


class HomebrewStep(Step):
    """Install Homebrew and put its shellenv in .zprofile and the fragment dir."""

    step_id = "homebrew"
    fatal = True
    depends_on = ("xcode-clt",)
    remediation = "Install Homebrew manually (see https://brew.sh) and re-run mac-setup"

    def _fragment(self, ctx: SetupContext) -> str:
        return ctx.brew.shellenv_line() + "\n"

    def is_satisfied(self, ctx: SetupContext) -> bool:
        if not ctx.brew.is_available():
            return False
        return ctx.fragments.is_current(FRAGMENT, self._fragment(ctx)) and has_line(
            ctx.config.zprofile, ctx.brew.shellenv_line()
        )

    def run(self, ctx: SetupContext) -> None:
        if ctx.brew.is_available():
            logger.info("Homebrew already installed: %s", ctx.brew.version() or ctx.brew.bin)
        else:
            logger.info("Installing Homebrew...")
            ctx.brew.install_homebrew()
            ctx.brew.activate()

        # login shells get .zprofile; interactive shells load the fragment
        append_unique_line(ctx.config.zprofile, ctx.brew.shellenv_line(), executor=ctx.executor)
        ctx.fragments.write_fragment(FRAGMENT, self._fragment(ctx))
