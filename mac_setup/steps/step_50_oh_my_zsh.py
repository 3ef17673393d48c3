from __future__ import annotations

import logging

from ..context import SetupContext
from ..pipeline import Step

logger = logging.getLogger(__name__)

INSTALL_URL = "https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh"


class OhMyZshStep(Step):
    step_id = "oh-my-zsh"
    phase = "ohmyzsh"
    remediation = f"Install Oh My Zsh manually: sh -c \"$(curl -fsSL {INSTALL_URL})\""

    def is_satisfied(self, ctx: SetupContext) -> bool:
        return (ctx.home / ".oh-my-zsh").is_dir()

    def run(self, ctx: SetupContext) -> None:
        logger.info("Installing Oh My Zsh (unattended)")
        # KEEP_ZSHRC: the installer must not replace the .zshrc sourcing block.
        ctx.executor.run(
            ["/bin/sh", "-c", f'sh -c "$(curl -fsSL {INSTALL_URL})" "" --unattended'],
            env={"KEEP_ZSHRC": "yes", "RUNZSH": "no"},
        )
