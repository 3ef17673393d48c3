from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional

from ..context import SetupContext
from ..pipeline import Step

logger = logging.getLogger(__name__)


class BundleBootstrapStep(Step):
    """Phase 1: public formulae needed by everything after (gh, git, ...)."""

    step_id = "bundle-bootstrap"
    phase = "bundle"
    fatal = True
    depends_on = ("homebrew",)
    label = "bootstrap"

    @property
    def remediation(self) -> str:  # type: ignore[override]
        return f"Run 'brew bundle install' for the {self.label} Brewfile manually and re-run mac-setup"

    def brewfile(self, ctx: SetupContext) -> Optional[Path]:
        p = ctx.config.brewfile_bootstrap
        return p if p.is_file() else None

    def install_env(self, ctx: SetupContext) -> Dict[str, str]:
        return {}

    def is_satisfied(self, ctx: SetupContext) -> bool:
        brewfile = self.brewfile(ctx)
        if brewfile is None:
            logger.warning("No %s Brewfile found; %s phase has nothing to install", self.label, self.label)
            return True
        logger.info("Checking %s Brewfile (%s)", self.label, brewfile)
        return ctx.brew.check_satisfied(brewfile)

    def run(self, ctx: SetupContext) -> None:
        brewfile = self.brewfile(ctx)
        if brewfile is None:
            return
        logger.info("Installing %s packages from %s", self.label, brewfile)
        ctx.brew.install(brewfile, env=self.install_env(ctx) or None)
