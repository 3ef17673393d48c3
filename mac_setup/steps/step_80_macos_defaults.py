from __future__ import annotations

import logging

from ..context import SetupContext
from ..pipeline import Step

logger = logging.getLogger(__name__)


class MacosDefaultsStep(Step):
    step_id = "macos-defaults"
    phase = "defaults"
    remediation = "Re-run with --verbose to see which 'defaults write' failed"

    def is_satisfied(self, ctx: SetupContext) -> bool:
        return not ctx.prefs.pending(ctx.defaults_manifest)

    def run(self, ctx: SetupContext) -> None:
        pending = ctx.prefs.pending(ctx.defaults_manifest)
        logger.info("Applying %d macOS system preference(s)", len(pending))

        ctx.prefs.quit_settings_app()
        for change in pending:
            logger.debug("Applying %s", change.describe())
            ctx.prefs.apply(change)

        logger.info("Restarting affected applications (excluding Terminal)...")
        ctx.prefs.restart_apps(ctx.defaults_manifest.restart_apps)
        logger.info("NOTE: Restart Terminal manually to apply Terminal-specific settings")
