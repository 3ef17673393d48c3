from __future__ import annotations

import logging

from ..context import SetupContext
from ..pipeline import Step, StepError

logger = logging.getLogger(__name__)


class XcodeCLTStep(Step):
    step_id = "xcode-clt"
    fatal = True
    remediation = "Finish the Command Line Tools installer (xcode-select --install) and re-run mac-setup"

    def is_satisfied(self, ctx: SetupContext) -> bool:
        return ctx.xcode.is_installed()

    def run(self, ctx: SetupContext) -> None:
        logger.info("Installing Xcode Command Line Tools (one-time)")
        ctx.xcode.request_install()
        # The user may need to confirm a GUI dialog.
        if not ctx.xcode.wait_for_install(timeout_s=ctx.config.clt_timeout_s, interval_s=ctx.config.clt_poll_s):
            raise StepError(
                f"Timed out waiting for Xcode Command Line Tools (waited {int(ctx.config.clt_timeout_s)}s)"
            )
        logger.info("Xcode CLT installation detected")
