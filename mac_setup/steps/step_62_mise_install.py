from __future__ import annotations

import logging

from ..context import SetupContext
from ..pipeline import Step

logger = logging.getLogger(__name__)


class MiseInstallStep(Step):
    step_id = "mise-install"
    phase = "mise_install"
    depends_on = ("tool:mise",)
    remediation = "Run 'mise install' manually"

    def is_satisfied(self, ctx: SetupContext) -> bool:
        r = ctx.executor.query(["mise", "ls", "--missing"])
        return r.ok and not r.stdout.strip()

    def run(self, ctx: SetupContext) -> None:
        logger.info("Ensuring mise tools (mise install)")
        ctx.executor.run(["mise", "install"])
