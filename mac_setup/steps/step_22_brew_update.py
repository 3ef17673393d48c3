from __future__ import annotations

import logging

from ..context import SetupContext
from ..pipeline import Step

logger = logging.getLogger(__name__)


class BrewUpdateStep(Step):
    step_id = "brew-update"
    phase = "brew_update"
    depends_on = ("homebrew",)
    remediation = "Run 'brew update' manually"

    def is_satisfied(self, ctx: SetupContext) -> bool:
        age = ctx.brew.catalog_age_hours()
        return age is not None and age < ctx.config.catalog_max_age_hours

    def run(self, ctx: SetupContext) -> None:
        logger.info("Updating Homebrew (can be skipped with --no-brew-update)")
        ctx.brew.update_catalog()
