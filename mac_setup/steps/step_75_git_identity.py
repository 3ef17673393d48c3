from __future__ import annotations

import logging

from ..context import SetupContext
from ..pipeline import Step, StepError

logger = logging.getLogger(__name__)


class GitIdentityStep(Step):
    step_id = "git-identity"
    phase = "git_config"
    depends_on = ("tool:git",)
    remediation = "Export GIT_USER_NAME / GIT_USER_EMAIL and re-run to configure automatically"

    def is_satisfied(self, ctx: SetupContext) -> bool:
        return bool(ctx.git.get_global("user.name") and ctx.git.get_global("user.email"))

    def run(self, ctx: SetupContext) -> None:
        existing_name = ctx.git.get_global("user.name")
        existing_email = ctx.git.get_global("user.email")
        name = existing_name or ctx.config.git_user_name
        email = existing_email or ctx.config.git_user_email

        if not (name and email):
            if not ctx.options.interactive:
                raise StepError("Git user.name/email not set and no interactive TTY")
            logger.info("Git identity not set. Interactive prompts below (leave blank to skip).")
            if not name:
                name = ctx.executor.ask("Enter git user.name: ")
            if not email:
                email = ctx.executor.ask("Enter git user.email: ")
            if not (name and email):
                raise StepError("Git user.name/email still unset")

        if name != existing_name:
            ctx.git.set_global("user.name", name)
        if email != existing_email:
            ctx.git.set_global("user.email", email)
        logger.info("Configured git user.name/user.email (%s / %s)", name, email)
