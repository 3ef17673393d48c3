from __future__ import annotations

from ..context import SetupContext
from ..pipeline import Step


class ZshrcSourcingStep(Step):
    step_id = "zshrc-sourcing"
    remediation = "Add a loop sourcing ~/.zshrc.d/*.zsh to ~/.zshrc"

    def is_satisfied(self, ctx: SetupContext) -> bool:
        return ctx.fragments.host_sources_fragments()

    def run(self, ctx: SetupContext) -> None:
        ctx.fragments.ensure_host_sources()
