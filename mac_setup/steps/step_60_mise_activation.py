from __future__ import annotations

import logging

from ..context import SetupContext
from ..pipeline import Step

logger = logging.getLogger(__name__)

FRAGMENT = "20-mise.zsh"

MISE_ACTIVATION = """\
if command -v mise >/dev/null 2>&1; then
    eval "$(mise activate zsh)"
fi
"""


class MiseActivationStep(Step):
    step_id = "mise-activation"
    phase = "mise"

    def is_satisfied(self, ctx: SetupContext) -> bool:
        return ctx.fragments.is_current(FRAGMENT, MISE_ACTIVATION)

    def run(self, ctx: SetupContext) -> None:
        if not ctx.gates["tool:mise"].ensure():
            # The fragment is guarded, so writing it early is harmless.
            logger.warning(
                "mise not found (brew phase may have skipped). Run: brew bundle --file Brewfile.full (or brew install mise)"
            )
        ctx.fragments.write_fragment(FRAGMENT, MISE_ACTIVATION)
