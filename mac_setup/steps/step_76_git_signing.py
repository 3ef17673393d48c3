from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..context import SetupContext
from ..pipeline import Step, StepError

logger = logging.getLogger(__name__)

KEY_CANDIDATES = ("id_ed25519.pub", "id_ecdsa.pub", "id_rsa.pub")


class GitSigningStep(Step):
    """Sign commits with an SSH key (gpg.format=ssh)."""

    step_id = "git-signing"
    phase = "git_config"
    depends_on = ("tool:git",)
    remediation = "Generate a key (ssh-keygen -t ed25519) and re-run, or set GIT_SSH_SIGNING_KEY"

    def choose_key(self, ctx: SetupContext) -> Optional[Path]:
        explicit = ctx.config.git_signing_key
        if explicit:
            p = Path(explicit).expanduser()
            if p.is_file():
                return p
            logger.warning("GIT_SSH_SIGNING_KEY path not found: %s", explicit)
        for name in KEY_CANDIDATES:
            candidate = ctx.home / ".ssh" / name
            if candidate.is_file():
                return candidate
        return None

    def is_satisfied(self, ctx: SetupContext) -> bool:
        return ctx.git.get_global("gpg.format") == "ssh" and bool(ctx.git.get_global("user.signingkey"))

    def run(self, ctx: SetupContext) -> None:
        key = self.choose_key(ctx)
        if key is None:
            raise StepError(
                "No SSH public key found for commit signing (looked for " + ", ".join(KEY_CANDIDATES) + ")"
            )
        ctx.git.set_global("gpg.format", "ssh")
        ctx.git.set_global("user.signingkey", str(key))
        ctx.git.set_global("commit.gpgsign", "true")
        logger.info("Enabled SSH commit signing with key: %s", key)
