from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional

from ..context import SetupContext
from .step_30_bundle_bootstrap import BundleBootstrapStep

logger = logging.getLogger(__name__)


class BundleFullStep(BundleBootstrapStep):
    """Phase 2: internal/full Brewfile. Private taps need GitHub auth."""

    step_id = "bundle-full"
    phase = "internal_bundle"
    fatal = False
    depends_on = ("homebrew", "auth:github")
    label = "internal/full"

    def brewfile(self, ctx: SetupContext) -> Optional[Path]:
        for candidate in ctx.config.brewfile_full_candidates:
            if candidate.is_file():
                return candidate
        return None

    def install_env(self, ctx: SetupContext) -> Dict[str, str]:
        if ctx.auth.token:
            return {"HOMEBREW_GITHUB_API_TOKEN": ctx.auth.token}
        return {}
