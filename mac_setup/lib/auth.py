from __future__ import annotations

import logging
import shutil
from typing import Optional

from .command import Executor
from .env import Which

logger = logging.getLogger(__name__)

GH_SCOPES = "read:packages,repo"


class GitHubAuth:
    """GitHub CLI credentials for private taps and internal Brewfile entries."""

    def __init__(self, executor: Executor, *, which: Which = shutil.which) -> None:
        self.executor = executor
        self._which = which

    def is_available(self) -> bool:
        return self._which("gh") is not None

    def status(self) -> bool:
        return self.executor.query(["gh", "auth", "status"]).ok

    def interactive_login(self) -> bool:
        r = self.executor.run(
            ["gh", "auth", "login", "--scopes", GH_SCOPES],
            check=False,
            interactive=True,
        )
        return r.ok

    def token(self) -> Optional[str]:
        r = self.executor.query(["gh", "auth", "token"])
        if not r.ok:
            return None
        return r.stdout.strip() or None


class AuthGate:
    """Resolves GitHub authentication once per run and caches the answer.

    - already authenticated: True, no prompt
    - interactive session: run ``gh auth login`` and report its result
    - otherwise: False, never prompts
    """

    name = "auth:github"
    hint = f"Run 'gh auth login --scopes {GH_SCOPES}' and re-run mac-setup"

    def __init__(self, source: GitHubAuth, *, interactive: bool) -> None:
        self.source = source
        self.interactive = interactive
        self.token: Optional[str] = None
        self._result: Optional[bool] = None

    def ensure(self) -> bool:
        return self.ensure_authenticated()

    def ensure_authenticated(self) -> bool:
        if self._result is None:
            self._result = self._resolve()
        return self._result

    def _resolve(self) -> bool:
        if not self.source.is_available():
            logger.warning("gh not installed yet; cannot authenticate to GitHub")
            return False

        if self.source.status():
            logger.info("GitHub CLI already authenticated")
        elif not self.interactive:
            logger.warning("Non-interactive session and gh not authenticated")
            return False
        else:
            logger.warning("GitHub CLI not authenticated. Launching 'gh auth login'...")
            if not self.source.interactive_login():
                logger.warning("GitHub authentication failed/aborted")
                return False

        self.token = self.source.token()
        return True
