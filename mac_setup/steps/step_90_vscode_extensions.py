from __future__ import annotations

import logging

from ..context import SetupContext
from ..pipeline import Step, StepError

logger = logging.getLogger(__name__)


class VSCodeExtensionsStep(Step):
    step_id = "vscode-extensions"
    phase = "vscode"
    depends_on = ("tool:code", "vscode:launched")
    remediation = "Install the missing extensions with 'code --install-extension <id>'"

    def is_satisfied(self, ctx: SetupContext) -> bool:
        installed = ctx.vscode.list_installed()
        if installed is None:
            return False
        return all(ext.lower() in installed for ext in ctx.vscode_extensions)

    def run(self, ctx: SetupContext) -> None:
        installed = ctx.vscode.list_installed() or set()
        missing = [ext for ext in ctx.vscode_extensions if ext.lower() not in installed]
        logger.info("Installing %d missing extensions...", len(missing))

        failed = [ext for ext in missing if not ctx.vscode.install(ext)]
        if failed:
            raise StepError(f"{len(failed)} extension(s) failed to install: {', '.join(failed)}")
