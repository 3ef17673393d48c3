from __future__ import annotations

import logging

from ..context import SetupContext
from ..pipeline import Step, StepError

logger = logging.getLogger(__name__)


class AwsSamlStep(Step):
    """Configure the saml2aws helper by running the scripts of a support repository."""

    step_id = "aws-saml"
    phase = "aws_saml"
    depends_on = ("tool:git", "tool:pwsh")

    def is_satisfied(self, ctx: SetupContext) -> bool:
        saml = ctx.config.saml
        return ctx.git.is_clone(saml.clone_dir) and saml.config_path.exists()

    def run(self, ctx: SetupContext) -> None:
        saml = ctx.config.saml
        see_docs = f"See {saml.doc_url}"

        if ctx.git.is_clone(saml.clone_dir):
            if not ctx.git.pull(saml.clone_dir):
                logger.warning("Could not update %s; using existing checkout", saml.clone_dir)
        else:
            ctx.executor.mkdir(saml.clone_dir.parent)
            ctx.git.clone(saml.repo_url, saml.clone_dir)

        scripts = [saml.clone_dir / rel for rel in saml.scripts]
        # Nothing to inspect before the first clone in preview mode.
        if ctx.git.is_clone(saml.clone_dir):
            missing = [s for s in scripts if not s.is_file()]
            if missing:
                raise StepError(
                    f"Expected SAML scripts not found in {saml.clone_dir}; repository layout may have changed",
                    remediation=see_docs,
                )

        logger.info("Configuring AWS SAML (saml2aws) helper")
        failed = []
        for script in scripts:
            r = ctx.executor.run(["pwsh", "-NoLogo", "-NoProfile", "-File", str(script)], check=False)
            if not r.ok:
                failed.append(script.name)
        if failed:
            raise StepError(f"{', '.join(failed)} failed", remediation=see_docs)
        logger.info("AWS SAML helper configured. For usage docs see: %s", saml.doc_url)
