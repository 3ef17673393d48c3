from __future__ import annotations

import argparse
import logging
import shutil
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .context import SetupContext
from .lib.auth import AuthGate, GitHubAuth
from .lib.brew import PREFIXES, Homebrew
from .lib.command import Executor, Runner
from .lib.defaults import PreferenceStore
from .lib.env import (
    PathGate,
    PreconditionError,
    ToolGate,
    Which,
    check_not_root,
    check_platform,
    default_paths,
    is_interactive,
)
from .lib.fragments import FragmentManager
from .lib.git import Git
from .lib.manifests import load_defaults_manifest, load_vscode_extensions
from .lib.sudo import SudoKeepAlive
from .lib.vscode import VSCode, user_data_dir
from .lib.xcode import CommandLineTools
from .logging_utils import configure_logging
from .options import PHASES, RunOptions
from .pipeline import Outcome, RunReport, Step, run_pipeline
from .setup_config import SetupConfig, load_setup_config
from .state_store import ensure_defaults, load_state, record_run, save_state
from .steps import (
    AwsSamlStep,
    BrewUpdateStep,
    BundleBootstrapStep,
    BundleFullStep,
    DotfilesStep,
    GitIdentityStep,
    GitSigningStep,
    GnuToolsStep,
    HomebrewStep,
    MacosDefaultsStep,
    MiseActivationStep,
    MiseInstallStep,
    OhMyZshStep,
    VSCodeExtensionsStep,
    XcodeCLTStep,
    ZshrcSourcingStep,
)

logger = logging.getLogger(__name__)


def build_steps(options: RunOptions) -> List[Step]:
    return [
        XcodeCLTStep(options),
        HomebrewStep(options),
        BrewUpdateStep(options),
        BundleBootstrapStep(options),
        BundleFullStep(options),
        GnuToolsStep(options),
        ZshrcSourcingStep(options),
        OhMyZshStep(options),
        MiseActivationStep(options),
        MiseInstallStep(options),
        DotfilesStep(options),
        GitIdentityStep(options),
        GitSigningStep(options),
        MacosDefaultsStep(options),
        AwsSamlStep(options),
        VSCodeExtensionsStep(options),
    ]


def build_context(
    options: RunOptions,
    config: SetupConfig,
    *,
    state: Dict[str, Any],
    runner: Optional[Runner] = None,
    which: Optional[Which] = None,
    brew_prefixes: Sequence[str] = PREFIXES,
    executor: Optional[Executor] = None,
) -> SetupContext:
    which = which or shutil.which
    executor = executor or Executor(preview=options.preview, runner=runner)

    brew = Homebrew(executor, which=which, prefixes=brew_prefixes, cache_dir=config.homebrew_cache_dir)
    # A brew installed by an earlier run may not be on this process's PATH yet.
    brew.activate()

    def gate_which(binary: str) -> Optional[str]:
        found = which(binary)
        # In preview, count what an earlier previewed bundle install would provide.
        if found is None and options.preview and binary in brew.forecast:
            return f"{brew.default_prefix()}/bin/{binary}"
        return found

    auth = AuthGate(GitHubAuth(executor, which=gate_which), interactive=options.interactive)
    gates = {
        auth.name: auth,
        "tool:git": ToolGate("git", hint="Install git (bootstrap Brewfile or Xcode CLT) and re-run", which=gate_which),
        "tool:mise": ToolGate("mise", hint="Install mise (brew install mise) and re-run", which=gate_which),
        "tool:pwsh": ToolGate(
            "pwsh", hint="Install PowerShell (brew install --cask powershell) and re-run", which=gate_which
        ),
        "tool:code": ToolGate(
            "code", hint="Install VS Code and put the 'code' command on PATH, then re-run", which=gate_which
        ),
        "vscode:launched": PathGate(
            "vscode:launched",
            user_data_dir(config.home),
            hint="Launch VS Code once (to approve it in Gatekeeper), then re-run",
        ),
    }

    return SetupContext(
        options=options,
        config=config,
        executor=executor,
        fragments=FragmentManager(config.fragment_dir, config.zshrc, executor=executor, home=config.home),
        gates=gates,
        state=state,
        auth=auth,
        brew=brew,
        git=Git(executor),
        prefs=PreferenceStore(executor),
        vscode=VSCode(executor),
        xcode=CommandLineTools(executor),
        defaults_manifest=load_defaults_manifest(config.defaults_manifest),
        vscode_extensions=load_vscode_extensions(config.vscode_extensions_manifest),
    )


def log_summary(report: RunReport, *, elapsed_s: float) -> None:
    logger.info("========== Summary ==========")
    for line in report.summary_lines():
        logger.info("%s", line)
    logger.info("Completed in %ds", int(elapsed_s))

    for r in report.results:
        if r.outcome in (Outcome.FAILED, Outcome.SKIPPED_DEPENDENCY_UNMET) and r.remediation:
            logger.warning("%s: %s", r.step_id, r.remediation)

    if report.preview:
        logger.info("Dry-run complete. No changes were made.")
    elif report.aborted:
        logger.error("Setup aborted. Fix the failure above and re-run mac-setup (completed steps will be skipped).")
    else:
        logger.info("Restart your terminal or run: source ~/.zshrc")


def run(
    options: RunOptions,
    config: SetupConfig,
    *,
    ctx: SetupContext,
    steps: Optional[List[Step]] = None,
) -> RunReport:
    """Run every step and persist the report (execute mode only)."""

    if options.preview:
        logger.info("Running in preview mode: nothing will be changed")

    started = time.monotonic()
    report = run_pipeline(steps=steps if steps is not None else build_steps(options), ctx=ctx)
    log_summary(report, elapsed_s=time.monotonic() - started)

    if not options.preview:
        record_run(ctx.state, report.to_dict())
        save_state(config.state_path, ctx.state)
    return report


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="mac-setup", description="Provision a macOS developer workstation")
    p.add_argument("--dry-run", "--preview", dest="preview", action="store_true", help="Show what would change")
    p.add_argument("--verbose", action="store_true", help="Log command output (DEBUG)")
    p.add_argument("--non-interactive", action="store_true", help="Never prompt, even on a TTY")
    p.add_argument("--setup-dir", default=None, help="Provisioning checkout (Brewfiles, dotfiles/); default: cwd")
    p.add_argument("--config", default=None, help="Path to mac-setup.yaml")
    p.add_argument("--state", default=None, help="Path to state file (json|yaml)")
    p.add_argument("--log", default=None, help="Path to log file")
    for phase, help_text in PHASES.items():
        p.add_argument(f"--no-{phase.replace('_', '-')}", dest=f"no_{phase}", action="store_true", help=help_text)
    return p


def options_from_args(args: argparse.Namespace, *, interactive: Optional[bool] = None) -> RunOptions:
    if interactive is None:
        interactive = is_interactive()
    return RunOptions.create(
        disabled=[phase for phase in PHASES if getattr(args, f"no_{phase}")],
        preview=args.preview,
        verbose=args.verbose,
        interactive=interactive and not args.non_interactive,
    )


def _with_overrides(config: SetupConfig, args: argparse.Namespace) -> SetupConfig:
    raw = dict(config.raw)
    if args.state:
        raw["state_path"] = str(Path(args.state).expanduser().resolve())
    if args.log:
        raw["log_path"] = str(Path(args.log).expanduser().resolve())
    return SetupConfig(raw=raw, setup_dir=config.setup_dir, home=config.home, env=config.env)


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    options = options_from_args(args)
    level = logging.DEBUG if options.verbose else logging.INFO

    try:
        config = _with_overrides(load_setup_config(args.config, setup_dir=args.setup_dir), args)
    except (FileNotFoundError, ValueError) as e:
        configure_logging(str(default_paths().log_default), level=level)
        logger.error("Cannot load setup config: %s", e)
        return 2

    configure_logging(log_path=str(config.log_path), level=level)

    try:
        check_platform()
        check_not_root()
        state = ensure_defaults(load_state(config.state_path))
        ctx = build_context(options, config, state=state)

        if options.preview or shutil.which("sudo") is None:
            report = run(options, config, ctx=ctx)
        else:
            logger.info("Requesting sudo (needed for system settings)")
            with SudoKeepAlive():
                report = run(options, config, ctx=ctx)
    except PreconditionError as e:
        logger.error("%s", e)
        return 2
    except ValueError as e:
        logger.error("Invalid state or manifest: %s", e)
        return 2

    return report.exit_code
