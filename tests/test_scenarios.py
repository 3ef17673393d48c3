from __future__ import annotations

import json

from conftest import provision, snapshot

from mac_setup.main import build_steps, run
from mac_setup.options import RunOptions
from mac_setup.pipeline import Outcome
from mac_setup.setup_config import SetupConfig


def _run(make_ctx, config, options, state=None):
    ctx = make_ctx(options, state=state)
    return ctx, run(options, config, ctx=ctx)


def _load_state(config):
    return json.loads(config.state_path.read_text())


def test_clean_machine_non_interactive(machine, config, make_ctx):
    opts = RunOptions.create(interactive=False)
    _, report = _run(make_ctx, config, opts)

    assert report.exit_code == 0
    assert report.outcome_of("xcode-clt") is Outcome.APPLIED
    assert report.outcome_of("bundle-bootstrap") is Outcome.APPLIED
    assert report.outcome_of("bundle-full") is Outcome.SKIPPED_DEPENDENCY_UNMET
    assert report.outcome_of("aws-saml") is Outcome.SKIPPED_DEPENDENCY_UNMET
    assert report.outcome_of("vscode-extensions") is Outcome.SKIPPED_DEPENDENCY_UNMET
    assert report.outcome_of("git-identity") is Outcome.APPLIED
    assert not machine.ran("gh", "auth", "login")

    home = config.home
    assert (home / ".zshrc.d/00-homebrew.zsh").is_file()
    assert (home / ".zshrc.d/10-gnu-tools.zsh").is_file()
    assert (home / ".zshrc.d/20-mise.zsh").is_file()
    assert (home / ".tmux.conf").read_text() == "set -g mouse on\n"
    assert (home / ".config/nvim/init.lua").is_file()
    assert not (home / ".README.md").exists()
    assert machine.git_config["user.name"] == "Ada Lovelace"
    assert machine.git_config["gpg.format"] == "ssh"

    saved = _load_state(config)
    assert saved["runs"]["last"]["aborted"] is False
    assert str(home / ".tmux.conf") in saved["managed_files"]


def test_second_run_changes_nothing(machine, config, make_ctx):
    opts = RunOptions.create(interactive=False)
    _run(make_ctx, config, opts)
    before = snapshot(config.home)
    calls_before = len(machine.calls)

    ctx, report = _run(make_ctx, config, opts, state=_load_state(config))

    changed = [r.step_id for r in report.results if r.outcome in (Outcome.APPLIED, Outcome.FAILED)]
    assert changed == []
    assert ctx.executor.planned == []
    after = snapshot(config.home)
    after.pop(".local/state/mac-setup/state.json")
    before.pop(".local/state/mac-setup/state.json")
    assert after == before
    assert not any(c[:2] == ["sudo", "defaults"] for c in machine.calls[calls_before:])


def test_full_run_with_auth_then_idempotent(machine, config, make_ctx):
    machine.gh_authenticated = True
    (config.home / "Library/Application Support/Code").mkdir(parents=True)
    opts = RunOptions.create(interactive=False)

    _, first = _run(make_ctx, config, opts)
    assert first.steps_with(Outcome.FAILED) == []
    assert first.steps_with(Outcome.SKIPPED_DEPENDENCY_UNMET) == []
    assert first.outcome_of("bundle-full") is Outcome.APPLIED
    full_env = [e for c, e in zip(machine.calls, machine.envs) if "--file=" + str(config.setup_dir / "Brewfile.full") in c]
    assert any(e and e.get("HOMEBREW_GITHUB_API_TOKEN") == "gho_faketoken" for e in full_env)
    assert (config.home / ".saml2aws").exists()

    _, second = _run(make_ctx, config, opts, state=_load_state(config))
    assert {r.outcome for r in second.results} == {Outcome.ALREADY_SATISFIED}


def test_preview_on_provisioned_machine_modifies_nothing(machine, config, make_ctx):
    machine.gh_authenticated = True
    (config.home / "Library/Application Support/Code").mkdir(parents=True)
    _run(make_ctx, config, RunOptions.create(interactive=False))
    before = snapshot(config.home)
    calls_before = len(machine.calls)

    ctx, report = _run(make_ctx, config, RunOptions.create(preview=True, interactive=False), state=_load_state(config))

    assert report.preview
    assert ctx.executor.planned == []
    assert snapshot(config.home) == before
    assert {r.outcome for r in report.results} == {Outcome.ALREADY_SATISFIED}
    # nothing but read-only queries reached the machine
    assert not any(c[:1] == ["sudo"] for c in machine.calls[calls_before:])


def test_preview_forecasts_execute_when_tools_present(machine, config, make_ctx):
    provision(machine)
    (config.home / "Library/Application Support/Code").mkdir(parents=True)
    before = snapshot(config.home)

    ctx, preview = _run(make_ctx, config, RunOptions.create(preview=True, interactive=False))
    assert snapshot(config.home) == before
    assert not config.state_path.exists()
    assert machine.packages == set()
    assert machine.git_config == {}
    assert any(p.startswith("copy ") for p in ctx.executor.planned)

    _, execute = _run(make_ctx, config, RunOptions.create(interactive=False))
    assert [(r.step_id, r.outcome) for r in preview.results] == [(r.step_id, r.outcome) for r in execute.results]


def test_preview_on_clean_machine_forecasts_execute(machine, config, make_ctx):
    ctx, preview = _run(make_ctx, config, RunOptions.create(preview=True, interactive=False))
    assert machine.clt_installed is False
    assert list(config.home.iterdir()) == [config.home / ".ssh"]
    assert preview.exit_code == 0

    # tools the bootstrap Brewfile would install count as present in preview
    assert preview.outcome_of("mise-install") is Outcome.APPLIED
    assert preview.outcome_of("git-identity") is Outcome.APPLIED
    assert machine.git_config == {}

    _, execute = _run(make_ctx, config, RunOptions.create(interactive=False))
    assert [(r.step_id, r.outcome) for r in preview.results] == [(r.step_id, r.outcome) for r in execute.results]


def test_fatal_clt_failure_aborts(machine, home, setup_dir, make_ctx):
    machine.clt_installs_on_request = False
    cfg = SetupConfig(raw={"xcode": {"timeout_s": 0, "poll_s": 0}}, setup_dir=setup_dir, home=home, env={})
    opts = RunOptions.create(interactive=False)
    ctx = make_ctx(opts, cfg=cfg)

    report = run(opts, cfg, ctx=ctx)

    assert report.aborted
    assert report.exit_code == 1
    assert report.outcome_of("xcode-clt") is Outcome.FAILED
    assert report.not_run == tuple(s.step_id for s in build_steps(opts)[1:])
    assert "xcode-select --install" in report.results[0].remediation
    assert not machine.ran("/bin/bash")


def test_disabled_phases_are_reported(machine, config, make_ctx):
    opts = RunOptions.create(disabled=["bundle", "defaults", "mise"], interactive=False)
    _, report = _run(make_ctx, config, opts)

    for step_id in ("bundle-bootstrap", "bundle-full", "macos-defaults", "mise-activation", "mise-install"):
        assert report.outcome_of(step_id) is Outcome.SKIPPED_BY_FLAG
    assert not machine.ran("defaults", "write")
    assert not (config.home / ".zshrc.d/20-mise.zsh").exists()


def test_foreign_dotfile_backed_up_once(machine, config, make_ctx):
    target = config.home / ".tmux.conf"
    target.write_text("mine\n")
    opts = RunOptions.create(disabled=["defaults"], interactive=False)

    _run(make_ctx, config, opts)
    backup = config.home / ".tmux.conf.backup.mac-setup"
    assert backup.read_text() == "mine\n"

    (config.setup_dir / "dotfiles/tmux.conf").write_text("set -g mouse off\n")
    _, report = _run(make_ctx, config, opts, state=_load_state(config))
    assert report.outcome_of("dotfiles") is Outcome.APPLIED
    assert backup.read_text() == "mine\n"
    assert target.read_text() == "set -g mouse off\n"


def test_git_settings_and_shared_gitconfig_stay_put(machine, config, make_ctx):
    gitconfig = config.home / ".gitconfig"
    gitconfig.write_text("[core]\n\teditor = vim\n")
    opts = RunOptions.create(disabled=["defaults"], interactive=False)

    _, first = _run(make_ctx, config, opts)
    assert first.outcome_of("dotfiles") is Outcome.APPLIED
    assert first.outcome_of("git-identity") is Outcome.APPLIED
    assert first.outcome_of("git-signing") is Outcome.APPLIED
    assert "name = Ada Lovelace" in gitconfig.read_text()
    after_first = gitconfig.read_text()

    _, second = _run(make_ctx, config, opts, state=_load_state(config))
    assert second.steps_with(Outcome.APPLIED) == []
    assert gitconfig.read_text() == after_first
    assert (config.home / ".gitconfig.backup.mac-setup").read_text() == "[core]\n\teditor = vim\n"

    settings = machine.git_config
    assert settings["core.editor"] == "vim"
    assert settings["pull.rebase"] == "true"
    assert settings["user.name"] == "Ada Lovelace"
    assert settings["gpg.format"] == "ssh"
