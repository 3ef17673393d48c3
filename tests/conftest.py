from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

import pytest

from mac_setup.lib.brew import BREWFILE_ENTRY, PROVIDES
from mac_setup.lib.command import CmdResult, Executor
from mac_setup.main import build_context
from mac_setup.options import RunOptions
from mac_setup.setup_config import SetupConfig
from mac_setup.state_store import ensure_defaults

FAKE_BIN = "/fake/bin"


def _brewfile_packages(path: Path) -> List[str]:
    return [m.group(1) for m in map(BREWFILE_ENTRY.match, path.read_text().splitlines()) if m]


class FakeMachine:
    """A scripted stand-in for the commands mac-setup runs.

    Mutating commands change the fake state so that idempotency guards
    observe their effect on the next query.
    """

    def __init__(self, home: Path) -> None:
        self.home = home
        self.tools: Set[str] = {"sudo", "defaults", "nvram", "osascript", "killall", "xcode-select", "curl"}
        self.packages: Set[str] = set()
        self.clt_installed = False
        self.clt_installs_on_request = True
        self.gh_authenticated = False
        self.gh_login_succeeds = True
        self.mise_tools_installed = False
        self.defaults: Dict[Tuple[str, str], str] = {}
        self.nvram: Dict[str, str] = {}
        self.firewall: Dict[str, bool] = {}
        self.extensions: Set[str] = set()
        self.failing_extensions: Set[str] = set()
        self.repo_files: Dict[str, List[str]] = {}
        self.revisions: Dict[str, str] = {}
        self.ff_pull_fails = False
        self.calls: List[List[str]] = []
        self.envs: List[Optional[Dict[str, str]]] = []

    # -- helpers used by tests ---------------------------------------------

    def which(self, name: str) -> Optional[str]:
        return f"{FAKE_BIN}/{name}" if name in self.tools else None

    def install_package(self, name: str) -> None:
        self.packages.add(name)
        self.tools.add(PROVIDES.get(name, name))

    def ran(self, *prefix: str) -> bool:
        n = len(prefix)
        return any(call[:n] == list(prefix) for call in self.calls)

    # -- global git config, stored in ~/.gitconfig as git does -------------

    @property
    def gitconfig(self) -> Path:
        return self.home / ".gitconfig"

    def _read_git_config(self, path: Path, seen: Tuple[Path, ...] = ()) -> Dict[str, str]:
        values: Dict[str, str] = {}
        if not path.is_file() or path in seen:
            return values
        section = ""
        for raw in path.read_text().splitlines():
            line = raw.strip()
            if not line or line.startswith(("#", ";")):
                continue
            if line.startswith("["):
                section = line.strip("[]").strip().lower()
                continue
            key, _, value = line.partition("=")
            key, value = key.strip(), value.strip()
            if section == "include" and key == "path":
                included = Path(value.replace("~", str(self.home), 1))
                values.update(self._read_git_config(included, (*seen, path)))
            else:
                values[f"{section}.{key}"] = value
        return values

    @property
    def git_config(self) -> Dict[str, str]:
        """Effective global config, includes resolved, last value wins."""
        return self._read_git_config(self.gitconfig)

    def set_git_config(self, key: str, value: str) -> None:
        section, _, name = key.rpartition(".")
        lines = self.gitconfig.read_text().splitlines() if self.gitconfig.is_file() else []
        out: List[str] = []
        current, done = "", False
        for line in lines:
            s = line.strip()
            if s.startswith("["):
                if current == section and not done:
                    out.append(f"\t{name} = {value}")
                    done = True
                current = s.strip("[]").strip().lower()
            elif current == section and s.partition("=")[0].strip() == name:
                if not done:
                    out.append(f"\t{name} = {value}")
                    done = True
                continue
            out.append(line)
        if not done:
            if current != section:
                out.append(f"[{section}]")
            out.append(f"\t{name} = {value}")
        self.gitconfig.write_text("\n".join(out) + "\n")

    # -- runner -------------------------------------------------------------

    def __call__(self, argv, *, env=None, cwd=None, input_text=None, interactive=False) -> CmdResult:
        argv = list(argv)
        self.calls.append(argv)
        self.envs.append(dict(env) if env else None)

        args = argv
        if args and args[0] == "sudo":
            args = args[1:]
            if not args or args[0] in {"-v", "-n"}:
                return self._ok(argv)

        cmd = os.path.basename(args[0])
        if cmd != "bash" and cmd != "sh" and cmd not in self.tools and cmd != "socketfilterfw":
            return CmdResult(argv=argv, returncode=127, stdout="", stderr=f"{cmd}: command not found")

        handler = getattr(self, f"_cmd_{cmd.replace('-', '_')}", None)
        if handler is None:
            return self._ok(argv)
        return handler(argv, args[1:])

    @staticmethod
    def _ok(argv, stdout: str = "") -> CmdResult:
        return CmdResult(argv=argv, returncode=0, stdout=stdout, stderr="")

    @staticmethod
    def _fail(argv, stderr: str = "", code: int = 1) -> CmdResult:
        return CmdResult(argv=argv, returncode=code, stdout="", stderr=stderr)

    def _cmd_xcode_select(self, argv, rest):
        if rest == ["-p"]:
            return self._ok(argv, "/Library/Developer/CommandLineTools\n") if self.clt_installed else self._fail(argv)
        if rest == ["--install"] and self.clt_installs_on_request:
            self.clt_installed = True
        return self._ok(argv)

    def _cmd_bash(self, argv, rest):
        if "Homebrew/install" in " ".join(rest):
            self.tools.add("brew")
        return self._ok(argv)

    def _cmd_sh(self, argv, rest):
        if "ohmyzsh" in " ".join(rest):
            (self.home / ".oh-my-zsh").mkdir(parents=True, exist_ok=True)
        return self._ok(argv)

    def _cmd_brew(self, argv, rest):
        if rest == ["--version"]:
            return self._ok(argv, "Homebrew 4.3.0\n")
        if rest == ["update"]:
            marker = self.home / "Library/Caches/Homebrew/api/formula.jws.json"
            marker.parent.mkdir(parents=True, exist_ok=True)
            marker.write_text("{}")
            return self._ok(argv)
        if rest[:1] == ["bundle"]:
            brewfile = Path(next(a for a in rest if a.startswith("--file=")).split("=", 1)[1])
            wanted = _brewfile_packages(brewfile)
            if rest[1] == "check":
                return self._ok(argv) if set(wanted) <= self.packages else self._fail(argv)
            for name in wanted:
                self.install_package(name)
        return self._ok(argv)

    def _cmd_gh(self, argv, rest):
        if rest == ["auth", "status"]:
            return self._ok(argv) if self.gh_authenticated else self._fail(argv, "not logged in")
        if rest[:2] == ["auth", "login"]:
            self.gh_authenticated = self.gh_login_succeeds
            return self._ok(argv) if self.gh_authenticated else self._fail(argv)
        if rest == ["auth", "token"]:
            return self._ok(argv, "gho_faketoken\n") if self.gh_authenticated else self._fail(argv)
        return self._ok(argv)

    def _cmd_mise(self, argv, rest):
        if rest == ["ls", "--missing"]:
            return self._ok(argv, "" if self.mise_tools_installed else "node  20.11.0  (missing)\n")
        if rest == ["install"]:
            self.mise_tools_installed = True
        return self._ok(argv)

    def _cmd_git(self, argv, rest):
        if rest[:1] == ["-C"]:
            rest = rest[2:]
            if rest[0] == "rev-parse":
                rev = self.revisions.get(rest[1])
                return self._ok(argv, rev + "\n") if rev else self._fail(argv, "no upstream")
            if rest == ["pull", "--ff-only"] and self.ff_pull_fails:
                return self._fail(argv, "Not possible to fast-forward")
            return self._ok(argv)
        if rest[:2] == ["config", "--global"]:
            if rest[2] == "--get":
                value = self.git_config.get(rest[3])
                return self._ok(argv, value + "\n") if value is not None else self._fail(argv)
            self.set_git_config(rest[2], rest[3])
            return self._ok(argv)
        if rest[:1] == ["clone"]:
            url, dest = rest[1], Path(rest[2])
            (dest / ".git").mkdir(parents=True, exist_ok=True)
            for rel in self.repo_files.get(url, []):
                (dest / rel).parent.mkdir(parents=True, exist_ok=True)
                (dest / rel).write_text("# script\n")
            return self._ok(argv)
        return self._ok(argv)

    def _cmd_pwsh(self, argv, rest):
        script = rest[-1]
        if script.endswith("configure-saml2aws.ps1"):
            (self.home / ".saml2aws").write_text("[default]\n")
        return self._ok(argv)

    def _cmd_code(self, argv, rest):
        if rest == ["--list-extensions"]:
            return self._ok(argv, "".join(f"{e}\n" for e in sorted(self.extensions)))
        if rest[:1] == ["--install-extension"]:
            ext = rest[1]
            if ext in self.failing_extensions:
                return self._fail(argv, f"Failed Installing Extensions: {ext}")
            self.extensions.add(ext)
        return self._ok(argv)

    def _cmd_defaults(self, argv, rest):
        verb, domain, key = rest[0], rest[1], rest[2]
        if verb == "read":
            value = self.defaults.get((domain, key))
            return self._ok(argv, value + "\n") if value is not None else self._fail(argv, "does not exist")
        if verb == "delete":
            self.defaults.pop((domain, key), None)
            return self._ok(argv)
        vtype, values = rest[3], rest[4:]
        if vtype == "-bool":
            stored = "1" if values[0] == "true" else "0"
        elif vtype == "-array":
            stored = "(\n" + ",\n".join(f"    {v}" for v in values) + "\n)"
        else:
            stored = values[0]
        self.defaults[(domain, key)] = stored
        return self._ok(argv)

    def _cmd_nvram(self, argv, rest):
        arg = rest[0]
        if "=" in arg:
            key, _, value = arg.partition("=")
            self.nvram[key] = value
            return self._ok(argv)
        if arg not in self.nvram:
            return self._fail(argv, f"nvram: Error getting variable - '{arg}'")
        return self._ok(argv, f"{arg}\t{self.nvram[arg]}\n")

    def _cmd_socketfilterfw(self, argv, rest):
        flag = rest[0]
        if flag.startswith("--set"):
            self.firewall[flag[len("--set"):]] = rest[1] == "on"
            return self._ok(argv)
        on = self.firewall.get(flag[len("--get"):], False)
        return self._ok(argv, "Firewall is enabled. (State = 1)\n" if on else "Firewall is disabled. (State = 0)\n")


def provision(machine: FakeMachine) -> None:
    """Bring the fake to the state a successful full run leaves behind."""
    machine.clt_installed = True
    machine.tools.update({"brew", "git", "gh", "mise", "pwsh", "code"})
    machine.gh_authenticated = True
    machine.mise_tools_installed = True


@pytest.fixture(autouse=True)
def _reset_logging():
    # configure_logging() installs handlers on the root logger, which outlives a test.
    root = logging.getLogger()
    handlers = list(root.handlers)
    yield
    for h in root.handlers[:]:
        if h not in handlers:
            root.removeHandler(h)
            h.close()
    for attr in ("_mac_setup_file_handler", "_mac_setup_log_request"):
        if hasattr(root, attr):
            delattr(root, attr)


@pytest.fixture()
def home(tmp_path: Path) -> Path:
    h = tmp_path / "home"
    (h / ".ssh").mkdir(parents=True)
    (h / ".ssh/id_ed25519.pub").write_text("ssh-ed25519 AAAAfake user@host\n")
    return h


@pytest.fixture()
def setup_dir(tmp_path: Path) -> Path:
    d = tmp_path / "setup"
    (d / "dotfiles/config/nvim").mkdir(parents=True)
    (d / "Brewfile.bootstrap").write_text('brew "gh"\nbrew "git"\nbrew "mise"\nbrew "coreutils"\n')
    (d / "Brewfile.full").write_text('brew "saml2aws"\ncask "powershell"\ncask "visual-studio-code"\n')
    (d / "dotfiles/gitconfig").write_text("[pull]\n\trebase = true\n")
    (d / "dotfiles/tmux.conf").write_text("set -g mouse on\n")
    (d / "dotfiles/README.md").write_text("not a dotfile\n")
    (d / "dotfiles/config/nvim/init.lua").write_text("vim.o.number = true\n")
    return d


@pytest.fixture()
def machine(home: Path) -> FakeMachine:
    m = FakeMachine(home)
    m.repo_files["https://github.com/LEGO/dope-user-support"] = [
        "saml/create-cache.ps1",
        "saml/configure-saml2aws.ps1",
    ]
    return m


@pytest.fixture()
def config(home: Path, setup_dir: Path) -> SetupConfig:
    return SetupConfig(
        raw={"xcode": {"timeout_s": 5, "poll_s": 0}},
        setup_dir=setup_dir,
        home=home,
        env={"GIT_USER_NAME": "Ada Lovelace", "GIT_USER_EMAIL": "ada@example.com"},
    )


@pytest.fixture()
def make_ctx(machine: FakeMachine, config: SetupConfig):
    def _make(options: Optional[RunOptions] = None, *, state=None, cfg: Optional[SetupConfig] = None, answers=()):
        options = options or RunOptions.create(interactive=False)
        replies = list(answers)
        executor = Executor(
            preview=options.preview,
            runner=machine,
            sleep=lambda s: None,
            prompt=lambda q: replies.pop(0),
        )
        return build_context(
            options,
            cfg or config,
            state=ensure_defaults(state if state is not None else {}),
            which=machine.which,
            brew_prefixes=(),
            executor=executor,
        )

    return _make


def snapshot(root: Path) -> Dict[str, bytes]:
    """Every file under ``root`` with its content."""
    return {str(p.relative_to(root)): p.read_bytes() for p in sorted(root.rglob("*")) if p.is_file()}
