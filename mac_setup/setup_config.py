from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from .lib.env import Paths
from .lib.manifests import load_yaml_file

CONFIG_FILENAME = "mac-setup.yaml"

SAML_REPO_URL = "https://github.com/LEGO/dope-user-support"
SAML_DOC_URL = "https://github.com/LEGO/dope-user-support/blob/main/docs/saml2aws.md"


@dataclass(frozen=True)
class SamlHelperConfig:
    repo_url: str
    clone_dir: Path
    scripts: List[str]
    doc_url: str
    config_path: Path


@dataclass(frozen=True)
class SetupConfig:
    """Typed view over the optional ``mac-setup.yaml``.

    Relative paths resolve against ``setup_dir`` (the provisioning checkout);
    ``~/`` paths against ``home``.
    """

    raw: Dict[str, Any]
    setup_dir: Path
    home: Path
    env: Mapping[str, str] = field(default_factory=dict)

    def _section(self, name: str) -> Dict[str, Any]:
        return self.raw.get(name) or {}

    def _path(self, value: str, *, base: Optional[Path] = None) -> Path:
        if value == "~":
            return self.home
        if value.startswith("~/"):
            return self.home / value[2:]
        p = Path(value)
        return p if p.is_absolute() else (base or self.setup_dir) / p

    @property
    def brewfile_bootstrap(self) -> Path:
        return self._path(str(self._section("brewfiles").get("bootstrap") or "Brewfile.bootstrap"))

    @property
    def brewfile_full_candidates(self) -> List[Path]:
        names = self._section("brewfiles").get("full") or ["Brewfile.full", "Brewfile"]
        if isinstance(names, str):
            names = [names]
        return [self._path(str(n)) for n in names]

    @property
    def dotfiles_dir(self) -> Path:
        return self._path(str(self.raw.get("dotfiles_dir") or "dotfiles"))

    @property
    def fragment_dir(self) -> Path:
        return self._path(str(self._section("shell").get("fragment_dir") or "~/.zshrc.d"))

    @property
    def zshrc(self) -> Path:
        return self._path(str(self._section("shell").get("zshrc") or "~/.zshrc"))

    @property
    def zprofile(self) -> Path:
        return self._path(str(self._section("shell").get("zprofile") or "~/.zprofile"))

    @property
    def homebrew_cache_dir(self) -> Path:
        return self._path(str(self._section("homebrew").get("cache_dir") or "~/Library/Caches/Homebrew"))

    @property
    def catalog_max_age_hours(self) -> float:
        return float(self._section("homebrew").get("catalog_max_age_hours", 24))

    @property
    def clt_timeout_s(self) -> float:
        return float(self._section("xcode").get("timeout_s", 600))

    @property
    def clt_poll_s(self) -> float:
        return float(self._section("xcode").get("poll_s", 5))

    @property
    def defaults_manifest(self) -> Optional[Path]:
        value = self._section("manifests").get("macos_defaults")
        return self._path(str(value)) if value else None

    @property
    def vscode_extensions_manifest(self) -> Optional[Path]:
        value = self._section("manifests").get("vscode_extensions")
        return self._path(str(value)) if value else None

    @property
    def saml(self) -> SamlHelperConfig:
        s = self._section("aws_saml")
        return SamlHelperConfig(
            repo_url=str(s.get("repo_url") or SAML_REPO_URL),
            clone_dir=self._path(str(s.get("clone_dir") or "~/.mac-setup/dope-user-support")),
            scripts=[str(x) for x in (s.get("scripts") or ["saml/create-cache.ps1", "saml/configure-saml2aws.ps1"])],
            doc_url=str(s.get("doc_url") or SAML_DOC_URL),
            config_path=self._path(str(s.get("config_path") or "~/.saml2aws")),
        )

    def _git(self, key: str, env_var: str) -> Optional[str]:
        value = str(self._section("git").get(key) or self.env.get(env_var) or "").strip()
        return value or None

    @property
    def git_user_name(self) -> Optional[str]:
        return self._git("user_name", "GIT_USER_NAME")

    @property
    def git_user_email(self) -> Optional[str]:
        return self._git("user_email", "GIT_USER_EMAIL")

    @property
    def git_signing_key(self) -> Optional[str]:
        return self._git("signing_key", "GIT_SSH_SIGNING_KEY")

    @property
    def state_path(self) -> Path:
        value = self.raw.get("state_path")
        return self._path(str(value)) if value else Paths(home=self.home).state_default

    @property
    def log_path(self) -> Path:
        value = self.raw.get("log_path")
        return self._path(str(value)) if value else Paths(home=self.home).log_default


def load_setup_config(
    path: Optional[str] = None,
    *,
    setup_dir: Optional[str] = None,
    home: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> SetupConfig:
    """Load ``mac-setup.yaml``.

    An explicit ``path`` must exist; otherwise ``<setup_dir>/mac-setup.yaml``
    is used when present and built-in defaults apply when it is not.
    """

    base = Path(setup_dir).expanduser().resolve() if setup_dir else Path.cwd()
    raw: Dict[str, Any] = {}

    if path is not None:
        p = Path(path).expanduser()
        if not p.exists():
            raise FileNotFoundError(path)
        if p.suffix.lower() not in {".yaml", ".yml"}:
            raise ValueError("setup config must be YAML")
        raw = load_yaml_file(p)
    elif (base / CONFIG_FILENAME).is_file():
        raw = load_yaml_file(base / CONFIG_FILENAME)

    return SetupConfig(
        raw=raw,
        setup_dir=base,
        home=home or Path.home(),
        env=dict(os.environ if env is None else env),
    )
