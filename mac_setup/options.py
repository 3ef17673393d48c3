from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Optional, Tuple

# Phase name -> CLI help. Each phase gets a --no-<phase> flag.
PHASES: Dict[str, str] = {
    "brew_update": "Skip 'brew update'",
    "bundle": "Skip all Brewfile bundle phases",
    "internal_bundle": "Skip internal/full Brewfile phase",
    "gnu": "Skip GNU tools PATH precedence setup",
    "ohmyzsh": "Skip Oh My Zsh installation",
    "mise": "Skip mise activation/install & tool installation",
    "mise_install": "Activate mise but skip 'mise install'",
    "dotfiles": "Skip generic dotfiles/ provisioning (.gitconfig follows --no-git-config)",
    "git_config": "Skip git config provisioning",
    "defaults": "Skip applying macOS defaults",
    "aws_saml": "Skip AWS SAML role (saml2aws) helper configuration",
    "vscode": "Skip VS Code extension installation",
}

# Disabling a group disables its members too.
IMPLIED: Dict[str, Tuple[str, ...]] = {
    "bundle": ("internal_bundle",),
    "mise": ("mise_install",),
}


@dataclass(frozen=True)
class RunOptions:
    preview: bool = False
    verbose: bool = False
    interactive: bool = True
    disabled: FrozenSet[str] = frozenset()

    @classmethod
    def create(
        cls,
        *,
        disabled: Iterable[str] = (),
        preview: bool = False,
        verbose: bool = False,
        interactive: bool = True,
    ) -> "RunOptions":
        resolved = set()
        for phase in disabled:
            if phase not in PHASES:
                raise ValueError(f"Unknown phase: {phase}")
            resolved.add(phase)
            resolved.update(IMPLIED.get(phase, ()))
        return cls(
            preview=preview,
            verbose=verbose,
            interactive=interactive,
            disabled=frozenset(resolved),
        )

    def is_enabled(self, phase: Optional[str]) -> bool:
        """Steps without a phase cannot be switched off."""
        return phase is None or phase not in self.disabled
