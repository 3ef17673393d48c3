from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from .lib.auth import AuthGate
from .lib.backup import content_digest
from .lib.brew import Homebrew
from .lib.command import Executor
from .lib.defaults import DefaultsManifest, PreferenceStore
from .lib.fragments import FragmentManager
from .lib.git import Git
from .lib.vscode import VSCode
from .lib.xcode import CommandLineTools
from .options import RunOptions
from .pipeline import Gate
from .setup_config import SetupConfig
from .state_store import managed_file_digest, record_managed_file


@dataclass(frozen=True)
class SetupContext:
    """Everything a step needs, built once per run."""

    options: RunOptions
    config: SetupConfig
    executor: Executor
    fragments: FragmentManager
    gates: Mapping[str, Gate]
    state: Dict[str, Any]
    auth: AuthGate
    brew: Homebrew
    git: Git
    prefs: PreferenceStore
    vscode: VSCode
    xcode: CommandLineTools
    defaults_manifest: DefaultsManifest
    vscode_extensions: List[str]

    @property
    def home(self) -> Path:
        return self.config.home

    def managed_digest(self, path: Path) -> Optional[str]:
        return managed_file_digest(self.state, str(path))

    def remember_managed(self, path: Path, source: Path) -> None:
        """Record that ``path`` now holds the content of ``source``."""
        if self.options.preview:
            return
        record_managed_file(self.state, str(path), content_digest(source))
