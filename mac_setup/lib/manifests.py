from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .defaults import DefaultsManifest, parse_defaults_manifest


def _package_root() -> Path:
    # mac_setup/lib/manifests.py -> mac_setup
    return Path(__file__).resolve().parents[1]


def load_yaml_file(path: Path) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"{path} is not valid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Manifest must be a mapping/dict: {path}")
    return data


def load_manifest(name: str, override: Optional[Path] = None) -> Dict[str, Any]:
    """Load a bundled manifest (mac_setup/manifests/<name>.yaml) or a user override."""
    return load_yaml_file(override or _package_root() / "manifests" / f"{name}.yaml")


def load_defaults_manifest(override: Optional[Path] = None) -> DefaultsManifest:
    return parse_defaults_manifest(load_manifest("macos_defaults", override))


def load_vscode_extensions(override: Optional[Path] = None) -> List[str]:
    raw = load_manifest("vscode_extensions", override)
    extensions = raw.get("extensions") or []
    if not isinstance(extensions, list):
        raise ValueError("vscode_extensions manifest: extensions must be a list")
    return [str(e).strip() for e in extensions if str(e).strip()]
