from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

STATE_VERSION = 1


def _is_yaml(path: Path) -> bool:
    # Anything that is not .yaml/.yml is JSON.
    return path.suffix.lower() in {".yaml", ".yml"}


def load_state(path: str | Path) -> Dict[str, Any]:
    """Read the state file; a missing file is an empty state."""
    p = Path(path)
    if not p.exists():
        return {}

    text = p.read_text(encoding="utf-8")
    try:
        data = (yaml.safe_load(text) if _is_yaml(p) else json.loads(text)) or {}
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ValueError(f"State file {p} is unreadable ({e}); move it aside to start fresh") from e

    if not isinstance(data, dict):
        raise ValueError(f"State file {p} must hold a mapping, got {type(data).__name__}")
    return data


def save_state(path: str | Path, state: Dict[str, Any]) -> None:
    """Write the state file in one step, so an interrupted run never truncates it."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    if _is_yaml(p):
        text = yaml.safe_dump(state, sort_keys=False)
    else:
        text = json.dumps(state, indent=2, sort_keys=True) + "\n"

    tmp = p.with_name(p.name + ".tmp")
    tmp.write_text(text, encoding="utf-8")
    os.replace(tmp, p)
    logger.debug("Saved state to %s", p)


def ensure_defaults(state: Dict[str, Any]) -> Dict[str, Any]:
    """Fill required keys (without overriding existing values)."""

    state.setdefault("version", STATE_VERSION)
    # target path -> sha256 of the content this tool last wrote there
    state.setdefault("managed_files", {})
    state.setdefault("runs", {})
    return state


def record_managed_file(state: Dict[str, Any], path: str, digest: str) -> None:
    state.setdefault("managed_files", {})[path] = digest


def managed_file_digest(state: Dict[str, Any], path: str) -> Optional[str]:
    return (state.get("managed_files") or {}).get(path)


def record_run(state: Dict[str, Any], report: Dict[str, Any]) -> None:
    state.setdefault("runs", {})["last"] = report
