"""macOS preference store (``defaults``), nvram and application firewall.

Desired state is declared in a manifest (``manifests/macos_defaults.yaml``);
only entries that do not already hold are written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
from urllib.parse import quote

from .command import Executor

logger = logging.getLogger(__name__)

FIREWALL = "/usr/libexec/ApplicationFirewall/socketfilterfw"
VALUE_TYPES = {"bool", "int", "float", "string", "array"}


def _parse_array(text: str) -> List[str]:
    # `defaults read` prints arrays as "(\n    4,\n    \"x\"\n)"
    inner = text.strip()
    if inner.startswith("(") and inner.endswith(")"):
        inner = inner[1:-1]
    items = []
    for part in inner.replace("\n", ",").split(","):
        part = part.strip().strip('"')
        if part:
            items.append(part)
    return items


@dataclass(frozen=True)
class Preference:
    domain: str
    key: str
    type: str
    value: Any
    sudo: bool = False

    def write_args(self) -> List[str]:
        if self.type == "bool":
            return ["-bool", "true" if self.value else "false"]
        if self.type == "int":
            return ["-int", str(int(self.value))]
        if self.type == "float":
            return ["-float", str(float(self.value))]
        if self.type == "array":
            return ["-array", *[str(v) for v in self.value]]
        return ["-string", str(self.value)]

    def matches(self, current: str) -> bool:
        current = current.strip()
        try:
            if self.type == "bool":
                return current.lower() in ({"1", "true", "yes"} if self.value else {"0", "false", "no"})
            if self.type == "int":
                return int(current) == int(self.value)
            if self.type == "float":
                return float(current) == float(self.value)
        except ValueError:
            return False
        if self.type == "array":
            return _parse_array(current) == [str(v) for v in self.value]
        return current == str(self.value)

    def describe(self) -> str:
        return f"{self.domain} {self.key} = {self.value!r}"


@dataclass(frozen=True)
class Deletion:
    domain: str
    key: str

    def describe(self) -> str:
        return f"delete {self.domain} {self.key}"


@dataclass(frozen=True)
class NvramSetting:
    key: str
    value: str

    def describe(self) -> str:
        return f"nvram {self.key}={self.value!r}"


@dataclass(frozen=True)
class FirewallSetting:
    set_flag: str
    get_flag: str
    expect: Tuple[str, ...]

    def describe(self) -> str:
        return f"firewall {self.set_flag} on"


Change = Union[Preference, Deletion, NvramSetting, FirewallSetting]


@dataclass(frozen=True)
class DefaultsManifest:
    preferences: Tuple[Preference, ...] = ()
    deletions: Tuple[Deletion, ...] = ()
    nvram: Tuple[NvramSetting, ...] = ()
    firewall: Tuple[FirewallSetting, ...] = ()
    restart_apps: Tuple[str, ...] = ()

    def changes(self) -> List[Change]:
        return [*self.nvram, *self.preferences, *self.firewall, *self.deletions]


def _as_list(raw: Dict[str, Any], key: str) -> list:
    value = raw.get(key) or []
    if not isinstance(value, list):
        raise ValueError(f"defaults manifest: {key} must be a list")
    return value


def parse_defaults_manifest(raw: Dict[str, Any]) -> DefaultsManifest:
    prefs: List[Preference] = []
    for item in _as_list(raw, "preferences"):
        vtype = str(item.get("type", "string"))
        if vtype not in VALUE_TYPES:
            raise ValueError(f"defaults manifest: unknown type {vtype!r} for {item.get('key')}")
        if vtype == "array" and not isinstance(item.get("value"), list):
            raise ValueError(f"defaults manifest: array value for {item.get('key')} must be a list")
        prefs.append(
            Preference(
                domain=str(item["domain"]),
                key=str(item["key"]),
                type=vtype,
                value=item.get("value"),
                sudo=bool(item.get("sudo", False)),
            )
        )

    deletions = [Deletion(domain=str(i["domain"]), key=str(i["key"])) for i in _as_list(raw, "delete")]
    nvram = [NvramSetting(key=str(i["key"]), value=str(i["value"])) for i in _as_list(raw, "nvram")]
    firewall = [
        FirewallSetting(
            set_flag=str(i["set"]),
            get_flag=str(i["get"]),
            expect=tuple(str(e).lower() for e in (i.get("expect") or ["enabled"])),
        )
        for i in _as_list(raw, "firewall")
    ]
    restart = [str(a) for a in _as_list(raw, "restart_apps")]

    return DefaultsManifest(
        preferences=tuple(prefs),
        deletions=tuple(deletions),
        nvram=tuple(nvram),
        firewall=tuple(firewall),
        restart_apps=tuple(restart),
    )


class PreferenceStore:
    def __init__(self, executor: Executor) -> None:
        self.executor = executor

    @staticmethod
    def _sudo(argv: Sequence[str], sudo: bool) -> List[str]:
        return ["sudo", *argv] if sudo else list(argv)

    def read(self, domain: str, key: str) -> Optional[str]:
        r = self.executor.query(["defaults", "read", domain, key])
        if not r.ok:
            return None
        return r.stdout.strip()

    def write(self, pref: Preference) -> None:
        argv = ["defaults", "write", pref.domain, pref.key, *pref.write_args()]
        self.executor.run(self._sudo(argv, pref.sudo))

    def delete(self, domain: str, key: str) -> None:
        self.executor.run(["defaults", "delete", domain, key])

    def nvram_get(self, key: str) -> Optional[str]:
        r = self.executor.query(["nvram", key])
        if not r.ok:
            return None
        # "<key>\t<value>"
        _, _, value = r.stdout.rstrip("\n").partition("\t")
        return value

    def firewall_state(self, get_flag: str) -> str:
        return self.executor.query([FIREWALL, get_flag]).stdout.lower()

    def holds(self, change: Change) -> bool:
        if isinstance(change, Preference):
            current = self.read(change.domain, change.key)
            return current is not None and change.matches(current)
        if isinstance(change, Deletion):
            current = self.read(change.domain, change.key)
            return current is None or _parse_array(current) == []
        if isinstance(change, NvramSetting):
            current = self.nvram_get(change.key)
            return current is not None and current in {change.value, quote(change.value)}
        state = self.firewall_state(change.get_flag)
        # "disabled" contains "enabled"
        return any(e in state and f"dis{e}" not in state for e in change.expect)

    def apply(self, change: Change) -> None:
        if isinstance(change, Preference):
            self.write(change)
        elif isinstance(change, Deletion):
            self.delete(change.domain, change.key)
        elif isinstance(change, NvramSetting):
            self.executor.run(["sudo", "nvram", f"{change.key}={change.value}"])
        else:
            self.executor.run(["sudo", FIREWALL, change.set_flag, "on"])

    def pending(self, manifest: DefaultsManifest) -> List[Change]:
        return [c for c in manifest.changes() if not self.holds(c)]

    def quit_settings_app(self) -> None:
        # Keeps System Settings from overwriting what we write.
        self.executor.run(["osascript", "-e", 'tell application "System Settings" to quit'], check=False)

    def restart_apps(self, apps: Sequence[str]) -> None:
        for app in apps:
            self.executor.run(["killall", app], check=False)
