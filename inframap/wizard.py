"""Environment detection and config generation for ``init``."""

from __future__ import annotations

import dataclasses
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

_INVENTORY_PATHS = ("hosts.yml", "inventory/hosts.yml", "../inventory/hosts.yml")
_COMPOSE_NAMES = ("docker-compose.yml", "docker-compose.yaml", "compose.yml", "compose.yaml")


@dataclass
class DetectionResult:
    """What was found on this system."""

    tailscale_available: bool = False
    ansible_inventory: str = ""
    compose_files: list[str] = field(default_factory=list)


class _Detector(Protocol):
    def look_path(self, name: str) -> str | None: ...

    def exists(self, path: str) -> bool: ...

    def is_dir(self, path: str) -> bool: ...


class OSDetector:
    """Looks at the real filesystem and PATH."""

    def look_path(self, name: str) -> str | None:
        """Full path of an executable on PATH, or None."""
        return shutil.which(name)

    def exists(self, path: str) -> bool:
        """Whether anything exists at ``path``."""
        return os.path.exists(path)

    def is_dir(self, path: str) -> bool:
        """Whether ``path`` is a directory."""
        return os.path.isdir(path)


def detect(detector: _Detector | None = None) -> DetectionResult:
    """Scan the environment for known infrastructure sources."""
    d: _Detector = detector if detector is not None else OSDetector()
    result = DetectionResult(tailscale_available=bool(d.look_path("tailscale")))

    result.ansible_inventory = next((p for p in _INVENTORY_PATHS if d.exists(p)), "")
    result.compose_files = [name for name in _COMPOSE_NAMES if d.exists(name)]

    try:
        home = str(Path.home())
    except (RuntimeError, KeyError):
        return result
    docker_dir = os.path.join(home, "docker")
    if d.is_dir(docker_dir):
        result.compose_files += [
            path
            for path in (os.path.join(docker_dir, name) for name in _COMPOSE_NAMES)
            if d.exists(path)
        ]
    return result


@dataclass
class ComposeScanEntry:
    """A directory to scan for compose files and the server running them."""

    path: str
    server: str


@dataclass
class ComposeFileEntry:
    """An explicit compose file and the server running it."""

    path: str
    server: str
    template: bool = False


@dataclass
class WizardAnswers:
    """Everything the user chose during ``init``."""

    enable_ansible: bool = False
    enable_compose: bool = False
    enable_tailscale: bool = False
    ansible_inventory: str = ""
    ansible_group_vars: str = ""
    ansible_primary: str = ""
    compose_scan_dirs: list[ComposeScanEntry] = field(default_factory=list)
    compose_files: list[ComposeFileEntry] = field(default_factory=list)
    tailscale_json: str = ""
    include_offline: bool = False
    direction: str = ""
    group_by: str = ""
    show_devices: bool = False
    detail_level: str = ""


def generate_config(answers: WizardAnswers) -> str:
    """Render the YAML configuration file for the given answers."""
    a = dataclasses.replace(
        answers,
        direction=answers.direction or "right",
        group_by=answers.group_by or "category",
        detail_level=answers.detail_level or "standard",
    )
    parts = [
        "# inframap-d2 configuration\n\n",
        "output: infrastructure.d2\n",
        f"direction: {a.direction}\n\n",
        "sources:",
    ]

    if a.enable_ansible:
        parts.append(f"\n  ansible:\n    inventory: {a.ansible_inventory}")
        if a.ansible_group_vars:
            parts.append(f"\n    group_vars: {a.ansible_group_vars}")
        if a.ansible_primary:
            parts.append(f"\n    primary_group: {a.ansible_primary}")

    if a.enable_compose:
        parts.append("\n  compose:")
        if a.compose_files:
            parts.append("\n    files:")
            for entry in a.compose_files:
                parts.append(f"\n      - path: {entry.path}\n        server: {entry.server}")
                if entry.template:
                    parts.append("\n        template: true")
        if a.compose_scan_dirs:
            parts.append("\n    scan_dirs:")
            for scan in a.compose_scan_dirs:
                parts.append(f"\n      - path: {scan.path}\n        server: {scan.server}")

    if a.enable_tailscale:
        parts.append("\n  tailscale:\n    enabled: true")
        if a.tailscale_json:
            parts.append(f"\n    json_file: {a.tailscale_json}")
        include_offline = "true" if a.include_offline else "false"
        parts.append(f"\n    include_offline: {include_offline}")

    show_devices = "true" if a.show_devices else "false"
    parts.append(
        "\n\ndisplay:\n"
        f"  show_devices: {show_devices}\n"
        f"  group_by: {a.group_by}\n\n"
        "render:\n"
        f"  detail_level: {a.detail_level}\n"
    )
    return "".join(parts)