"""Collector for ``tailscale status --json`` output."""

from __future__ import annotations

import json
import os
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from inframap.collectors.base import Collector, CollectorMetadata, ValidationError
from inframap.model import Device, Infrastructure, Server, ServerType


def _field(obj: Mapping[str, Any], name: str) -> Any:
    """Look up a JSON field by name, ignoring case as a fallback."""
    if name in obj:
        return obj[name]
    lowered = name.lower()
    return next(
        (value for key, value in obj.items() if isinstance(key, str) and key.lower() == lowered),
        None,
    )


def _as_str(value: Any, name: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"parsing tailscale json: field {name} is not a string")
    return value


def _as_bool(value: Any, name: str) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"parsing tailscale json: field {name} is not a boolean")
    return value


def _as_str_list(value: Any, name: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"parsing tailscale json: field {name} is not a list of strings")
    return list(value)


@dataclass
class _Peer:
    hostname: str = ""
    os: str = ""
    tailscale_ips: list[str] = field(default_factory=list)
    online: bool = False
    tags: list[str] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Any) -> _Peer:
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ValueError("parsing tailscale json: peer is not an object")
        return cls(
            hostname=_as_str(_field(data, "HostName"), "HostName"),
            os=_as_str(_field(data, "OS"), "OS"),
            tailscale_ips=_as_str_list(_field(data, "TailscaleIPs"), "TailscaleIPs"),
            online=_as_bool(_field(data, "Online"), "Online"),
            tags=_as_str_list(_field(data, "Tags"), "Tags"),
        )


@dataclass
class TailscaleCollector(Collector):
    """Adds Tailscale peers as servers or devices and enriches known servers."""

    json_file: str = ""
    include_offline: bool = False

    def metadata(self) -> CollectorMetadata:
        return CollectorMetadata(
            name="tailscale",
            display_name="Tailscale",
            description="Collects Tailscale VPN peers, IPs, and online status",
            config_key="tailscale",
            detect_hint="tailscale",
        )

    def enabled(self, sources: Mapping[str, Any]) -> bool:
        section = sources.get("tailscale")
        if not isinstance(section, Mapping):
            return False
        return section.get("enabled") is True

    def configure(self, section: Mapping[str, Any] | None) -> None:
        if section is None:
            return
        if isinstance(section.get("json_file"), str):
            self.json_file = section["json_file"]
        if isinstance(section.get("include_offline"), bool):
            self.include_offline = section["include_offline"]

    def validate(self) -> list[ValidationError]:
        if self.json_file:
            if not os.path.exists(self.json_file):
                return [
                    ValidationError(
                        field="sources.tailscale.json_file",
                        message=f"file not found: {self.json_file}",
                        suggestion="check the path or remove json_file to use live tailscale status",
                    )
                ]
            return []
        if shutil.which("tailscale") is None:
            return [
                ValidationError(
                    field="sources.tailscale",
                    message="tailscale binary not found in PATH",
                    suggestion="install tailscale or provide a json_file path",
                )
            ]
        return []

    def collect(self, infra: Infrastructure) -> None:
        raw = self._read_status()
        try:
            status = json.loads(raw)
        except ValueError as exc:
            raise ValueError(f"parsing tailscale json: {exc}") from exc
        if not isinstance(status, Mapping):
            raise ValueError("parsing tailscale json: status is not an object")

        tailnet = _field(status, "CurrentTailnet")
        if isinstance(tailnet, Mapping):
            infra.tailnet_name = _as_str(_field(tailnet, "Name"), "Name")

        self._process_peer(infra, _Peer.from_json(_field(status, "Self")))

        peers = _field(status, "Peer") or {}
        if not isinstance(peers, Mapping):
            raise ValueError("parsing tailscale json: Peer is not an object")
        for data in peers.values():
            peer = _Peer.from_json(data)
            if not peer.online and not self.include_offline:
                continue
            self._process_peer(infra, peer)

    def _read_status(self) -> bytes:
        if self.json_file:
            return Path(self.json_file).read_bytes()
        completed = subprocess.run(
            ["tailscale", "status", "--json"], capture_output=True, check=True
        )
        return completed.stdout

    @staticmethod
    def _process_peer(infra: Infrastructure, peer: _Peer) -> None:
        hostname = peer.hostname.lower()
        if not hostname:
            return
        ts_ip = peer.tailscale_ips[0] if peer.tailscale_ips else ""

        server = infra.servers.get(hostname)
        if server is not None:
            server.tailscale_ip = ts_ip
            server.os = peer.os
            server.online = peer.online
            return

        if any("server" in tag for tag in peer.tags):
            infra.servers[hostname] = Server(
                hostname=hostname,
                label=hostname,
                tailscale_ip=ts_ip,
                os=peer.os,
                online=peer.online,
                type=ServerType.LAB,
            )
            return

        infra.devices[hostname] = Device(
            hostname=hostname,
            os=peer.os,
            tailscale_ip=ts_ip,
            online=peer.online,
            tags=list(peer.tags),
        )