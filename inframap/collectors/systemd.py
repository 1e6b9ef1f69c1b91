"""Collector for running systemd services on local or remote hosts."""

from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from inframap.collectors.base import (
    Collector,
    CollectorMetadata,
    ValidationError,
    detect_service_type,
)
from inframap.model import Infrastructure, Server, ServerType, Service, ServiceType

_LIST_ARGS = ("list-units", "--type=service", "--state=running", "--output=json")


def _field(obj: Mapping[str, Any], name: str) -> Any:
    if name in obj:
        return obj[name]
    lowered = name.lower()
    return next(
        (value for key, value in obj.items() if isinstance(key, str) and key.lower() == lowered),
        None,
    )


def _parse_units(document: Any) -> list[str]:
    """Unit names from the JSON list printed by ``systemctl --output=json``."""
    if document is None:
        return []
    if not isinstance(document, list):
        raise ValueError("unit list is not a list")
    units = []
    for item in document:
        if not isinstance(item, Mapping):
            raise ValueError("unit is not an object")
        unit = _field(item, "unit")
        if unit is None:
            unit = ""
        if not isinstance(unit, str):
            raise ValueError("unit is not a string")
        units.append(unit)
    return units


def _strings(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _matches_any(name: str, patterns: list[str]) -> bool:
    lowered = name.lower()
    return any(pattern.lower() in lowered for pattern in patterns)


@dataclass
class SystemdServer:
    """One host whose running services are listed."""

    host: str = ""
    ssh: str = ""
    filter: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)
    test_file: str = ""


@dataclass
class SystemdCollector(Collector):
    """Adds the running systemd services of each configured host."""

    servers: list[SystemdServer] = field(default_factory=list)

    def metadata(self) -> CollectorMetadata:
        return CollectorMetadata(
            name="systemd",
            display_name="systemd Services",
            description="Collects running systemd services from local or remote servers",
            config_key="systemd",
            detect_hint="systemctl",
        )

    def enabled(self, sources: Mapping[str, Any]) -> bool:
        section = sources.get("systemd")
        if not isinstance(section, Mapping):
            return False
        servers = section.get("servers")
        return isinstance(servers, list) and len(servers) > 0

    def configure(self, section: Mapping[str, Any] | None) -> None:
        if section is None:
            return
        servers = section.get("servers")
        if not isinstance(servers, list):
            return
        for item in servers:
            if not isinstance(item, Mapping):
                continue
            server = SystemdServer(
                filter=_strings(item.get("filter")),
                exclude=_strings(item.get("exclude")),
            )
            if isinstance(item.get("host"), str):
                server.host = item["host"]
            if isinstance(item.get("ssh"), str):
                server.ssh = item["ssh"]
            if isinstance(item.get("test_file"), str):
                server.test_file = item["test_file"]
            self.servers.append(server)

    def validate(self) -> list[ValidationError]:
        return [
            ValidationError(
                field=f"sources.systemd.servers[{index}].host",
                message="host is required",
                suggestion="set the hostname for this server",
            )
            for index, server in enumerate(self.servers)
            if not server.host
        ]

    def collect(self, infra: Infrastructure) -> None:
        for entry in self.servers:
            try:
                units = self._get_units(entry)
            except (OSError, ValueError, RuntimeError) as exc:
                raise RuntimeError(f"getting units for {entry.host}: {exc}") from exc

            server = infra.servers.get(entry.host)
            if server is None:
                server = Server(
                    hostname=entry.host, label=entry.host, type=ServerType.LAB, online=True
                )
                infra.servers[entry.host] = server

            for unit in units:
                name = unit.removesuffix(".service")
                if entry.filter and not _matches_any(name, entry.filter):
                    continue
                if _matches_any(name, entry.exclude):
                    continue
                service_type = ServiceType.SYSTEM
                if detect_service_type("", name) == ServiceType.DATABASE:
                    service_type = ServiceType.DATABASE
                server.add_service(Service(name=name, type=service_type))

    @staticmethod
    def _get_units(entry: SystemdServer) -> list[str]:
        if entry.test_file:
            return _parse_units(json.loads(Path(entry.test_file).read_bytes()))
        if entry.ssh:
            command = ["ssh", entry.ssh, "systemctl", *_LIST_ARGS]
        else:
            command = ["systemctl", *_LIST_ARGS]
        try:
            completed = subprocess.run(command, capture_output=True, check=True)
        except (OSError, subprocess.SubprocessError) as exc:
            raise RuntimeError(f"systemctl: {exc}") from exc
        try:
            return _parse_units(json.loads(completed.stdout))
        except ValueError as exc:
            raise ValueError(f"parsing systemctl output: {exc}") from exc