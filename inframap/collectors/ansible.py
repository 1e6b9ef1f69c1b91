"""Collector for Ansible YAML inventories and group_vars."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from inframap.collectors.base import (
    Collector,
    CollectorMetadata,
    ValidationError,
    to_int,
    to_string,
)
from inframap.model import (
    HealthCheck,
    Infrastructure,
    PortMapping,
    Server,
    ServerGroup,
    ServerType,
    Service,
    ServiceType,
)

_SYSTEM_SERVICES = (("netdata", "netdata_port"), ("cockpit", "cockpit_port"))


@dataclass
class _HostEntry:
    ansible_host: str = ""
    ansible_user: str = ""
    server_type: str = ""
    hostname: str = ""
    tailscale_hostname: str = ""


def _extract_hosts(group: Any) -> dict[str, _HostEntry]:
    """Host entries of an inventory group, keyed by host name."""
    if not isinstance(group, Mapping):
        return {}
    hosts = group.get("hosts")
    if not isinstance(hosts, Mapping):
        return {}
    result: dict[str, _HostEntry] = {}
    for name, data in hosts.items():
        if not isinstance(data, Mapping):
            result[str(name)] = _HostEntry()
            continue
        result[str(name)] = _HostEntry(
            ansible_host=to_string(data.get("ansible_host")),
            ansible_user=to_string(data.get("ansible_user")),
            server_type=to_string(data.get("server_type")),
            hostname=to_string(data.get("hostname")),
            tailscale_hostname=to_string(data.get("tailscale_hostname")),
        )
    return result


def _server_type(value: str) -> ServerType | str:
    if not value:
        return ServerType.LAB
    try:
        return ServerType(value)
    except ValueError:
        return value


def _load_mapping(path: Path) -> dict[str, Any] | None:
    """A YAML mapping from ``path``, or None if it is missing or unusable."""
    try:
        document = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError):
        return None
    if document is None:
        return {}
    return document if isinstance(document, dict) else None


@dataclass
class AnsibleCollector(Collector):
    """Reads servers and groups from an Ansible inventory, services from group_vars."""

    inventory_path: str = ""
    group_vars_path: str = ""
    primary_group: str = ""

    def metadata(self) -> CollectorMetadata:
        return CollectorMetadata(
            name="ansible",
            display_name="Ansible Inventory",
            description="Parses Ansible YAML inventory and group_vars for servers and system services",
            config_key="ansible",
            detect_hint="hosts.yml",
        )

    def enabled(self, sources: Mapping[str, Any]) -> bool:
        section = sources.get("ansible")
        if not isinstance(section, Mapping):
            return False
        inventory = section.get("inventory")
        return isinstance(inventory, str) and inventory != ""

    def configure(self, section: Mapping[str, Any] | None) -> None:
        if section is None:
            return
        if isinstance(section.get("inventory"), str):
            self.inventory_path = section["inventory"]
        if isinstance(section.get("group_vars"), str):
            self.group_vars_path = section["group_vars"]
        if isinstance(section.get("primary_group"), str):
            self.primary_group = section["primary_group"]

    def validate(self) -> list[ValidationError]:
        errors: list[ValidationError] = []
        if self.inventory_path and not os.path.exists(self.inventory_path):
            errors.append(
                ValidationError(
                    field="sources.ansible.inventory",
                    message=f"file not found: {self.inventory_path}",
                    suggestion="check the path or run 'inframap-d2 init' to reconfigure",
                )
            )
        if self.group_vars_path and not os.path.isdir(self.group_vars_path):
            errors.append(
                ValidationError(
                    field="sources.ansible.group_vars",
                    message=f"directory not found: {self.group_vars_path}",
                    suggestion="check the path to your group_vars directory",
                )
            )
        return errors

    def collect(self, infra: Infrastructure) -> None:
        if not self.inventory_path:
            return
        self._parse_inventory(infra)
        if self.group_vars_path:
            self._parse_group_vars(infra)

    def _parse_inventory(self, infra: Infrastructure) -> None:
        text = Path(self.inventory_path).read_text(encoding="utf-8")
        try:
            inventory = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ValueError(f"parsing ansible inventory: unmarshal inventory: {exc}") from exc
        if inventory is None:
            inventory = {}
        if not isinstance(inventory, dict):
            raise ValueError("parsing ansible inventory: inventory is not a mapping")

        bootstrap_ips = {
            host.tailscale_hostname: host.ansible_host
            for host in _extract_hosts(inventory.get("bootstrap")).values()
            if host.tailscale_hostname and host.ansible_host
        }

        primary = self.primary_group or "tailnet"
        if primary in inventory:
            for name, host in _extract_hosts(inventory[primary]).items():
                hostname = (host.hostname or name).lower()
                server = Server(
                    hostname=hostname,
                    label=hostname,
                    type=_server_type(host.server_type),
                    online=True,
                )
                if hostname in bootstrap_ips:
                    server.public_ip = bootstrap_ips[hostname]
                server.ansible_groups = self._find_groups(inventory, name)
                infra.servers[hostname] = server

        for group_name, group_data in inventory.items():
            if group_name == "all":
                continue
            hosts = _extract_hosts(group_data)
            if not hosts:
                continue
            infra.server_groups[str(group_name)] = ServerGroup(
                name=str(group_name), label=str(group_name), servers=list(hosts)
            )

    def _parse_group_vars(self, infra: Infrastructure) -> None:
        base = Path(self.group_vars_path)
        all_vars = _load_mapping(base / "all.yml")
        if all_vars is not None:
            self._extract_system_services(infra, all_vars)
        tailnet_vars = _load_mapping(base / "tailnet" / "vars.yml")
        if tailnet_vars is not None:
            self._extract_health_checks(infra, tailnet_vars)

    @staticmethod
    def _extract_system_services(infra: Infrastructure, variables: Mapping[str, Any]) -> None:
        for service_name, key in _SYSTEM_SERVICES:
            if key not in variables:
                continue
            port = to_int(variables[key])
            if port == 0:
                continue
            for server in infra.servers.values():
                server.add_service(
                    Service(
                        name=service_name,
                        type=ServiceType.SYSTEM,
                        ports=[PortMapping(host_port=port, container_port=port, protocol="tcp")],
                    )
                )

    @staticmethod
    def _extract_health_checks(infra: Infrastructure, variables: Mapping[str, Any]) -> None:
        checks = variables.get("service_health_checks")
        if not isinstance(checks, Mapping):
            return
        for name, data in checks.items():
            if not isinstance(data, Mapping):
                continue
            check = HealthCheck(
                port=to_int(data.get("port")),
                path=to_string(data.get("path")),
                expected_status=to_int(data.get("expected_status")),
                timeout=to_int(data.get("timeout")),
            )
            for server in infra.servers.values():
                for service in server.services:
                    if service.name == name:
                        service.health_check = check

    @staticmethod
    def _find_groups(inventory: Mapping[str, Any], host_name: str) -> list[str]:
        return [
            str(group_name)
            for group_name, group_data in inventory.items()
            if group_name != "all" and host_name in _extract_hosts(group_data)
        ]