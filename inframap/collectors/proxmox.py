"""Collector for Proxmox VE virtual machines and LXC containers."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import requests

from inframap.collectors.base import Collector, CollectorMetadata, ValidationError
from inframap.model import Infrastructure, Server, ServerType, Service, ServiceType

_TIMEOUT = 30


def _field(obj: Mapping[str, Any], name: str) -> Any:
    if name in obj:
        return obj[name]
    lowered = name.lower()
    return next(
        (value for key, value in obj.items() if isinstance(key, str) and key.lower() == lowered),
        None,
    )


def _str(value: Any, what: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{what} is not a string")
    return value


def _data_items(document: Any) -> list[Mapping[str, Any]]:
    """Entries of the ``data`` list of a Proxmox API response."""
    if not isinstance(document, Mapping):
        raise ValueError("response is not an object")
    items = _field(document, "data")
    if items is None:
        return []
    if not isinstance(items, list) or not all(isinstance(i, Mapping) for i in items):
        raise ValueError("data is not a list of objects")
    return items


@dataclass
class _Node:
    node: str
    status: str


@dataclass
class _Resource:
    type: str
    node: str
    name: str
    status: str


def _parse_nodes(document: Any) -> list[_Node]:
    return [
        _Node(node=_str(_field(i, "node"), "node"), status=_str(_field(i, "status"), "status"))
        for i in _data_items(document)
    ]


def _parse_resources(document: Any) -> list[_Resource]:
    return [
        _Resource(
            type=_str(_field(i, "type"), "type"),
            node=_str(_field(i, "node"), "node"),
            name=_str(_field(i, "name"), "name"),
            status=_str(_field(i, "status"), "status"),
        )
        for i in _data_items(document)
    ]


@dataclass
class ProxmoxCollector(Collector):
    """Adds each Proxmox node as a hypervisor with its running guests."""

    api_url: str = ""
    token_id: str = ""
    token: str = ""
    insecure: bool = False
    test_nodes: str = ""
    test_resources: str = ""

    def metadata(self) -> CollectorMetadata:
        return CollectorMetadata(
            name="proxmox",
            display_name="Proxmox VE",
            description="Collects VMs and LXC containers from Proxmox VE clusters",
            config_key="proxmox",
            detect_hint="",
        )

    def enabled(self, sources: Mapping[str, Any]) -> bool:
        section = sources.get("proxmox")
        if not isinstance(section, Mapping):
            return False
        url = section.get("api_url")
        return isinstance(url, str) and url != ""

    def configure(self, section: Mapping[str, Any] | None) -> None:
        if section is None:
            return
        if isinstance(section.get("api_url"), str):
            self.api_url = section["api_url"]
        if isinstance(section.get("token_id"), str):
            self.token_id = section["token_id"]
        if isinstance(section.get("token"), str):
            self.token = section["token"]
        if not self.token_id:
            self.token_id = os.environ.get("INFRAMAP_PROXMOX_TOKEN_ID", "")
        if not self.token:
            self.token = os.environ.get("INFRAMAP_PROXMOX_TOKEN", "")
        if isinstance(section.get("insecure"), bool):
            self.insecure = section["insecure"]

    def validate(self) -> list[ValidationError]:
        errors: list[ValidationError] = []
        if not self.api_url:
            errors.append(
                ValidationError(
                    field="sources.proxmox.api_url",
                    message="api_url is required",
                    suggestion="set the URL of your Proxmox VE instance, e.g. https://pve.local:8006",
                )
            )
        if not self.token_id or not self.token:
            errors.append(
                ValidationError(
                    field="sources.proxmox.token_id",
                    message="token_id and token are required for API authentication",
                    suggestion="create an API token in Proxmox: Datacenter → Permissions → API Tokens",
                )
            )
        return errors

    def collect(self, infra: Infrastructure) -> None:
        nodes = self._fetch("nodes", self.test_nodes, "/api2/json/nodes", _parse_nodes)
        resources = self._fetch(
            "resources", self.test_resources, "/api2/json/cluster/resources?type=vm", _parse_resources
        )

        for node in nodes:
            server = infra.servers.get(node.node)
            if server is None:
                infra.servers[node.node] = Server(
                    hostname=node.node,
                    label=node.node,
                    type=ServerType.HYPERVISOR,
                    online=node.status == "online",
                )
            else:
                server.type = ServerType.HYPERVISOR

        for resource in resources:
            if resource.status != "running":
                continue
            server = infra.servers.get(resource.node)
            if server is None:
                continue
            server.add_service(
                Service(
                    name=resource.name,
                    type=ServiceType.LXC if resource.type == "lxc" else ServiceType.VM,
                    category="virtualization",
                )
            )

    def _fetch(self, what: str, test_path: str, api_path: str, parse: Any) -> Any:
        try:
            if test_path:
                document = json.loads(Path(test_path).read_bytes())
            else:
                document = self._api_get(api_path)
            return parse(document)
        except (OSError, ValueError, RuntimeError, requests.RequestException) as exc:
            raise RuntimeError(f"getting {what}: {exc}") from exc

    def _api_get(self, path: str) -> Any:
        response = requests.get(
            self.api_url + path,
            headers={"Authorization": f"PVEAPIToken={self.token_id}={self.token}"},
            timeout=_TIMEOUT,
            verify=not self.insecure,
        )
        if response.status_code != 200:
            raise RuntimeError(f"proxmox API returned {response.status_code}: {response.text}")
        return json.loads(response.content)