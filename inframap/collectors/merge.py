"""Correlation of data gathered by several collectors."""

from __future__ import annotations

from inframap.model import Infrastructure, ServerGroup, ServerType, categorize_service

_TYPE_GROUPS: dict[str, tuple[str, str]] = {
    ServerType.PRODUCTION.value: ("production", "Production"),
    ServerType.LAB.value: ("lab", "Lab Servers"),
    ServerType.LOCAL.value: ("local", "Local"),
    ServerType.CLUSTER.value: ("cluster", "Kubernetes"),
    ServerType.HYPERVISOR.value: ("hypervisor", "Hypervisors"),
}


def merge(infra: Infrastructure) -> None:
    """Categorise uncategorised services and group servers by their type."""
    _categorize_services(infra)
    _build_type_groups(infra)


def _categorize_services(infra: Infrastructure) -> None:
    for server in infra.servers.values():
        for service in server.services:
            if not service.category:
                service.category = categorize_service(service.name, service.image)


def _build_type_groups(infra: Infrastructure) -> None:
    groups = {key: ServerGroup(name=name, label=label) for key, (name, label) in _TYPE_GROUPS.items()}
    for hostname in sorted(infra.servers):
        group = groups.get(str(infra.servers[hostname].type))
        if group is not None:
            group.servers.append(hostname)
    for key, group in groups.items():
        if group.servers:
            infra.server_groups[key] = group