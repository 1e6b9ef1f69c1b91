"""Collector for Kubernetes workloads, read through kubectl."""

from __future__ import annotations

import json
import os
import shutil
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
from inframap.model import Infrastructure, PortMapping, Server, ServerType, Service
from inframap.util import expand_path


def _field(obj: Mapping[str, Any], name: str) -> Any:
    """A JSON field by name, matching case-insensitively as a fallback."""
    if name in obj:
        return obj[name]
    lowered = name.lower()
    return next(
        (value for key, value in obj.items() if isinstance(key, str) and key.lower() == lowered),
        None,
    )


def _obj(value: Any, what: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"{what} is not an object")
    return value


def _list(value: Any, what: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{what} is not a list")
    return value


def _str(value: Any, what: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{what} is not a string")
    return value


def _int(value: Any, what: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{what} is not an integer")
    return value


def _str_map(value: Any, what: str) -> dict[str, str]:
    mapping = _obj(value, what)
    if not all(isinstance(v, str) for v in mapping.values()):
        raise ValueError(f"{what} is not a map of strings")
    return {str(k): v for k, v in mapping.items()}


@dataclass
class _Container:
    name: str
    image: str
    port: int | None
    protocol: str


@dataclass
class _Pod:
    namespace: str
    labels: dict[str, str]
    phase: str
    containers: list[_Container]


def _parse_pods(document: Any) -> list[_Pod]:
    pods = []
    for item in _list(_field(_obj(document, "pod list"), "items"), "items"):
        pod = _obj(item, "pod")
        meta = _obj(_field(pod, "metadata"), "metadata")
        spec = _obj(_field(pod, "spec"), "spec")
        status = _obj(_field(pod, "status"), "status")
        containers = []
        for raw in _list(_field(spec, "containers"), "containers"):
            container = _obj(raw, "container")
            ports = _list(_field(container, "ports"), "ports")
            first = _obj(ports[0], "port") if ports else None
            containers.append(
                _Container(
                    name=_str(_field(container, "name"), "name"),
                    image=_str(_field(container, "image"), "image"),
                    port=_int(_field(first, "containerPort"), "containerPort") if first is not None else None,
                    protocol=_str(_field(first, "protocol"), "protocol") if first is not None else "",
                )
            )
        pods.append(
            _Pod(
                namespace=_str(_field(meta, "namespace"), "namespace"),
                labels=_str_map(_field(meta, "labels"), "labels"),
                phase=_str(_field(status, "phase"), "phase"),
                containers=containers,
            )
        )
    return pods


def _parse_service_ports(document: Any) -> dict[str, int]:
    """Exposed port of each service, keyed by ``name@namespace``."""
    ports: dict[str, int] = {}
    for item in _list(_field(_obj(document, "service list"), "items"), "items"):
        service = _obj(item, "service")
        meta = _obj(_field(service, "metadata"), "metadata")
        spec = _obj(_field(service, "spec"), "spec")
        service_ports = _list(_field(spec, "ports"), "ports")
        if not service_ports:
            continue
        first = _obj(service_ports[0], "port")
        port = _int(_field(first, "port"), "port")
        node_port = _int(_field(first, "nodePort"), "nodePort")
        if node_port > 0:
            port = node_port
        name = _str(_field(meta, "name"), "name")
        namespace = _str(_field(meta, "namespace"), "namespace")
        ports[f"{name}@{namespace}"] = port
    return ports


def _check_ingresses(document: Any) -> None:
    for item in _list(_field(_obj(document, "ingress list"), "items"), "items"):
        ingress = _obj(item, "ingress")
        _obj(_field(ingress, "metadata"), "metadata")
        spec = _obj(_field(ingress, "spec"), "spec")
        for rule in _list(_field(spec, "rules"), "rules"):
            _obj(rule, "rule")


@dataclass
class KubernetesCollector(Collector):
    """Adds one cluster server per namespace with its running workloads."""

    kubeconfig: str = ""
    context: str = ""
    namespaces: list[str] = field(default_factory=list)
    test_pods: str = ""
    test_services: str = ""
    test_ingresses: str = ""

    def metadata(self) -> CollectorMetadata:
        return CollectorMetadata(
            name="kubernetes",
            display_name="Kubernetes",
            description="Collects pods, services, and ingresses from Kubernetes clusters",
            config_key="kubernetes",
            detect_hint="kubectl",
        )

    def enabled(self, sources: Mapping[str, Any]) -> bool:
        return isinstance(sources.get("kubernetes"), Mapping)

    def configure(self, section: Mapping[str, Any] | None) -> None:
        if section is None:
            return
        if isinstance(section.get("kubeconfig"), str):
            self.kubeconfig = expand_path(section["kubeconfig"])
        if isinstance(section.get("context"), str):
            self.context = section["context"]
        namespaces = section.get("namespaces")
        if isinstance(namespaces, list):
            self.namespaces += [ns for ns in namespaces if isinstance(ns, str)]

    def validate(self) -> list[ValidationError]:
        errors: list[ValidationError] = []
        if self.kubeconfig and not os.path.exists(self.kubeconfig):
            errors.append(
                ValidationError(
                    field="sources.kubernetes.kubeconfig",
                    message=f"file not found: {self.kubeconfig}",
                    suggestion="check the path to your kubeconfig file",
                )
            )
        if shutil.which("kubectl") is None:
            errors.append(
                ValidationError(
                    field="sources.kubernetes",
                    message="kubectl not found in PATH",
                    suggestion="install kubectl: https://kubernetes.io/docs/tasks/tools/",
                )
            )
        return errors

    def collect(self, infra: Infrastructure) -> None:
        pods = self._fetch("pods", self.test_pods, "pods", _parse_pods)
        service_ports = self._fetch("services", self.test_services, "svc", _parse_service_ports)
        self._fetch("ingresses", self.test_ingresses, "ingress", _check_ingresses)

        by_namespace: dict[str, list[_Pod]] = {}
        for pod in pods:
            if pod.phase != "Running":
                continue
            if self.namespaces and pod.namespace not in self.namespaces:
                continue
            by_namespace.setdefault(pod.namespace, []).append(pod)

        for namespace, namespace_pods in by_namespace.items():
            server_name = f"k8s-{namespace}"
            server = infra.servers.get(server_name)
            if server is None:
                server = Server(
                    hostname=server_name,
                    label=f"k8s/{namespace}",
                    type=ServerType.CLUSTER,
                    online=True,
                )
                infra.servers[server_name] = server

            seen: set[str] = set()
            for pod in namespace_pods:
                for container in pod.containers:
                    name = pod.labels.get("app", container.name)
                    if name in seen:
                        continue
                    seen.add(name)
                    service = Service(
                        name=name,
                        image=container.image,
                        type=detect_service_type(container.image, name),
                        category="kubernetes",
                    )
                    port = service_ports.get(f"{name}@{namespace}")
                    if port is not None:
                        service.ports.append(
                            PortMapping(host_port=port, container_port=port, protocol="tcp")
                        )
                    elif container.port is not None:
                        service.ports.append(
                            PortMapping(
                                container_port=container.port,
                                protocol=container.protocol.lower(),
                            )
                        )
                    server.add_service(service)

    def _fetch(self, what: str, test_path: str, resource: str, parse: Any) -> Any:
        try:
            if test_path:
                document = json.loads(Path(test_path).read_bytes())
            else:
                document = self._kubectl("get", resource, "-A", "-o", "json")
            return parse(document)
        except (OSError, ValueError, RuntimeError) as exc:
            raise RuntimeError(f"getting {what}: {exc}") from exc

    def _kubectl(self, *args: str) -> Any:
        command = list(args)
        if self.kubeconfig:
            command = ["--kubeconfig", self.kubeconfig, *command]
        if self.context:
            command = ["--context", self.context, *command]
        try:
            completed = subprocess.run(["kubectl", *command], capture_output=True, check=True)
        except (OSError, subprocess.SubprocessError) as exc:
            raise RuntimeError(f"kubectl {' '.join(args)}: {exc}") from exc
        try:
            return json.loads(completed.stdout)
        except ValueError as exc:
            raise ValueError(f"parsing kubectl output: {exc}") from exc