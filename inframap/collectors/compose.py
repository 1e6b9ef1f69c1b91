"""Collector for Docker Compose files and Jinja2 compose templates."""

from __future__ import annotations

import os
import re
import sys
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from inframap.collectors.base import (
    Collector,
    CollectorMetadata,
    ValidationError,
    detect_service_type,
    to_string,
)
from inframap.config import ComposeFile, ScanDir
from inframap.model import (
    Infrastructure,
    PortMapping,
    Server,
    ServerType,
    Service,
    VolumeMount,
    parse_port_mapping,
)
from inframap.util import expand_path, strip_jinja2

_COMPOSE_NAMES = frozenset(
    {"docker-compose.yml", "docker-compose.yaml", "compose.yml", "compose.yaml"}
)
_SKIPPED_DIRS = frozenset({"node_modules", "vendor"})
_INT_TAG = "tag:yaml.org,2002:int"
_DIGITS = re.compile(r"[+-]?\d+")


class _Loader(yaml.SafeLoader):
    """Safe loader without YAML 1.1 base-60 integers, so "22:22" stays a string."""


_Loader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != _INT_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
_Loader.add_implicit_resolver(
    _INT_TAG,
    re.compile(
        r"^(?:[-+]?0b[0-1_]+|[-+]?0[0-7_]+|[-+]?(?:0|[1-9][0-9_]*)|[-+]?0x[0-9a-fA-F_]+)$"
    ),
    list("-+0123456789"),
)


class _InvalidProject(Exception):
    """The file is not a compose project the strict reader accepts."""


def _load_yaml(text: str) -> Any:
    return yaml.load(text, Loader=_Loader)  # noqa: S506 - safe loader subclass


def _atoi(value: Any) -> int:
    text = to_string(value).strip()
    return int(text) if _DIGITS.fullmatch(text) else 0


def _names(raw: Any) -> list[str]:
    """Names from a compose list or mapping (networks, depends_on)."""
    if isinstance(raw, list):
        return [to_string(item) for item in raw]
    if isinstance(raw, Mapping):
        return [str(key) for key in raw]
    return []


def _ensure_server(infra: Infrastructure, hostname: str) -> None:
    if hostname and hostname not in infra.servers:
        infra.servers[hostname] = Server(
            hostname=hostname, label=hostname, type=ServerType.LOCAL, online=True
        )


def _server_for(infra: Infrastructure, hostname: str) -> Server:
    server = infra.servers.get(hostname)
    if server is None:
        raise ValueError("no server given for compose services")
    return server


# Lenient parsing of raw YAML, used for templates and files the strict reader rejects.


def _fallback_ports(raw: Any) -> list[PortMapping]:
    if not isinstance(raw, list):
        return []
    ports = []
    for item in raw:
        text = to_string(item).replace("PLACEHOLDER:", "")
        if text in ("", "PLACEHOLDER"):
            continue
        mapping = parse_port_mapping(text)
        if mapping.host_port > 0:
            ports.append(mapping)
    return ports


def _fallback_volumes(raw: Any) -> list[VolumeMount]:
    if not isinstance(raw, list):
        return []
    volumes = []
    for item in raw:
        source, _, target = to_string(item).partition(":")
        volumes.append(VolumeMount(source=source, target=target))
    return volumes


# Strict parsing of the compose specification's short and long syntaxes.


def _standard_port(entry: Any) -> PortMapping:
    if isinstance(entry, Mapping):
        return PortMapping(
            host_ip=to_string(entry.get("host_ip")),
            host_port=_atoi(entry.get("published")),
            container_port=_atoi(entry.get("target")),
            protocol=to_string(entry.get("protocol")) or "tcp",
        )
    if isinstance(entry, bool) or not isinstance(entry, (int, str)):
        raise _InvalidProject(f"invalid port entry {entry!r}")
    spec, slash, proto = str(entry).partition("/")
    parts = spec.rsplit(":", 2)
    target = parts[-1]
    published = parts[-2] if len(parts) >= 2 else ""
    host_ip = parts[0].strip("[]") if len(parts) == 3 else ""
    return PortMapping(
        host_ip=host_ip,
        host_port=_atoi(published),
        container_port=_atoi(target),
        protocol=proto if slash and proto else "tcp",
    )


def _standard_volume(entry: Any) -> VolumeMount:
    if isinstance(entry, Mapping):
        return VolumeMount(
            source=to_string(entry.get("source")), target=to_string(entry.get("target"))
        )
    if not isinstance(entry, str):
        raise _InvalidProject(f"invalid volume entry {entry!r}")
    parts = entry.split(":")
    if len(parts) == 1:
        return VolumeMount(target=parts[0])
    return VolumeMount(source=parts[0], target=parts[1])


def _load_project(path: str) -> Mapping[str, Any]:
    """The services of a strictly valid compose file, keyed by name."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise _InvalidProject(str(exc)) from exc
    if "{{" in text:
        raise _InvalidProject("unrendered template expressions")
    try:
        document = _load_yaml(text)
    except yaml.YAMLError as exc:
        raise _InvalidProject(str(exc)) from exc
    if not isinstance(document, Mapping):
        raise _InvalidProject("empty or malformed compose file")
    services = document.get("services") or {}
    if not isinstance(services, Mapping):
        raise _InvalidProject("services must be a mapping")
    for name, data in services.items():
        if not isinstance(data, Mapping):
            raise _InvalidProject(f"service {name} must be a mapping")
        if "image" not in data and "build" not in data:
            raise _InvalidProject(f"service {name} has neither an image nor a build section")
    return services


def _walk(root: str) -> Iterator[str]:
    """Compose files below ``root`` in lexical order, skipping irrelevant directories."""
    try:
        is_dir = os.path.isdir(root) and not os.path.islink(root)
    except OSError:
        return
    if not os.path.lexists(root):
        return
    if not is_dir:
        if os.path.basename(root) in _COMPOSE_NAMES:
            yield root
        return
    name = os.path.basename(os.path.normpath(root))
    if name.startswith(".") or name in _SKIPPED_DIRS:
        return
    try:
        entries = sorted(os.scandir(root), key=lambda entry: entry.name)
    except OSError:
        return
    for entry in entries:
        try:
            entry_is_dir = entry.is_dir(follow_symlinks=False)
        except OSError:
            continue
        if entry_is_dir:
            yield from _walk(entry.path)
        elif entry.name in _COMPOSE_NAMES:
            yield entry.path


@dataclass
class ComposeCollector(Collector):
    """Reads services from explicit compose files and from scanned directories."""

    files: list[ComposeFile] = field(default_factory=list)
    scan_dirs: list[ScanDir] = field(default_factory=list)

    def metadata(self) -> CollectorMetadata:
        return CollectorMetadata(
            name="compose",
            display_name="Docker Compose",
            description="Parses docker-compose files and Jinja2 templates for services",
            config_key="compose",
            detect_hint="docker-compose.yml",
        )

    def enabled(self, sources: Mapping[str, Any]) -> bool:
        section = sources.get("compose")
        if not isinstance(section, Mapping):
            return False
        return any(
            isinstance(section.get(key), list) and len(section[key]) > 0
            for key in ("files", "scan_dirs")
        )

    def configure(self, section: Mapping[str, Any] | None) -> None:
        if section is None:
            return
        files = section.get("files")
        if isinstance(files, list):
            for item in files:
                if not isinstance(item, Mapping):
                    continue
                entry = ComposeFile()
                if isinstance(item.get("path"), str):
                    entry.path = item["path"]
                if isinstance(item.get("server"), str):
                    entry.server = item["server"]
                if isinstance(item.get("template"), bool):
                    entry.template = item["template"]
                self.files.append(entry)
        dirs = section.get("scan_dirs")
        if isinstance(dirs, list):
            for item in dirs:
                if not isinstance(item, Mapping):
                    continue
                scan = ScanDir()
                if isinstance(item.get("path"), str):
                    scan.path = item["path"]
                if isinstance(item.get("server"), str):
                    scan.server = item["server"]
                self.scan_dirs.append(scan)

    def validate(self) -> list[ValidationError]:
        errors = [
            ValidationError(
                field=f"sources.compose.files[{index}]",
                message=f"file not found: {entry.path}",
                suggestion="check the path or remove this entry",
            )
            for index, entry in enumerate(self.files)
            if not os.path.exists(expand_path(entry.path))
        ]
        errors += [
            ValidationError(
                field=f"sources.compose.scan_dirs[{index}]",
                message=f"directory not found: {entry.path}",
                suggestion="check the path or remove this entry",
            )
            for index, entry in enumerate(self.scan_dirs)
            if not os.path.isdir(expand_path(entry.path))
        ]
        return errors

    def collect(self, infra: Infrastructure) -> None:
        for entry in self.files:
            try:
                self._parse_file(infra, expand_path(entry.path), entry.server, entry.template)
            except (OSError, ValueError) as exc:
                raise ValueError(f"parsing compose file {entry.path}: {exc}") from exc
        for scan in self.scan_dirs:
            self._scan_directory(infra, expand_path(scan.path), scan.server)

    def _scan_directory(self, infra: Infrastructure, directory: str, server: str) -> None:
        for path in _walk(directory):
            try:
                self._parse_file(infra, path, server, False)
            except (OSError, ValueError) as exc:
                print(f"Warning: skipping {path}: {exc}", file=sys.stderr)

    def _parse_file(self, infra: Infrastructure, path: str, server: str, template: bool) -> None:
        if template:
            text = strip_jinja2(Path(path).read_text(encoding="utf-8"))
            self._parse_fallback(infra, text, path, server)
            return
        try:
            services = _load_project(path)
        except _InvalidProject:
            text = Path(path).read_text(encoding="utf-8")
            self._parse_fallback(infra, text, path, server)
            return
        self._add_project_services(infra, services, path, server)

    @staticmethod
    def _parse_fallback(infra: Infrastructure, text: str, path: str, server: str) -> None:
        if "{{" in text:
            text = strip_jinja2(text)
        try:
            document = _load_yaml(text)
        except yaml.YAMLError as exc:
            raise ValueError(f"yaml parse: {exc}") from exc
        if not isinstance(document, Mapping):
            if document is None:
                return
            raise ValueError("yaml parse: document is not a mapping")
        services = document.get("services")
        if not isinstance(services, Mapping):
            return
        _ensure_server(infra, server)
        for name, data in services.items():
            if not isinstance(data, Mapping):
                continue
            image = to_string(data.get("image"))
            service = Service(
                name=str(name),
                image=image,
                type=detect_service_type(image, str(name)),
                compose_file=path,
            )
            if "ports" in data:
                service.ports = _fallback_ports(data["ports"])
            if "networks" in data:
                service.networks = _names(data["networks"])
            if "depends_on" in data:
                service.depends_on = _names(data["depends_on"])
            if "volumes" in data:
                service.volumes = _fallback_volumes(data["volumes"])
            _server_for(infra, server).add_service(service)

    @staticmethod
    def _add_project_services(
        infra: Infrastructure, services: Mapping[str, Any], path: str, server: str
    ) -> None:
        _ensure_server(infra, server)
        for name, data in services.items():
            image = to_string(data.get("image"))
            networks = _names(data.get("networks"))
            if not networks and "network_mode" not in data:
                networks = ["default"]
            ports = data.get("ports") or []
            volumes = data.get("volumes") or []
            service = Service(
                name=str(name),
                image=image,
                type=detect_service_type(image, str(name)),
                compose_file=path,
                ports=[_standard_port(p) for p in ports] if isinstance(ports, list) else [],
                networks=networks,
                depends_on=_names(data.get("depends_on")),
                volumes=[_standard_volume(v) for v in volumes] if isinstance(volumes, list) else [],
            )
            _server_for(infra, server).add_service(service)