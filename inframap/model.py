"""Core data model for discovered infrastructure."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum


class ServerType(str, Enum):
    """Role of a server."""

    PRODUCTION = "production"
    LAB = "lab"
    LOCAL = "local"
    CLUSTER = "cluster"
    HYPERVISOR = "hypervisor"

    def __str__(self) -> str:
        return self.value


class ServiceType(str, Enum):
    """Kind of a service."""

    CONTAINER = "container"
    DATABASE = "database"
    APP = "app"
    SYSTEM = "system"
    VM = "vm"
    LXC = "lxc"
    POD = "pod"

    def __str__(self) -> str:
        return self.value


_INTEGER = re.compile(r"[+-]?\d+")


def _atoi(text: str) -> int:
    """Parse a decimal integer, yielding 0 for anything malformed."""
    return int(text) if _INTEGER.fullmatch(text) else 0


@dataclass
class PortMapping:
    """A port binding between host and container."""

    host_ip: str = ""
    host_port: int = 0
    container_port: int = 0
    protocol: str = ""

    def __str__(self) -> str:
        suffix = "" if self.protocol in ("", "tcp") else f"/{self.protocol}"
        if self.host_port == self.container_port:
            return f"{self.host_port}{suffix}"
        return f"{self.host_port}\u2192{self.container_port}{suffix}"


def parse_port_mapping(s: str) -> PortMapping:
    """Parse a Docker port string such as "8080:80" or "127.0.0.1:8080:80/tcp"."""
    spec, slash, proto = s.partition("/")
    mapping = PortMapping(protocol=proto if slash else "tcp")
    parts = spec.split(":")
    if len(parts) == 3:
        mapping.host_ip, host, container = parts
    elif len(parts) == 2:
        host, container = parts
    elif len(parts) == 1:
        host = container = parts[0]
    else:
        return mapping
    mapping.host_port = _atoi(host)
    mapping.container_port = _atoi(container)
    return mapping


@dataclass
class VolumeMount:
    """A volume binding."""

    source: str = ""
    target: str = ""


@dataclass
class HealthCheck:
    """A service health check."""

    port: int = 0
    path: str = ""
    expected_status: int = 0
    timeout: int = 0


@dataclass
class Service:
    """A container, application or system service."""

    name: str
    image: str = ""
    type: ServiceType | str = ServiceType.CONTAINER
    ports: list[PortMapping] = field(default_factory=list)
    networks: list[str] = field(default_factory=list)
    depends_on: list[str] = field(default_factory=list)
    volumes: list[VolumeMount] = field(default_factory=list)
    health_check: HealthCheck | None = None
    compose_file: str = ""
    category: str = ""


@dataclass
class Server:
    """A physical or virtual machine."""

    hostname: str
    label: str = ""
    public_ip: str = ""
    tailscale_ip: str = ""
    type: ServerType | str = ServerType.LAB
    os: str = ""
    online: bool = False
    ansible_groups: list[str] = field(default_factory=list)
    services: list[Service] = field(default_factory=list)

    def add_service(self, service: Service) -> None:
        """Attach a service to this server."""
        self.services.append(service)


@dataclass
class ServerGroup:
    """A named group of server hostnames."""

    name: str
    label: str = ""
    servers: list[str] = field(default_factory=list)


@dataclass
class Device:
    """A network peer that is not a server (phone, laptop, IoT)."""

    hostname: str
    os: str = ""
    tailscale_ip: str = ""
    online: bool = False
    tags: list[str] = field(default_factory=list)


@dataclass
class Network:
    """A Docker network."""

    name: str
    driver: str = ""
    services: list[str] = field(default_factory=list)


@dataclass
class Connection:
    """A link between two entities."""

    source: str
    target: str
    label: str = ""
    style: str = ""


@dataclass
class Infrastructure:
    """Everything discovered, keyed by name."""

    servers: dict[str, Server] = field(default_factory=dict)
    server_groups: dict[str, ServerGroup] = field(default_factory=dict)
    devices: dict[str, Device] = field(default_factory=dict)
    networks: dict[str, Network] = field(default_factory=dict)
    tailnet_name: str = ""


_CATEGORIES: dict[str, tuple[str, ...]] = {
    "media": (
        "plex", "jellyfin", "jellyseerr", "radarr", "sonarr", "prowlarr",
        "bazarr", "overseerr", "tautulli", "emby", "kodi",
    ),
    "downloads": (
        "transmission", "qbittorrent", "sabnzbd", "gluetun", "nzbget", "deluge", "aria2",
    ),
    "infrastructure": (
        "traefik", "nginx", "nginx-proxy-manager", "caddy", "portainer", "docker", "watchtower",
    ),
    "monitoring": ("netdata", "grafana", "prometheus", "uptime-kuma", "cockpit"),
    "tools": ("stirling-pdf", "it-tools", "homepage", "homarr", "dashy"),
    "productivity": ("vikunja", "n8n", "super-productivity"),
    "dev": ("gitea", "gitlab", "forgejo", "semaphore"),
    "home": ("home-assistant", "homeassistant"),
    "security": ("vaultwarden", "bitwarden", "authelia"),
    "communication": ("ntfy",),
}

_CATEGORY_PATTERNS: dict[str, str] = {
    pattern: category for category, patterns in _CATEGORIES.items() for pattern in patterns
}

# Longer patterns first so the most specific substring wins.
_PATTERNS_BY_SPECIFICITY = sorted(_CATEGORY_PATTERNS.items(), key=lambda kv: (-len(kv[0]), kv[0]))


def categorize_service(name: str, image: str) -> str:
    """Return a category for a service from its name and image, or ""."""
    exact = _CATEGORY_PATTERNS.get(name.lower())
    if exact is not None:
        return exact
    haystack = f"{name} {image}".lower()
    return next((cat for pattern, cat in _PATTERNS_BY_SPECIFICITY if pattern in haystack), "")