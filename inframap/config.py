"""Configuration loading from inframap.yml."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

DEFAULT_CONFIG_FILE = "inframap.yml"


class ConfigError(ValueError):
    """Raised when the configuration file cannot be read or decoded."""


@dataclass
class ComposeFile:
    path: str = ""
    server: str = ""
    template: bool = False


@dataclass
class ScanDir:
    path: str = ""
    server: str = ""


@dataclass
class AnsibleSource:
    inventory: str = ""
    group_vars: str = ""
    primary_group: str = ""


@dataclass
class ComposeSource:
    files: list[ComposeFile] = field(default_factory=list)
    scan_dirs: list[ScanDir] = field(default_factory=list)


@dataclass
class TailscaleSource:
    enabled: bool = True
    json_file: str = ""
    include_offline: bool = False


@dataclass
class Sources:
    ansible: AnsibleSource = field(default_factory=AnsibleSource)
    compose: ComposeSource = field(default_factory=ComposeSource)
    tailscale: TailscaleSource = field(default_factory=TailscaleSource)


@dataclass
class Display:
    show_devices: bool = True
    show_volumes: bool = False
    group_by: str = "category"


@dataclass
class RenderConfig:
    detail_level: str = "standard"
    auto_render: bool = False
    format: str = "svg"


@dataclass
class Config:
    """The full configuration, with defaults for everything not given."""

    output: str = "infrastructure.d2"
    layout: str = "dagre"
    direction: str = "right"
    theme: str = "default"
    sources: Sources = field(default_factory=Sources)
    display: Display = field(default_factory=Display)
    render: RenderConfig = field(default_factory=RenderConfig)
    raw_sources: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Config:
        """Build a config from a decoded YAML document over the defaults."""
        data = _lower_keys(data)
        cfg = cls()
        cfg.output = _get_str(data, "output", cfg.output)
        cfg.layout = _get_str(data, "layout", cfg.layout)
        cfg.direction = _get_str(data, "direction", cfg.direction)
        cfg.theme = _get_str(data, "theme", cfg.theme)

        sources = _section(data, "sources")
        ansible = _section(sources, "ansible", "sources.")
        a = cfg.sources.ansible
        a.inventory = _get_str(ansible, "inventory", a.inventory)
        a.group_vars = _get_str(ansible, "group_vars", a.group_vars)
        a.primary_group = _get_str(ansible, "primary_group", a.primary_group)

        compose = _section(sources, "compose", "sources.")
        cfg.sources.compose.files = [
            ComposeFile(
                path=_get_str(item, "path", ""),
                server=_get_str(item, "server", ""),
                template=_get_bool(item, "template", False),
            )
            for item in _list_of_sections(compose, "files")
        ]
        cfg.sources.compose.scan_dirs = [
            ScanDir(path=_get_str(item, "path", ""), server=_get_str(item, "server", ""))
            for item in _list_of_sections(compose, "scan_dirs")
        ]

        tailscale = _section(sources, "tailscale", "sources.")
        t = cfg.sources.tailscale
        t.enabled = _get_bool(tailscale, "enabled", t.enabled)
        t.json_file = _get_str(tailscale, "json_file", t.json_file)
        t.include_offline = _get_bool(tailscale, "include_offline", t.include_offline)

        display = _section(data, "display")
        d = cfg.display
        d.show_devices = _get_bool(display, "show_devices", d.show_devices)
        d.show_volumes = _get_bool(display, "show_volumes", d.show_volumes)
        d.group_by = _get_str(display, "group_by", d.group_by)

        render = _section(data, "render")
        r = cfg.render
        r.detail_level = _get_str(render, "detail_level", r.detail_level)
        r.auto_render = _get_bool(render, "auto_render", r.auto_render)
        r.format = _get_str(render, "format", r.format)

        cfg.raw_sources = dict(sources)
        return cfg


def load(path: str | Path | None = None) -> Config:
    """Load the configuration.

    With no path, ``inframap.yml`` in the working directory is used if present;
    otherwise the defaults are returned. An explicit path must exist.
    """
    if path is None:
        candidate = Path(DEFAULT_CONFIG_FILE)
        if not candidate.is_file():
            return Config()
        path = candidate
    text = Path(path).read_text(encoding="utf-8")
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"reading config {path}: {exc}") from exc
    if document is None:
        return Config()
    if not isinstance(document, Mapping):
        raise ConfigError(f"config {path} is not a mapping")
    return Config.from_mapping(document)


def _lower_keys(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_lower_keys(v) for v in value]
    return value


def _section(data: Mapping[str, Any], key: str, prefix: str = "") -> Mapping[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"'{prefix}{key}' expected a map, got {type(value).__name__}")
    return value


def _list_of_sections(data: Mapping[str, Any], key: str) -> list[Mapping[str, Any]]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError(f"'{key}' expected a list, got {type(value).__name__}")
    items = []
    for item in value:
        if not isinstance(item, Mapping):
            raise ConfigError(f"'{key}' entries must be maps, got {type(item).__name__}")
        items.append(item)
    return items


def _get_str(data: Mapping[str, Any], key: str, default: str) -> str:
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return str(value)
    raise ConfigError(f"'{key}' expected a string, got {type(value).__name__}")


_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False", ""}


def _get_bool(data: Mapping[str, Any], key: str, default: bool) -> bool:
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        if value in _TRUE:
            return True
        if value in _FALSE:
            return False
    raise ConfigError(f"'{key}' expected a boolean, got {value!r}")