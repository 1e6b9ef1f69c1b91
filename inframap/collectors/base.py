"""Shared collector interface, metadata and value helpers."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Mapping

from inframap.model import Infrastructure, ServiceType

_DATABASE_KEYWORDS = (
    "postgres",
    "mysql",
    "mariadb",
    "mongo",
    "redis",
    "memcached",
    "influxdb",
    "sqlite",
)


@dataclass(frozen=True)
class CollectorMetadata:
    """Describes a collector for discovery and documentation."""

    name: str
    display_name: str
    description: str = ""
    config_key: str = ""
    detect_hint: str = ""


@dataclass(frozen=True)
class ValidationError:
    """A configuration problem with a suggested fix."""

    field: str
    message: str
    suggestion: str = ""


class CollectorError(Exception):
    """An error raised while a named collector was running."""

    def __init__(self, collector: str, err: BaseException) -> None:
        super().__init__(f"{collector}: {err}")
        self.collector = collector
        self.err = err
        self.__cause__ = err


class Collector(ABC):
    """A source of infrastructure data."""

    @abstractmethod
    def metadata(self) -> CollectorMetadata:
        """Describe this collector."""

    @abstractmethod
    def enabled(self, sources: Mapping[str, Any]) -> bool:
        """Whether the raw ``sources`` configuration switches this collector on."""

    @abstractmethod
    def configure(self, section: Mapping[str, Any] | None) -> None:
        """Take settings from this collector's configuration section."""

    @abstractmethod
    def validate(self) -> list[ValidationError]:
        """Check the configured settings and report every problem found."""

    @abstractmethod
    def collect(self, infra: Infrastructure) -> None:
        """Add what this source knows to ``infra``."""


def detect_service_type(image: str, name: str) -> ServiceType:
    """Database if the image or name mentions a known database, else container."""
    haystack = f"{image} {name}".lower()
    if any(keyword in haystack for keyword in _DATABASE_KEYWORDS):
        return ServiceType.DATABASE
    return ServiceType.CONTAINER


def to_string(value: Any) -> str:
    """Render a decoded YAML/JSON scalar as text; ``None`` becomes ""."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def to_int(value: Any) -> int:
    """Integer value of a decoded number; anything else is 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    return 0