import pytest

from inframap.collectors.base import (
    Collector,
    CollectorError,
    CollectorMetadata,
    ValidationError,
    detect_service_type,
    to_int,
    to_string,
)
from inframap.model import ServiceType


@pytest.mark.parametrize(
    "image,name,expected",
    [
        ("postgres:15-alpine", "db", ServiceType.DATABASE),
        ("mysql:8", "database", ServiceType.DATABASE),
        ("redis:7", "cache", ServiceType.DATABASE),
        ("louislam/uptime-kuma:1", "uptime-kuma", ServiceType.CONTAINER),
        ("nginx:latest", "web", ServiceType.CONTAINER),
    ],
)
def test_detect_service_type(image, name, expected):
    assert detect_service_type(image, name) == expected


def test_detect_service_type_uses_name_when_image_empty():
    assert detect_service_type("", "postgresql") == ServiceType.DATABASE


@pytest.mark.parametrize(
    "value,expected",
    [(None, ""), ("abc", "abc"), (42, "42"), (True, "true"), (False, "false")],
)
def test_to_string(value, expected):
    assert to_string(value) == expected


@pytest.mark.parametrize(
    "value,expected",
    [(None, 0), (19999, 19999), (9090.7, 9090), ("80", 0), (True, 0), (float("nan"), 0)],
)
def test_to_int(value, expected):
    assert to_int(value) == expected


def test_collector_error_message_and_cause():
    inner = FileNotFoundError("missing")
    err = CollectorError("Ansible Inventory", inner)
    assert str(err) == "Ansible Inventory: missing"
    assert err.collector == "Ansible Inventory"
    assert err.err is inner
    assert err.__cause__ is inner


def test_collector_is_abstract():
    with pytest.raises(TypeError):
        Collector()


def test_metadata_and_validation_error_fields():
    meta = CollectorMetadata(name="ansible", display_name="Ansible Inventory", config_key="ansible")
    assert meta.config_key == "ansible"
    assert meta.detect_hint == ""
    verr = ValidationError(field="sources.x", message="bad")
    assert verr.suggestion == ""
    assert verr == ValidationError("sources.x", "bad", "")