import json
import subprocess
from unittest import mock

import pytest

from inframap.collectors.systemd import SystemdCollector, SystemdServer
from inframap.model import Infrastructure, ServerType, ServiceType

UNITS = [
    {"unit": "docker.service", "load": "loaded", "active": "active", "sub": "running", "description": "Docker"},
    {"unit": "nginx.service", "load": "loaded", "active": "active", "sub": "running", "description": "Nginx"},
    {"unit": "sshd.service", "load": "loaded", "active": "active", "sub": "running", "description": "SSH"},
    {"unit": "postgresql.service", "load": "loaded", "active": "active", "sub": "running", "description": "PostgreSQL"},
    {"unit": "cron.service", "load": "loaded", "active": "active", "sub": "running", "description": "Cron"},
    {"unit": "networkd.service", "load": "loaded", "active": "active", "sub": "running", "description": "Network"},
]


@pytest.fixture
def units_file(tmp_path):
    path = tmp_path / "units.json"
    path.write_text(json.dumps(UNITS), encoding="utf-8")
    return str(path)


def _collect(server):
    infra = Infrastructure()
    SystemdCollector(servers=[server]).collect(infra)
    return infra


def test_systemd_collector(units_file):
    infra = _collect(SystemdServer(host="myserver", test_file=units_file))
    assert "myserver" in infra.servers
    server = infra.servers["myserver"]
    assert len(server.services) == 6
    names = {svc.name for svc in server.services}
    assert {"docker", "nginx", "sshd", "postgresql"} <= names
    assert server.type == ServerType.LAB


def test_systemd_collector_with_filter(units_file):
    infra = _collect(SystemdServer(host="filtered", filter=["docker", "nginx"], test_file=units_file))
    assert len(infra.servers["filtered"].services) == 2


def test_systemd_collector_with_exclude(units_file):
    infra = _collect(
        SystemdServer(host="excluded", exclude=["cron", "network", "sshd"], test_file=units_file)
    )
    server = infra.servers["excluded"]
    assert len(server.services) == 3
    names = {svc.name for svc in server.services}
    assert "cron" not in names
    assert "networkd" not in names
    assert "sshd" not in names


def test_systemd_collector_postgres_type(units_file):
    infra = _collect(SystemdServer(host="dbserver", filter=["postgresql"], test_file=units_file))
    services = infra.servers["dbserver"].services
    assert len(services) == 1
    assert services[0].type == ServiceType.DATABASE


def test_systemd_other_services_are_system(units_file):
    infra = _collect(SystemdServer(host="h", filter=["docker"], test_file=units_file))
    assert infra.servers["h"].services[0].type == ServiceType.SYSTEM


def test_systemd_metadata():
    meta = SystemdCollector().metadata()
    assert meta.name == "systemd"
    assert meta.config_key == "systemd"


def test_systemd_enabled():
    collector = SystemdCollector()
    assert collector.enabled({}) is False
    assert collector.enabled({"systemd": {"servers": []}}) is False
    assert collector.enabled({"systemd": {"servers": [{"host": "a"}]}}) is True


def test_systemd_configure_and_validate():
    collector = SystemdCollector()
    collector.configure(
        {
            "servers": [
                {"host": "a", "ssh": "root@a", "filter": ["docker", 3], "exclude": ["cron"]},
                {"ssh": "b"},
                "not-a-mapping",
            ]
        }
    )
    assert len(collector.servers) == 2
    assert collector.servers[0].filter == ["docker"]
    assert collector.servers[0].exclude == ["cron"]
    assert collector.servers[0].ssh == "root@a"
    errors = collector.validate()
    assert [e.field for e in errors] == ["sources.systemd.servers[1].host"]


def test_systemd_missing_test_file_raises(tmp_path):
    collector = SystemdCollector(servers=[SystemdServer(host="x", test_file=str(tmp_path / "none.json"))])
    with pytest.raises(RuntimeError, match="getting units for x"):
        collector.collect(Infrastructure())


def test_systemd_runs_over_ssh():
    completed = subprocess.CompletedProcess(args=[], returncode=0, stdout=json.dumps(UNITS[:1]).encode())
    with mock.patch("subprocess.run", return_value=completed) as run:
        infra = _collect(SystemdServer(host="remote", ssh="root@remote"))
    command = run.call_args[0][0]
    assert command[:3] == ["ssh", "root@remote", "systemctl"]
    assert [svc.name for svc in infra.servers["remote"].services] == ["docker"]