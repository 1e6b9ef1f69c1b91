import json
import subprocess
from unittest import mock

import pytest

from inframap.collectors.kubernetes import KubernetesCollector
from inframap.model import Infrastructure, ServerType, ServiceType

PODS = {
    "items": [
        {
            "metadata": {"name": "nginx-1", "namespace": "default", "labels": {"app": "nginx"}},
            "spec": {"containers": [{"name": "nginx", "image": "nginx:1.25",
                                     "ports": [{"containerPort": 80, "protocol": "TCP"}]}]},
            "status": {"phase": "Running"},
        },
        {
            "metadata": {"name": "nginx-2", "namespace": "default", "labels": {"app": "nginx"}},
            "spec": {"containers": [{"name": "nginx", "image": "nginx:1.25"}]},
            "status": {"phase": "Running"},
        },
        {
            "metadata": {"name": "postgres-0", "namespace": "default", "labels": {"app": "postgres"}},
            "spec": {"containers": [{"name": "postgres", "image": "postgres:16"}]},
            "status": {"phase": "Running"},
        },
        {
            "metadata": {"name": "pending-job", "namespace": "default", "labels": {"app": "job"}},
            "spec": {"containers": [{"name": "job", "image": "busybox"}]},
            "status": {"phase": "Pending"},
        },
        {
            "metadata": {"name": "grafana-0", "namespace": "monitoring", "labels": {}},
            "spec": {"containers": [{"name": "grafana", "image": "grafana/grafana",
                                     "ports": [{"containerPort": 3000, "protocol": "TCP"}]}]},
            "status": {"phase": "Running"},
        },
    ]
}

SERVICES = {
    "items": [
        {"metadata": {"name": "nginx", "namespace": "default"},
         "spec": {"type": "NodePort", "ports": [{"port": 80, "targetPort": 80, "nodePort": 30080}]}},
        {"metadata": {"name": "postgres", "namespace": "default"},
         "spec": {"type": "ClusterIP", "ports": [{"port": 5432, "targetPort": 5432}]}},
    ]
}

INGRESSES = {
    "items": [
        {"metadata": {"name": "web", "namespace": "default"},
         "spec": {"rules": [{"host": "web.example.com", "http": {"paths": [
             {"path": "/", "backend": {"service": {"name": "nginx", "port": {"number": 80}}}}]}}]}},
    ]
}


@pytest.fixture
def data_files(tmp_path):
    paths = {}
    for name, doc in (("pods", PODS), ("services", SERVICES), ("ingresses", INGRESSES)):
        path = tmp_path / f"{name}.json"
        path.write_text(json.dumps(doc))
        paths[name] = str(path)
    return paths


def _collector(paths, **kwargs):
    return KubernetesCollector(
        test_pods=paths["pods"],
        test_services=paths["services"],
        test_ingresses=paths["ingresses"],
        **kwargs,
    )


def test_collect_groups_by_namespace(data_files):
    infra = Infrastructure()
    _collector(data_files).collect(infra)

    assert "k8s-default" in infra.servers
    assert "k8s-monitoring" in infra.servers
    default = infra.servers["k8s-default"]
    assert default.type == ServerType.CLUSTER
    assert default.label == "k8s/default"
    assert len(default.services) == 2
    assert {s.name for s in default.services} == {"nginx", "postgres"}
    postgres = next(s for s in default.services if s.name == "postgres")
    assert postgres.type == ServiceType.DATABASE

    monitoring = infra.servers["k8s-monitoring"]
    assert len(monitoring.services) == 1
    assert monitoring.services[0].name == "grafana"


def test_ports_prefer_node_port_then_container_port(data_files):
    infra = Infrastructure()
    _collector(data_files).collect(infra)
    nginx = next(s for s in infra.servers["k8s-default"].services if s.name == "nginx")
    assert [(p.host_port, p.container_port, p.protocol) for p in nginx.ports] == [(30080, 30080, "tcp")]
    grafana = infra.servers["k8s-monitoring"].services[0]
    assert [(p.host_port, p.container_port, p.protocol) for p in grafana.ports] == [(0, 3000, "tcp")]
    assert grafana.category == "kubernetes"


def test_namespace_filter(data_files):
    infra = Infrastructure()
    _collector(data_files, namespaces=["monitoring"]).collect(infra)
    assert "k8s-default" not in infra.servers
    assert "k8s-monitoring" in infra.servers


def test_metadata():
    meta = KubernetesCollector().metadata()
    assert meta.name == "kubernetes"
    assert meta.config_key == "kubernetes"


def test_enabled_when_section_present():
    collector = KubernetesCollector()
    assert collector.enabled({}) is False
    assert collector.enabled({"kubernetes": {}}) is True


def test_configure(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    collector = KubernetesCollector()
    collector.configure({"kubeconfig": "~/kube.yml", "context": "lab", "namespaces": ["a", 3, "b"]})
    assert collector.kubeconfig == str(tmp_path / "kube.yml")
    assert collector.context == "lab"
    assert collector.namespaces == ["a", "b"]


def test_validate_missing_kubeconfig(tmp_path):
    missing = str(tmp_path / "nope.yml")
    errors = KubernetesCollector(kubeconfig=missing).validate()
    by_field = {e.field: e for e in errors}
    assert by_field["sources.kubernetes.kubeconfig"].message == f"file not found: {missing}"


def test_validate_without_kubectl(tmp_path):
    with mock.patch("inframap.collectors.kubernetes.shutil.which", return_value=None):
        errors = KubernetesCollector().validate()
    assert [e.message for e in errors] == ["kubectl not found in PATH"]


def test_kubectl_invocation():
    documents = {"pods": PODS, "svc": SERVICES, "ingress": INGRESSES}

    def fake_run(cmd, **kwargs):
        resource = cmd[cmd.index("get") + 1]
        return subprocess.CompletedProcess(cmd, 0, stdout=json.dumps(documents[resource]).encode())

    with mock.patch("inframap.collectors.kubernetes.subprocess.run", side_effect=fake_run) as run:
        infra = Infrastructure()
        KubernetesCollector(kubeconfig="/k/config", context="ctx").collect(infra)

    first = run.call_args_list[0].args[0]
    assert first == ["kubectl", "--context", "ctx", "--kubeconfig", "/k/config",
                     "get", "pods", "-A", "-o", "json"]
    assert len(infra.servers["k8s-default"].services) == 2


def test_missing_test_file_raises(tmp_path):
    collector = KubernetesCollector(test_pods=str(tmp_path / "missing.json"))
    with pytest.raises(RuntimeError, match="getting pods"):
        collector.collect(Infrastructure())