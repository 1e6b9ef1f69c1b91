from inframap.collectors.merge import merge
from inframap.model import Infrastructure, Server, ServerType, Service


def _infra():
    infra = Infrastructure()
    infra.servers["gateway"] = Server(
        hostname="gateway",
        type=ServerType.PRODUCTION,
        services=[Service(name="radarr", image="linuxserver/radarr")],
    )
    infra.servers["atlas"] = Server(
        hostname="atlas",
        type=ServerType.LAB,
        services=[Service(name="gitea", image="gitea/gitea", category="custom")],
    )
    infra.servers["nexus"] = Server(hostname="nexus", type=ServerType.LAB)
    infra.servers["odd"] = Server(hostname="odd", type="unknown-kind")
    return infra


def test_merge_categorises_only_empty_categories():
    infra = _infra()
    merge(infra)
    assert infra.servers["gateway"].services[0].category == "media"
    assert infra.servers["atlas"].services[0].category == "custom"


def test_merge_builds_groups_for_present_types():
    infra = _infra()
    merge(infra)
    assert set(infra.server_groups) == {"production", "lab"}
    assert infra.server_groups["production"].label == "Production"
    assert infra.server_groups["lab"].label == "Lab Servers"
    assert sorted(infra.server_groups["lab"].servers) == ["atlas", "nexus"]
    assert infra.server_groups["production"].servers == ["gateway"]


def test_merge_ignores_servers_of_unknown_type():
    infra = _infra()
    merge(infra)
    grouped = {h for g in infra.server_groups.values() for h in g.servers}
    assert "odd" not in grouped
    assert grouped == set(infra.servers) - {"odd"}


def test_merge_cluster_and_hypervisor_labels():
    infra = Infrastructure()
    infra.servers["k8s-default"] = Server(hostname="k8s-default", type=ServerType.CLUSTER)
    infra.servers["pve1"] = Server(hostname="pve1", type=ServerType.HYPERVISOR)
    infra.servers["laptop"] = Server(hostname="laptop", type=ServerType.LOCAL)
    merge(infra)
    assert infra.server_groups["cluster"].label == "Kubernetes"
    assert infra.server_groups["hypervisor"].label == "Hypervisors"
    assert infra.server_groups["local"].label == "Local"


def test_merge_empty_infrastructure_adds_nothing():
    infra = Infrastructure()
    merge(infra)
    assert infra.server_groups == {}