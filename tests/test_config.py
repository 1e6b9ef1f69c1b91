import pytest

from inframap.config import ComposeFile, Config, ConfigError, ScanDir, load


def test_load_without_file_gives_defaults(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    cfg = load()
    assert cfg.output == "infrastructure.d2"
    assert cfg.layout == "dagre"
    assert cfg.direction == "right"
    assert cfg.theme == "default"
    assert cfg.sources.tailscale.enabled is True
    assert cfg.display.show_devices is True
    assert cfg.display.group_by == "category"
    assert cfg.render.detail_level == "standard"
    assert cfg.render.format == "svg"
    assert cfg.raw_sources == {}


def test_load_reads_default_file_in_cwd(monkeypatch, tmp_path):
    (tmp_path / "inframap.yml").write_text("output: out.d2\ntheme: dark\n")
    monkeypatch.chdir(tmp_path)
    cfg = load()
    assert cfg.output == "out.d2"
    assert cfg.theme == "dark"


def test_load_explicit_file(tmp_path):
    path = tmp_path / "conf.yml"
    path.write_text(
        "direction: down\n"
        "sources:\n"
        "  ansible:\n"
        "    inventory: ./hosts.yml\n"
        "    primary_group: tailnet\n"
        "  compose:\n"
        "    files:\n"
        "      - path: ./c.yml\n"
        "        server: srv\n"
        "        template: true\n"
        "    scan_dirs:\n"
        "      - path: ~/docker\n"
        "        server: homelab\n"
        "  tailscale:\n"
        "    enabled: false\n"
        "render:\n"
        "  detail_level: detailed\n"
    )
    cfg = load(path)
    assert cfg.direction == "down"
    assert cfg.sources.ansible.inventory == "./hosts.yml"
    assert cfg.sources.ansible.primary_group == "tailnet"
    assert cfg.sources.compose.files == [ComposeFile(path="./c.yml", server="srv", template=True)]
    assert cfg.sources.compose.scan_dirs == [ScanDir(path="~/docker", server="homelab")]
    assert cfg.sources.tailscale.enabled is False
    assert cfg.render.detail_level == "detailed"
    assert cfg.render.format == "svg"


def test_raw_sources_mirror_the_sources_section(tmp_path):
    path = tmp_path / "conf.yml"
    path.write_text("sources:\n  Portainer:\n    url: https://portainer.example.com\n    endpoint: 2\n")
    cfg = load(path)
    assert cfg.raw_sources == {
        "portainer": {"url": "https://portainer.example.com", "endpoint": 2}
    }


def test_keys_are_case_insensitive(tmp_path):
    path = tmp_path / "conf.yml"
    path.write_text("Output: upper.d2\n")
    assert load(path).output == "upper.d2"


def test_explicit_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load(tmp_path / "missing.yml")


def test_bad_type_raises(tmp_path):
    path = tmp_path / "conf.yml"
    path.write_text("display:\n  show_devices: maybe\n")
    with pytest.raises(ConfigError):
        load(path)


def test_invalid_yaml_raises(tmp_path):
    path = tmp_path / "conf.yml"
    path.write_text("output: [unclosed\n")
    with pytest.raises(ConfigError):
        load(path)


def test_weak_bool_from_string():
    cfg = Config.from_mapping({"render": {"auto_render": "true"}})
    assert cfg.render.auto_render is True


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "conf.yml"
    path.write_text("")
    assert load(path) == Config()