# inframap

`inframap` is a library that gathers what you already know about your
infrastructure into one model of servers, services and devices. It reads:

- Ansible YAML inventories and `group_vars` (`inframap.collectors.ansible`)
- Docker Compose files, Jinja2-templated compose files, and directories scanned
  for compose files (`inframap.collectors.compose`)
- Tailscale status, live from `tailscale status --json` or from a saved file
  (`inframap.collectors.tailscale`)
- Kubernetes pods and services through `kubectl` (`inframap.collectors.kubernetes`)
- Proxmox VE nodes, VMs and LXC containers through its API
  (`inframap.collectors.proxmox`)
- running systemd services, locally or over `ssh` (`inframap.collectors.systemd`)

After collection, `inframap.collectors.merge.merge` gives uncategorised
services a category (media, monitoring, dev, ...) and groups servers by type
(production, lab, local, cluster, hypervisor).

## Installation

```
pip install .
```

## Configuration

`inframap.config.load(path)` reads a YAML file; with no path it reads
`inframap.yml` from the working directory if it exists and otherwise returns
the defaults. It raises `ConfigError` when the file cannot be decoded.

```yaml
output: infrastructure.d2
direction: right
theme: default

sources:
  ansible:
    inventory: ./inventory/hosts.yml
    group_vars: ./inventory/group_vars
    primary_group: tailnet
  compose:
    files:
      - path: ./docker/compose.yml
        server: myserver
      - path: ./templates/compose.yml.j2
        server: atlas
        template: true
    scan_dirs:
      - path: ~/docker
        server: homelab
  tailscale:
    enabled: true
    include_offline: false
  kubernetes:
    context: homelab
    namespaces: [default, monitoring]
  proxmox:
    api_url: https://pve.local:8006
    insecure: true
  systemd:
    servers:
      - host: myserver
        ssh: admin@myserver
        exclude: [cron, sshd]

display:
  show_devices: true
  group_by: category

render:
  detail_level: standard
  format: svg
```

The whole `sources` section is kept as `Config.raw_sources`, which is what each
collector's `enabled` and `configure` methods read. Proxmox API credentials can
also come from `INFRAMAP_PROXMOX_TOKEN_ID` and `INFRAMAP_PROXMOX_TOKEN`.

## Usage

```python
from collections.abc import Mapping

from inframap.config import load
from inframap.model import Infrastructure
from inframap.collectors.ansible import AnsibleCollector
from inframap.collectors.compose import ComposeCollector
from inframap.collectors.tailscale import TailscaleCollector
from inframap.collectors.kubernetes import KubernetesCollector
from inframap.collectors.proxmox import ProxmoxCollector
from inframap.collectors.systemd import SystemdCollector
from inframap.collectors.merge import merge

cfg = load("inframap.yml")
infra = Infrastructure()

for collector in (
    AnsibleCollector(), ComposeCollector(), TailscaleCollector(),
    KubernetesCollector(), ProxmoxCollector(), SystemdCollector(),
):
    if not collector.enabled(cfg.raw_sources):
        continue
    section = cfg.raw_sources.get(collector.metadata().config_key)
    collector.configure(section if isinstance(section, Mapping) else None)
    for problem in collector.validate():
        print(problem.field, problem.message, problem.suggestion)
    collector.collect(infra)

merge(infra)

for hostname, server in sorted(infra.servers.items()):
    print(hostname, server.type, [s.name for s in server.services])
```

Each collector's `validate()` returns a list of `ValidationError` records
(field, message, suggestion) without raising; `collect()` raises on unreadable
or malformed input.

### Other helpers

- `inframap.model`: the dataclasses (`Server`, `Service`, `Device`,
  `PortMapping`, ...), `parse_port_mapping("127.0.0.1:8080:80/udp")` and
  `categorize_service(name, image)`.
- `inframap.render.theme`: colour themes `default`, `dark`, `monochrome` and
  `ocean`, via `get_theme(name)` and `theme_names()`.
- `inframap.util`: `sanitize_id`, `quote`, `expand_path` and `strip_jinja2`.
- `inframap.wizard`: `detect()` looks for `tailscale` on `PATH`, an Ansible
  inventory and compose files; `generate_config(WizardAnswers(...))` returns the
  text of an `inframap.yml`.
- `inframap.ui`: styled terminal messages (`format_error`, `success`,
  `validation_ok`, `validation_err`, ...).

## What this package does not do

- It installs no command-line program; it is used from Python.
- It does not write D2 diagram text or render images. It provides the collected
  model, the colour themes and D2-safe identifiers and labels; turning the
  model into a diagram is left to the caller.
- It has no interactive setup prompts; `generate_config` takes the answers as a
  `WizardAnswers` value.