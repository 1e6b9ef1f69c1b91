[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "inframap"
version = "0.1.0"
description = "Collect servers, services and devices from Ansible, Docker Compose, Tailscale, Kubernetes, Proxmox and systemd into one infrastructure model"
requires-python = ">=3.10"
keywords = ["infrastructure", "inventory", "ansible", "docker-compose", "tailscale", "kubernetes", "proxmox", "systemd", "homelab"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]
dependencies = [
    "pyyaml>=6.0",
    "requests>=2.28",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.23",
]

[tool.hatch.build.targets.wheel]
packages = ["inframap"]

[tool.pytest.ini_options]
addopts = "-ra"
