"""Collectors for Ansible, Docker Compose, Tailscale, Kubernetes, Proxmox and systemd, and merging of their results."""