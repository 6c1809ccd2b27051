"""Unified infrastructure monitor for Proxmox, Kubernetes and OpenStack."""

__version__ = "0.1.0"
