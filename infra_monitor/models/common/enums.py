"""
Common Enumerations - Shared enums across providers and API.

This module defines the closed vocabularies of the unified model.
Values are the wire strings returned by the API.
"""

from enum import Enum


# ============================================================================
# Provider Enumerations
# ============================================================================

class ProviderType(str, Enum):
    """Kind of infrastructure backend."""
    PROXMOX = "proxmox"
    KUBERNETES = "kubernetes"
    OPENSTACK = "openstack"


# ============================================================================
# Node and Workload Enumerations
# ============================================================================

class NodeState(str, Enum):
    """Operational state of a node, hypervisor or project summary."""
    ONLINE = "online"
    OFFLINE = "offline"
    UNKNOWN = "unknown"
    READY = "ready"
    NOT_READY = "not-ready"
    MAINTENANCE = "maintenance"


class WorkloadState(str, Enum):
    """Lifecycle state of a VM, container, pod or instance."""
    RUNNING = "running"
    STOPPED = "stopped"
    PAUSED = "paused"
    PENDING = "pending"
    FAILED = "failed"
    SUCCEEDED = "succeeded"
    UNKNOWN = "unknown"


class WorkloadType(str, Enum):
    """Kind of workload."""
    QEMU = "qemu"
    LXC = "lxc"
    POD = "pod"
    DEPLOYMENT = "deployment"
    STATEFULSET = "statefulset"
    DAEMONSET = "daemonset"
    JOB = "job"
    CRONJOB = "cronjob"
    INSTANCE = "instance"
    VOLUME = "volume"
