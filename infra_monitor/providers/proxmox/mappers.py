"""Conversion of Proxmox responses into the unified model."""

import math
from typing import Optional

from infra_monitor.models.common.enums import NodeState, WorkloadState, WorkloadType
from infra_monitor.models.infrastructure import (
    ClusterStorage,
    NodeProviderData,
    NodeStatus,
    StorageUsage,
    Workload,
    WorkloadCpu,
    WorkloadMemory,
    WorkloadProviderData,
)
from infra_monitor.providers.proxmox.schemas import (
    CephStatus,
    ProxmoxGuest,
    ProxmoxGuestStatus,
    ProxmoxNodeDetail,
    ProxmoxNodeSummary,
)
from infra_monitor.services.inventory import HardwareInfo
from infra_monitor.services.units import create_resource_metric, ratio_to_cores

_NODE_STATES = {
    "online": NodeState.ONLINE,
    "offline": NodeState.OFFLINE,
}

_GUEST_STATES = {
    "running": WorkloadState.RUNNING,
    "stopped": WorkloadState.STOPPED,
    "paused": WorkloadState.PAUSED,
}


def _first(*values):
    for value in values:
        if value is not None:
            return value
    return None


def trim_kernel_version(kversion: Optional[str]) -> Optional[str]:
    """'Linux 6.8.12-4-pve #1 SMP ...' -> 'Linux 6.8.12-4-pve'"""
    if not kversion:
        return None
    return kversion.split(" #")[0].strip()


def node_cpu_count(summary: ProxmoxNodeSummary, detail: Optional[ProxmoxNodeDetail]) -> float:
    """Logical CPU count, which is what the Proxmox cpu ratio is relative to."""
    if summary.maxcpu:
        return summary.maxcpu
    cpuinfo = detail.cpuinfo if detail else None
    if cpuinfo is None:
        return 0
    if cpuinfo.cpus:
        return cpuinfo.cpus
    return (cpuinfo.cores or 0) * (cpuinfo.sockets or 1)


def node_to_status(
    summary: ProxmoxNodeSummary,
    detail: Optional[ProxmoxNodeDetail] = None,
    hardware: Optional[HardwareInfo] = None,
) -> NodeStatus:
    """
    Build a NodeStatus from the node list entry and, when available, the node detail.

    Nodes without detail (offline or detail call failed) keep only the
    coarse list-level figures.
    """
    cores = node_cpu_count(summary, detail)
    cpu_ratio = _first(detail.cpu if detail else None, summary.cpu)

    memory = detail.memory if detail and detail.memory else None
    mem_used = _first(memory.used if memory else None, summary.mem, 0)
    mem_total = _first(memory.total if memory else None, summary.maxmem, 0)

    rootfs = detail.rootfs if detail and detail.rootfs else None
    disk_used = _first(rootfs.used if rootfs else None, summary.disk, 0)
    disk_total = _first(rootfs.total if rootfs else None, summary.maxdisk, 0)

    provider_data = None
    if detail is not None or hardware is not None:
        cpuinfo = detail.cpuinfo if detail else None
        provider_data = NodeProviderData(
            cpu_model=cpuinfo.model if cpuinfo else None,
            cpu_sockets=cpuinfo.sockets if cpuinfo else None,
            cpu_cores=cpuinfo.cores if cpuinfo else None,
            kernel_version=trim_kernel_version(detail.kversion) if detail else None,
            manufacturer=hardware.manufacturer if hardware else None,
            product_name=hardware.product_name if hardware else None,
        )

    uptime = _first(detail.uptime if detail else None, summary.uptime)

    return NodeStatus(
        id=summary.id or f"node/{summary.node}",
        name=summary.node,
        status=_NODE_STATES.get(summary.status, NodeState.UNKNOWN),
        cpu=create_resource_metric(ratio_to_cores(cpu_ratio, cores), cores),
        memory=create_resource_metric(mem_used, mem_total),
        storage=create_resource_metric(disk_used, disk_total) if disk_total else None,
        uptime=uptime if uptime else None,
        provider_data=provider_data,
    )


def guest_to_workload(
    guest: ProxmoxGuest,
    guest_type: str,
    node_name: str,
    current: Optional[ProxmoxGuestStatus] = None,
) -> Workload:
    """Build a Workload from a qemu/lxc list entry and its optional live status."""
    status_text = _first(current.status if current else None, guest.status)
    status = _GUEST_STATES.get(status_text, WorkloadState.STOPPED)

    cpus = _first(current.cpus if current else None, guest.cpus, 1)
    usage = None
    if status == WorkloadState.RUNNING:
        usage = _first(current.cpu if current else None, guest.cpu)

    mem_used = _first(current.mem if current else None, guest.mem, 0)
    mem_total = _first(current.maxmem if current else None, guest.maxmem, 0)
    uptime = _first(current.uptime if current else None, guest.uptime)

    return Workload(
        id=str(guest.vmid),
        name=guest.name or f"{guest_type}-{guest.vmid}",
        status=status,
        type=WorkloadType.QEMU if guest_type == "qemu" else WorkloadType.LXC,
        cpu=WorkloadCpu(count=max(int(math.ceil(cpus)), 1), usage=usage),
        memory=WorkloadMemory(used=mem_used, total=mem_total),
        uptime=uptime if uptime else None,
        metadata={"node": node_name},
        provider_data=WorkloadProviderData(vmid=guest.vmid),
    )


def ceph_to_storage(ceph: CephStatus) -> ClusterStorage:
    usage = None
    if ceph.pgmap is not None and ceph.pgmap.bytes_total is not None:
        usage = StorageUsage(
            total=ceph.pgmap.bytes_total,
            used=ceph.pgmap.bytes_used or 0,
            available=ceph.pgmap.bytes_avail or 0,
        )
    return ClusterStorage(type="ceph", health=ceph.health.status, usage=usage)
