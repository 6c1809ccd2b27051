"""Conversion of Nova responses into the unified model."""

import json
from datetime import datetime, timezone
from typing import Dict, Optional

from infra_monitor.models.common.enums import NodeState, WorkloadState, WorkloadType
from infra_monitor.models.infrastructure import (
    NodeProviderData,
    NodeStatus,
    ServerAddress,
    Workload,
    WorkloadCpu,
    WorkloadMemory,
    WorkloadProviderData,
)
from infra_monitor.providers.openstack.schemas import NovaAbsoluteLimits, NovaFlavor, NovaHypervisor, NovaServer
from infra_monitor.services.units import create_resource_metric, gb_to_bytes, mb_to_bytes

PROJECT_NODE_PREFIX = "project-"

SERVER_STATES = {
    "ACTIVE": WorkloadState.RUNNING,
    "SHUTOFF": WorkloadState.STOPPED,
    "DELETED": WorkloadState.STOPPED,
    "SOFT_DELETED": WorkloadState.STOPPED,
    "SHELVED": WorkloadState.STOPPED,
    "SHELVED_OFFLOADED": WorkloadState.STOPPED,
    "PAUSED": WorkloadState.PAUSED,
    "SUSPENDED": WorkloadState.PAUSED,
    "BUILD": WorkloadState.PENDING,
    "REBUILD": WorkloadState.PENDING,
    "RESIZE": WorkloadState.PENDING,
    "VERIFY_RESIZE": WorkloadState.PENDING,
    "REVERT_RESIZE": WorkloadState.PENDING,
    "MIGRATING": WorkloadState.PENDING,
    "REBOOT": WorkloadState.PENDING,
    "HARD_REBOOT": WorkloadState.PENDING,
    "RESCUE": WorkloadState.PENDING,
    "PASSWORD": WorkloadState.PENDING,
    "ERROR": WorkloadState.FAILED,
}


def server_state(status: Optional[str]) -> WorkloadState:
    return SERVER_STATES.get((status or "").upper(), WorkloadState.UNKNOWN)


def hypervisor_state(hypervisor: NovaHypervisor) -> NodeState:
    if hypervisor.status == "disabled":
        return NodeState.MAINTENANCE
    if hypervisor.state == "up":
        return NodeState.ONLINE
    if hypervisor.state == "down":
        return NodeState.OFFLINE
    return NodeState.UNKNOWN


def cpu_model_from_info(cpu_info) -> Optional[str]:
    """cpu_info is a JSON string on older Nova and an object on newer ones."""
    if isinstance(cpu_info, str):
        try:
            cpu_info = json.loads(cpu_info)
        except ValueError:
            return None
    if isinstance(cpu_info, dict):
        model = cpu_info.get("model")
        return str(model) if model else None
    return None


def hypervisor_to_node(hypervisor: NovaHypervisor) -> NodeStatus:
    local_gb = hypervisor.local_gb or 0
    metadata = {}
    if hypervisor.running_vms is not None:
        metadata["running_vms"] = str(hypervisor.running_vms)
    if hypervisor.current_workload is not None:
        metadata["current_workload"] = str(hypervisor.current_workload)
    if hypervisor.host_ip:
        metadata["host_ip"] = hypervisor.host_ip

    return NodeStatus(
        id=str(hypervisor.id),
        name=hypervisor.hypervisor_hostname,
        status=hypervisor_state(hypervisor),
        cpu=create_resource_metric(hypervisor.vcpus_used or 0, hypervisor.vcpus or 0),
        memory=create_resource_metric(
            mb_to_bytes(hypervisor.memory_mb_used), mb_to_bytes(hypervisor.memory_mb)
        ),
        storage=(
            create_resource_metric(gb_to_bytes(hypervisor.local_gb_used), gb_to_bytes(local_gb))
            if local_gb > 0 else None
        ),
        metadata=metadata,
        provider_data=NodeProviderData(
            hypervisor_type=hypervisor.hypervisor_type,
            hypervisor_hostname=hypervisor.hypervisor_hostname,
            cpu_model=cpu_model_from_info(hypervisor.cpu_info),
        ),
    )


def _quota(value: Optional[int]) -> int:
    # -1 is "unlimited"; report it as no known total
    return value if value and value > 0 else 0


def project_node_id(project_name: str) -> str:
    return f"{PROJECT_NODE_PREFIX}{project_name}"


def project_summary_node(project_name: str, limits: NovaAbsoluteLimits) -> NodeStatus:
    """Pseudo-node built from project quota usage, shown to non-admin accounts."""
    metadata = {"is_project_summary": "true"}
    if limits.total_instances_used is not None:
        metadata["instances_used"] = str(limits.total_instances_used)
    if limits.max_total_instances is not None:
        metadata["instances_max"] = str(limits.max_total_instances)

    return NodeStatus(
        id=project_node_id(project_name),
        name=f"Project: {project_name}",
        status=NodeState.ONLINE,
        cpu=create_resource_metric(limits.total_cores_used or 0, _quota(limits.max_total_cores)),
        memory=create_resource_metric(
            mb_to_bytes(limits.total_ram_used), mb_to_bytes(_quota(limits.max_total_ram_size))
        ),
        metadata=metadata,
    )


def server_to_workload(
    server: NovaServer,
    flavors: Dict[str, NovaFlavor],
    now: Optional[datetime] = None,
) -> Workload:
    flavor_ref = server.flavor
    flavor = flavors.get(flavor_ref.id) if flavor_ref and flavor_ref.id else None

    if flavor is not None:
        vcpus, ram_mb, flavor_name = flavor.vcpus, flavor.ram, flavor.name
    elif flavor_ref is not None:
        vcpus, ram_mb, flavor_name = flavor_ref.vcpus, flavor_ref.ram, flavor_ref.original_name
    else:
        vcpus, ram_mb, flavor_name = None, None, None

    status = server_state(server.status)
    uptime = None
    if status == WorkloadState.RUNNING and server.launched_at is not None:
        launched_at = server.launched_at
        if launched_at.tzinfo is None:
            launched_at = launched_at.replace(tzinfo=timezone.utc)
        now = now or datetime.now(timezone.utc)
        uptime = max(int((now - launched_at).total_seconds()), 0)

    ram_bytes = mb_to_bytes(ram_mb)
    addresses = {
        network: [ServerAddress(addr=address.addr, type=address.type) for address in entries]
        for network, entries in server.addresses.items()
    }

    return Workload(
        id=server.id,
        name=server.name or server.id,
        status=status,
        type=WorkloadType.INSTANCE,
        cpu=WorkloadCpu(count=vcpus or 1),
        # Nova does not report guest memory usage
        memory=WorkloadMemory(used=0, total=ram_bytes),
        uptime=uptime,
        metadata={str(key): str(value) for key, value in server.metadata.items()},
        provider_data=WorkloadProviderData(
            flavor_name=flavor_name,
            flavor_id=flavor_ref.id if flavor_ref else None,
            image_id=server.image_id,
            tenant_id=server.tenant_id,
            availability_zone=server.availability_zone,
            addresses=addresses or None,
        ),
    )
