"""
Conversion of Kubernetes API objects into the unified model.

Mappers accept objects from the kubernetes client (V1Node, V1Pod) and
read them by attribute only, so any object with the same attributes works.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from infra_monitor.models.common.enums import NodeState, WorkloadState, WorkloadType
from infra_monitor.models.infrastructure import (
    ContainerInfo,
    NodeCondition,
    NodeProviderData,
    NodeStatus,
    NodeTaint,
    Workload,
    WorkloadCpu,
    WorkloadMemory,
    WorkloadProviderData,
)
from infra_monitor.services.units import (
    cpu_count_from_cores,
    create_resource_metric,
    parse_cpu_quantity,
    parse_memory_quantity,
)

# (cpu cores, memory bytes)
Usage = Tuple[float, float]

_POD_PHASES = {
    "Running": WorkloadState.RUNNING,
    "Pending": WorkloadState.PENDING,
    "Succeeded": WorkloadState.SUCCEEDED,
    "Failed": WorkloadState.FAILED,
}


def _seconds_since(timestamp: Optional[datetime], now: Optional[datetime] = None) -> Optional[int]:
    if timestamp is None:
        return None
    now = now or datetime.now(timezone.utc)
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return max(int((now - timestamp).total_seconds()), 0)


def _usage_from_metric(item: Dict[str, Any]) -> Usage:
    usage = item.get("usage") or {}
    return parse_cpu_quantity(usage.get("cpu")), parse_memory_quantity(usage.get("memory"))


def node_usage_map(metrics: Optional[Dict[str, Any]]) -> Dict[str, Usage]:
    """NodeMetricsList -> {node name: (cores, bytes)}"""
    result = {}
    for item in (metrics or {}).get("items", []):
        name = (item.get("metadata") or {}).get("name")
        if name:
            result[name] = _usage_from_metric(item)
    return result


def pod_usage_map(metrics: Optional[Dict[str, Any]]) -> Dict[str, Usage]:
    """PodMetricsList -> {"namespace/name": (cores, bytes)} summed over containers."""
    result = {}
    for item in (metrics or {}).get("items", []):
        metadata = item.get("metadata") or {}
        key = f"{metadata.get('namespace')}/{metadata.get('name')}"
        cpu = 0.0
        memory = 0.0
        for container in item.get("containers") or []:
            container_cpu, container_memory = _usage_from_metric(container)
            cpu += container_cpu
            memory += container_memory
        result[key] = (cpu, memory)
    return result


def node_state(node: Any) -> NodeState:
    """
    Ready condition True -> ready, False -> not-ready, missing/Unknown -> unknown.
    A ready node marked unschedulable is reported as maintenance.
    """
    conditions = (node.status.conditions if node.status else None) or []
    ready = next((c for c in conditions if c.type == "Ready"), None)
    if ready is None:
        state = NodeState.UNKNOWN
    elif ready.status == "True":
        state = NodeState.READY
    elif ready.status == "False":
        state = NodeState.NOT_READY
    else:
        state = NodeState.UNKNOWN

    if state == NodeState.READY and node.spec is not None and node.spec.unschedulable:
        return NodeState.MAINTENANCE
    return state


def node_to_status(node: Any, usage: Optional[Usage] = None, now: Optional[datetime] = None) -> NodeStatus:
    status = node.status
    allocatable = (status.allocatable if status else None) or {}
    capacity = (status.capacity if status else None) or {}

    cpu_total = parse_cpu_quantity(allocatable.get("cpu") or capacity.get("cpu"))
    memory_total = parse_memory_quantity(allocatable.get("memory") or capacity.get("memory"))
    storage_total = parse_memory_quantity(
        allocatable.get("ephemeral-storage") or capacity.get("ephemeral-storage")
    )
    cpu_used, memory_used = usage or (0.0, 0.0)

    info = status.node_info if status else None
    conditions = [
        NodeCondition(type=c.type, status=c.status, message=c.message)
        for c in (status.conditions if status else None) or []
    ]
    taints = [
        NodeTaint(key=t.key, value=t.value, effect=t.effect)
        for t in (node.spec.taints if node.spec else None) or []
    ]

    return NodeStatus(
        id=node.metadata.uid or node.metadata.name,
        name=node.metadata.name,
        status=node_state(node),
        cpu=create_resource_metric(cpu_used, cpu_total),
        memory=create_resource_metric(memory_used, memory_total),
        storage=create_resource_metric(0, storage_total) if storage_total else None,
        uptime=_seconds_since(node.metadata.creation_timestamp, now),
        metadata=dict(node.metadata.labels or {}),
        provider_data=NodeProviderData(
            kubelet_version=info.kubelet_version if info else None,
            container_runtime=info.container_runtime_version if info else None,
            os_image=info.os_image if info else None,
            architecture=info.architecture if info else None,
            kernel_version=info.kernel_version if info else None,
            conditions=conditions or None,
            taints=taints or None,
        ),
    )


def container_state(container_status: Any) -> str:
    state = container_status.state if container_status else None
    if state is None:
        return "unknown"
    if state.running is not None:
        return "running"
    if state.waiting is not None:
        return state.waiting.reason or "waiting"
    if state.terminated is not None:
        return state.terminated.reason or "terminated"
    return "unknown"


def _sum_resources(containers: List[Any], field: str) -> Tuple[float, float]:
    cpu = 0.0
    memory = 0.0
    for container in containers:
        resources = container.resources
        values = (getattr(resources, field, None) if resources else None) or {}
        cpu += parse_cpu_quantity(values.get("cpu"))
        memory += parse_memory_quantity(values.get("memory"))
    return cpu, memory


def pod_to_workload(pod: Any, usage: Optional[Usage] = None, now: Optional[datetime] = None) -> Workload:
    spec_containers = (pod.spec.containers if pod.spec else None) or []
    statuses = {cs.name: cs for cs in (pod.status.container_statuses if pod.status else None) or []}

    containers = []
    for container in spec_containers:
        cs = statuses.get(container.name)
        containers.append(ContainerInfo(
            name=container.name,
            image=(cs.image if cs and cs.image else container.image) or "",
            ready=bool(cs.ready) if cs else False,
            restart_count=(cs.restart_count or 0) if cs else 0,
            state=container_state(cs),
        ))

    cpu_requests, memory_requests = _sum_resources(spec_containers, "requests")
    cpu_limits, memory_limits = _sum_resources(spec_containers, "limits")
    cpu_limits = cpu_limits or cpu_requests
    memory_limits = memory_limits or memory_requests

    cpu_usage = None
    memory_used = memory_requests
    if usage is not None:
        used_cores, used_bytes = usage
        if cpu_limits > 0:
            cpu_usage = used_cores / cpu_limits
        memory_used = used_bytes

    phase = pod.status.phase if pod.status else None
    namespace = pod.metadata.namespace

    return Workload(
        id=pod.metadata.uid or f"{namespace}/{pod.metadata.name}",
        name=pod.metadata.name,
        status=_POD_PHASES.get(phase, WorkloadState.UNKNOWN),
        type=WorkloadType.POD,
        cpu=WorkloadCpu(count=cpu_count_from_cores(cpu_limits), usage=cpu_usage),
        memory=WorkloadMemory(used=memory_used, total=memory_limits),
        uptime=_seconds_since(pod.status.start_time if pod.status else None, now),
        metadata=dict(pod.metadata.labels or {}),
        provider_data=WorkloadProviderData(
            namespace=namespace,
            containers=containers,
            node_name=pod.spec.node_name if pod.spec else None,
            pod_ip=pod.status.pod_ip if pod.status else None,
        ),
    )
