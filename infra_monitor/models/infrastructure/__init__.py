from infra_monitor.models.infrastructure.metrics import ResourceMetric, WorkloadCpu, WorkloadMemory
from infra_monitor.models.infrastructure.nodes import NodeCondition, NodeTaint, NodeProviderData, NodeStatus
from infra_monitor.models.infrastructure.workloads import (
    ContainerInfo,
    ServerAddress,
    WorkloadProviderData,
    Workload,
)
from infra_monitor.models.infrastructure.clusters import StorageUsage, ClusterStorage, ClusterStatus

__all__ = [
    "ResourceMetric",
    "WorkloadCpu",
    "WorkloadMemory",
    "NodeCondition",
    "NodeTaint",
    "NodeProviderData",
    "NodeStatus",
    "ContainerInfo",
    "ServerAddress",
    "WorkloadProviderData",
    "Workload",
    "StorageUsage",
    "ClusterStorage",
    "ClusterStatus",
]
