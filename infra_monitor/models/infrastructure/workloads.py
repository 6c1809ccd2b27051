"""
Workload Data Models - VMs, containers, pods and compute instances.
"""

from typing import List, Optional, Dict
from pydantic import BaseModel, Field

from infra_monitor.models.common.enums import WorkloadState, WorkloadType
from infra_monitor.models.infrastructure.metrics import WorkloadCpu, WorkloadMemory


class ContainerInfo(BaseModel):
    """Container inside a pod."""
    name: str = Field(..., description="Container name")
    image: str = Field(..., description="Container image")
    ready: bool = Field(False, description="Readiness flag")
    restart_count: int = Field(0, ge=0, description="Restart count")
    state: str = Field("unknown", description="running, waiting/terminated reason, or unknown")


class ServerAddress(BaseModel):
    """Network address of an instance."""
    addr: str = Field(..., description="IP address")
    type: Optional[str] = Field(None, description="fixed or floating")


class WorkloadProviderData(BaseModel):
    """Backend-specific workload details. Every field is optional."""
    # Proxmox
    vmid: Optional[int] = Field(None, description="Guest VMID")

    # Kubernetes
    namespace: Optional[str] = Field(None, description="Pod namespace")
    containers: Optional[List[ContainerInfo]] = Field(None, description="Pod containers")
    node_name: Optional[str] = Field(None, description="Node the pod is scheduled on")
    pod_ip: Optional[str] = Field(None, description="Pod IP")

    # OpenStack
    flavor_name: Optional[str] = Field(None, description="Flavor name")
    flavor_id: Optional[str] = Field(None, description="Flavor id")
    image_id: Optional[str] = Field(None, description="Image id")
    tenant_id: Optional[str] = Field(None, description="Owning project id")
    availability_zone: Optional[str] = Field(None, description="Availability zone")
    addresses: Optional[Dict[str, List[ServerAddress]]] = Field(None, description="Addresses per network")


class Workload(BaseModel):
    """Normalized workload status."""
    id: str = Field(..., description="Backend-derived workload identifier")
    name: str = Field(..., description="Workload name")
    status: WorkloadState = Field(..., description="Lifecycle state")
    type: WorkloadType = Field(..., description="Workload kind")
    cpu: WorkloadCpu = Field(..., description="CPU allocation and usage ratio")
    memory: WorkloadMemory = Field(..., description="Memory in bytes")
    uptime: Optional[int] = Field(None, ge=0, description="Uptime in seconds")
    metadata: Dict[str, str] = Field(default_factory=dict, description="Free-form string metadata")
    provider_data: Optional[WorkloadProviderData] = Field(None, description="Backend-specific detail")
