"""
Node Data Models - Hypervisor hosts, orchestrator nodes and project summaries.

A node is a physical or logical compute host inside a cluster. The
provider_data block is a closed set of optional backend-specific fields.
"""

from typing import List, Optional, Dict
from pydantic import BaseModel, Field

from infra_monitor.models.common.enums import NodeState
from infra_monitor.models.infrastructure.metrics import ResourceMetric


# ============================================================================
# Provider-specific detail
# ============================================================================

class NodeCondition(BaseModel):
    """Kubernetes node condition."""
    type: str = Field(..., description="Condition type (Ready, MemoryPressure, ...)")
    status: str = Field(..., description="True, False or Unknown")
    message: Optional[str] = Field(None, description="Condition message")


class NodeTaint(BaseModel):
    """Kubernetes node taint."""
    key: str = Field(..., description="Taint key")
    value: Optional[str] = Field(None, description="Taint value")
    effect: str = Field(..., description="NoSchedule, PreferNoSchedule or NoExecute")


class NodeProviderData(BaseModel):
    """Backend-specific node details. Every field is optional."""
    # Proxmox
    cpu_model: Optional[str] = Field(None, description="CPU model name")
    cpu_sockets: Optional[int] = Field(None, ge=0, description="Number of CPU sockets")
    cpu_cores: Optional[int] = Field(None, ge=0, description="Number of CPU cores")
    kernel_version: Optional[str] = Field(None, description="Kernel version")
    manufacturer: Optional[str] = Field(None, description="Hardware manufacturer (from inventory)")
    product_name: Optional[str] = Field(None, description="Hardware product name (from inventory)")

    # Kubernetes
    kubelet_version: Optional[str] = Field(None, description="Kubelet version")
    container_runtime: Optional[str] = Field(None, description="Container runtime version")
    os_image: Optional[str] = Field(None, description="Operating system image")
    architecture: Optional[str] = Field(None, description="CPU architecture")
    conditions: Optional[List[NodeCondition]] = Field(None, description="Node conditions")
    taints: Optional[List[NodeTaint]] = Field(None, description="Node taints")

    # OpenStack
    hypervisor_type: Optional[str] = Field(None, description="Hypervisor type (QEMU, ...)")
    hypervisor_hostname: Optional[str] = Field(None, description="Hypervisor hostname")


# ============================================================================
# Core Node Model
# ============================================================================

class NodeStatus(BaseModel):
    """Normalized node status."""
    id: str = Field(..., description="Backend-derived node identifier")
    name: str = Field(..., description="Node name")
    status: NodeState = Field(..., description="Node operational state")
    cpu: ResourceMetric = Field(..., description="CPU in cores")
    memory: ResourceMetric = Field(..., description="Memory in bytes")
    storage: Optional[ResourceMetric] = Field(None, description="Storage in bytes")
    uptime: Optional[int] = Field(None, ge=0, description="Uptime in seconds")
    metadata: Dict[str, str] = Field(default_factory=dict, description="Free-form string metadata (labels, counters)")
    provider_data: Optional[NodeProviderData] = Field(None, description="Backend-specific detail")
