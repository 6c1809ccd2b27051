"""
Cluster Data Models - Top-level grouping of nodes per backend account.

A cluster that failed to load carries an error message and no nodes.
"""

from typing import List, Optional, Dict
from pydantic import BaseModel, Field, model_validator

from infra_monitor.models.common.enums import ProviderType
from infra_monitor.models.infrastructure.nodes import NodeStatus


class StorageUsage(BaseModel):
    """Shared storage capacity in bytes."""
    total: float = Field(..., ge=0, description="Total bytes")
    used: float = Field(..., ge=0, description="Used bytes")
    available: float = Field(..., ge=0, description="Available bytes")


class ClusterStorage(BaseModel):
    """Shared storage backend attached to a cluster (Ceph)."""
    type: str = Field("ceph", description="Storage backend type")
    health: str = Field(..., description="Backend health string (HEALTH_OK, HEALTH_WARN, ...)")
    usage: Optional[StorageUsage] = Field(None, description="Capacity usage")


class ClusterStatus(BaseModel):
    """Normalized cluster status."""
    name: str = Field(..., description="Cluster name, unique across the deployment")
    provider: ProviderType = Field(..., description="Backend type")
    nodes: List[NodeStatus] = Field(default_factory=list, description="Nodes of the cluster")
    version: Optional[str] = Field(None, description="Backend version string")
    error: Optional[str] = Field(None, description="Error message when the cluster could not be loaded")
    metadata: Optional[Dict[str, str]] = Field(None, description="Backend metadata (region, platform, ...)")
    storage: Optional[ClusterStorage] = Field(None, description="Shared storage status")

    @model_validator(mode="after")
    def _errored_cluster_has_no_nodes(self) -> "ClusterStatus":
        if self.error is not None and self.nodes:
            raise ValueError("a cluster with an error must not carry nodes")
        return self
