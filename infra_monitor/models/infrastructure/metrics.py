"""
Resource Metric Models - Normalized used/total/percentage triples.

Memory and storage are expressed in bytes, CPU in cores.
Instances are built through infra_monitor.services.units.create_resource_metric
so that percentage always agrees with used and total.
"""

from typing import Optional
from pydantic import BaseModel, Field


class ResourceMetric(BaseModel):
    """Used/total pair with its derived percentage."""
    used: float = Field(..., description="Used amount (bytes for memory/storage, cores for CPU)")
    total: float = Field(..., description="Total amount (bytes for memory/storage, cores for CPU)")
    percentage: float = Field(..., description="used / total * 100, or 0 when total is 0")


class WorkloadCpu(BaseModel):
    """CPU allocation of a workload."""
    count: int = Field(..., ge=0, description="Number of vCPUs or cores allocated")
    usage: Optional[float] = Field(None, ge=0, description="Current usage as a 0..1 ratio of the allocation")


class WorkloadMemory(BaseModel):
    """Memory allocation of a workload in bytes."""
    used: float = Field(..., ge=0, description="Used memory in bytes")
    total: float = Field(..., ge=0, description="Allocated memory in bytes")
