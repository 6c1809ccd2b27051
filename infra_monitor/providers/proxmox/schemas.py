"""
Proxmox VE API response shapes.

Only the fields the monitor reads are declared; anything else in the
{data: ...} envelope is ignored. Numeric fields are optional because
Proxmox omits them for offline nodes and stopped guests.
"""

from typing import List, Optional
from pydantic import BaseModel, Field


class ProxmoxVersion(BaseModel):
    version: str
    release: Optional[str] = None
    repoid: Optional[str] = None


class ProxmoxNodeSummary(BaseModel):
    """Entry of GET /nodes."""
    id: Optional[str] = None
    node: str
    status: str = "unknown"
    cpu: Optional[float] = Field(None, description="CPU utilization ratio (0..1)")
    maxcpu: Optional[int] = Field(None, description="Logical CPU count")
    mem: Optional[float] = None
    maxmem: Optional[float] = None
    disk: Optional[float] = None
    maxdisk: Optional[float] = None
    uptime: Optional[int] = None


class ProxmoxUsage(BaseModel):
    total: Optional[float] = None
    used: Optional[float] = None
    free: Optional[float] = None


class ProxmoxCpuInfo(BaseModel):
    model: Optional[str] = None
    sockets: Optional[int] = None
    cores: Optional[int] = None
    cpus: Optional[int] = None


class ProxmoxNodeDetail(BaseModel):
    """GET /nodes/{node}/status."""
    cpu: Optional[float] = None
    memory: Optional[ProxmoxUsage] = None
    rootfs: Optional[ProxmoxUsage] = None
    uptime: Optional[int] = None
    cpuinfo: Optional[ProxmoxCpuInfo] = None
    kversion: Optional[str] = None


class ProxmoxGuest(BaseModel):
    """Entry of GET /nodes/{node}/qemu and /lxc. vmid is a string for some LXC versions."""
    vmid: int
    name: Optional[str] = None
    status: str = "unknown"
    cpu: Optional[float] = None
    cpus: Optional[float] = None
    mem: Optional[float] = None
    maxmem: Optional[float] = None
    uptime: Optional[int] = None


class ProxmoxGuestStatus(BaseModel):
    """GET /nodes/{node}/{type}/{vmid}/status/current."""
    status: Optional[str] = None
    cpu: Optional[float] = None
    cpus: Optional[float] = None
    mem: Optional[float] = None
    maxmem: Optional[float] = None
    uptime: Optional[int] = None


class CephHealth(BaseModel):
    status: str = "unknown"


class CephPgMap(BaseModel):
    bytes_total: Optional[float] = None
    bytes_used: Optional[float] = None
    bytes_avail: Optional[float] = None


class CephStatus(BaseModel):
    """GET /cluster/ceph/status."""
    health: CephHealth = Field(default_factory=CephHealth)
    pgmap: Optional[CephPgMap] = None


class ProxmoxNodeList(BaseModel):
    nodes: List[ProxmoxNodeSummary]


class ProxmoxGuestList(BaseModel):
    guests: List[ProxmoxGuest]
