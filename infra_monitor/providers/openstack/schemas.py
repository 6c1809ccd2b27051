"""
Keystone v3 and Nova response shapes.

Nova extension attributes keep their wire names as aliases
("OS-EXT-SRV-ATTR:hypervisor_hostname", ...).
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Keystone
# ============================================================================

class CatalogEndpoint(BaseModel):
    id: Optional[str] = None
    interface: str
    region_id: Optional[str] = None
    region: Optional[str] = None
    url: str


class CatalogEntry(BaseModel):
    id: Optional[str] = None
    type: str
    name: Optional[str] = None
    endpoints: List[CatalogEndpoint] = Field(default_factory=list)


class KeystoneRef(BaseModel):
    id: str
    name: Optional[str] = None


class KeystoneToken(BaseModel):
    expires_at: datetime
    catalog: List[CatalogEntry] = Field(default_factory=list)
    project: Optional[KeystoneRef] = None
    user: Optional[KeystoneRef] = None
    roles: List[KeystoneRef] = Field(default_factory=list)


class KeystoneTokenResponse(BaseModel):
    token: KeystoneToken


# ============================================================================
# Nova
# ============================================================================

class NovaFlavor(BaseModel):
    id: str
    name: str
    vcpus: int = 1
    ram: int = 0
    disk: int = 0


class NovaFlavorList(BaseModel):
    flavors: List[NovaFlavor]


class NovaFlavorRef(BaseModel):
    """Server flavor: {id} before microversion 2.47, inline details after."""
    id: Optional[str] = None
    original_name: Optional[str] = None
    vcpus: Optional[int] = None
    ram: Optional[int] = None


class NovaImageRef(BaseModel):
    id: Optional[str] = None


class NovaAddress(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    addr: str
    version: Optional[int] = None
    type: Optional[str] = Field(None, alias="OS-EXT-IPS:type")


class NovaServer(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = ""
    status: str = "UNKNOWN"
    tenant_id: Optional[str] = None
    flavor: Optional[NovaFlavorRef] = None
    # Boot-from-volume servers report image as an empty string
    image: Union[NovaImageRef, str, None] = None
    addresses: Dict[str, List[NovaAddress]] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    availability_zone: Optional[str] = Field(None, alias="OS-EXT-AZ:availability_zone")
    hypervisor_hostname: Optional[str] = Field(None, alias="OS-EXT-SRV-ATTR:hypervisor_hostname")
    host: Optional[str] = Field(None, alias="OS-EXT-SRV-ATTR:host")
    launched_at: Optional[datetime] = Field(None, alias="OS-SRV-USG:launched_at")

    @property
    def image_id(self) -> Optional[str]:
        if isinstance(self.image, NovaImageRef):
            return self.image.id
        return None


class NovaServerList(BaseModel):
    servers: List[NovaServer]


class NovaHypervisor(BaseModel):
    id: Union[int, str]
    hypervisor_hostname: str
    hypervisor_type: Optional[str] = None
    state: Optional[str] = None
    status: Optional[str] = None
    host_ip: Optional[str] = None
    vcpus: Optional[int] = None
    vcpus_used: Optional[int] = None
    memory_mb: Optional[int] = None
    memory_mb_used: Optional[int] = None
    local_gb: Optional[int] = None
    local_gb_used: Optional[int] = None
    running_vms: Optional[int] = None
    current_workload: Optional[int] = None
    cpu_info: Union[Dict[str, Any], str, None] = None


class NovaHypervisorList(BaseModel):
    hypervisors: List[NovaHypervisor]


class NovaHypervisorResponse(BaseModel):
    hypervisor: NovaHypervisor


class NovaAbsoluteLimits(BaseModel):
    """limits.absolute of GET /limits. Quotas of -1 mean unlimited."""
    model_config = ConfigDict(populate_by_name=True)

    max_total_cores: Optional[int] = Field(None, alias="maxTotalCores")
    max_total_ram_size: Optional[int] = Field(None, alias="maxTotalRAMSize")
    max_total_instances: Optional[int] = Field(None, alias="maxTotalInstances")
    total_cores_used: Optional[int] = Field(None, alias="totalCoresUsed")
    total_ram_used: Optional[int] = Field(None, alias="totalRAMUsed")
    total_instances_used: Optional[int] = Field(None, alias="totalInstancesUsed")
