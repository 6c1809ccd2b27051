"""
Hardware inventory lookup.

The inventory is an optional JSON file maintained by operators that adds
display information Proxmox cannot report itself:

{
  "pve-cluster": {
    "pve1": {"manufacturer": "Dell", "productName": "PowerEdge R650"}
  },
  "pve2": {"manufacturer": "HPE", "productName": "ProLiant DL380"}
}

Entries are looked up by cluster and node name first, then by the bare
node name. A missing file or entry is not an error.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from infra_monitor.services.cache import TTLCache

logger = logging.getLogger(__name__)

_CACHE_KEY = "hardware_inventory"


class HardwareInfo(BaseModel):
    """Display-only hardware identification of a node."""
    model_config = ConfigDict(populate_by_name=True)

    manufacturer: Optional[str] = Field(None, description="Hardware manufacturer")
    product_name: Optional[str] = Field(None, alias="productName", description="Product/model name")


class HardwareInventory:
    """Reads the inventory file through a TTL cache."""

    def __init__(self, path: str, ttl: int = 300):
        self.path = Path(path)
        self._cache = TTLCache(default_ttl=ttl)

    def _read_file(self) -> Dict[str, Any]:
        if not self.path.exists():
            logger.debug(f"Hardware inventory {self.path} not found, skipping enrichment")
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to read hardware inventory {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Hardware inventory {self.path} is not a JSON object, ignoring it")
            return {}
        return data

    async def load(self) -> Dict[str, Any]:
        data = await self._cache.get(_CACHE_KEY)
        if data is None:
            data = self._read_file()
            await self._cache.set(_CACHE_KEY, data)
        return data

    async def lookup(self, cluster_name: str, node_name: str) -> Optional[HardwareInfo]:
        """
        Find hardware info for a node.

        Args:
            cluster_name: Cluster the node belongs to
            node_name: Node name

        Returns:
            HardwareInfo if the inventory has an entry, None otherwise
        """
        data = await self.load()

        entry = None
        cluster_entries = data.get(cluster_name)
        if isinstance(cluster_entries, dict):
            entry = cluster_entries.get(node_name)
        if entry is None:
            entry = data.get(node_name)
        if not isinstance(entry, dict):
            return None

        try:
            info = HardwareInfo.model_validate(entry)
        except ValidationError as e:
            logger.warning(f"Invalid hardware inventory entry for {cluster_name}/{node_name}: {e}")
            return None
        if info.manufacturer is None and info.product_name is None:
            return None
        return info

    async def clear(self):
        await self._cache.clear()
