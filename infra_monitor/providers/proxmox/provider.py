"""
Proxmox VE provider.

Each configured account is exposed as exactly one cluster named after the
account. Authentication is a static API token sent on every call.
"""

import asyncio
import logging
from typing import List, Optional

from infra_monitor.models.common.enums import ProviderType
from infra_monitor.models.common.responses import ConnectionResult
from infra_monitor.models.infrastructure import ClusterStatus, NodeStatus, Workload
from infra_monitor.providers.base import InfraProvider, OptionalResult
from infra_monitor.providers.config import ProxmoxConfig
from infra_monitor.providers.exceptions import ProviderException, ProviderResponseError
from infra_monitor.providers.proxmox.client import GUEST_TYPES, ProxmoxClient
from infra_monitor.providers.proxmox.mappers import ceph_to_storage, guest_to_workload, node_to_status
from infra_monitor.providers.proxmox.schemas import (
    CephStatus,
    ProxmoxGuest,
    ProxmoxNodeDetail,
    ProxmoxNodeSummary,
    ProxmoxVersion,
)
from infra_monitor.services.inventory import HardwareInventory
from infra_monitor.services.units import natural_sort_key

logger = logging.getLogger(__name__)


class ProxmoxProvider(InfraProvider):
    """Provider for one Proxmox VE cluster."""

    type = ProviderType.PROXMOX

    def __init__(
        self,
        config: ProxmoxConfig,
        timeout: float,
        inventory: Optional[HardwareInventory] = None,
        client: Optional[ProxmoxClient] = None,
    ):
        super().__init__(config)
        self.client = client or ProxmoxClient(config, timeout)
        self.inventory = inventory

    async def test_connection(self) -> ConnectionResult:
        try:
            version = await asyncio.to_thread(self.client.get_version)
            return ConnectionResult(ok=True, message=f"Connected to Proxmox {version.version}")
        except ProviderResponseError as e:
            return ConnectionResult(ok=False, message=f"API returned {e.status_code}: {e}")
        except ProviderException as e:
            return ConnectionResult(ok=False, message=f"Connection failed: {e}")

    async def get_clusters(self) -> List[ClusterStatus]:
        return [await self._load_cluster()]

    async def get_cluster(self, cluster_name: str) -> Optional[ClusterStatus]:
        if not self.owns_cluster(cluster_name):
            return None
        return await self._load_cluster()

    # ========================================================================
    # Cluster
    # ========================================================================

    async def _load_cluster(self) -> ClusterStatus:
        try:
            summaries = await asyncio.to_thread(self.client.list_nodes)
        except ProviderException as e:
            logger.error(f"Failed to list nodes of Proxmox cluster '{self.name}': {e}")
            return self._error_cluster(self.name, str(e))

        try:
            version, ceph, nodes = await asyncio.gather(
                self._fetch_version(),
                self._fetch_ceph(),
                asyncio.gather(*(self._build_node(summary) for summary in summaries)),
            )
        except Exception as e:
            logger.exception(f"Failed to build Proxmox cluster '{self.name}'")
            return self._error_cluster(self.name, str(e))

        metadata = {}
        if version is not None:
            if version.release:
                metadata["release"] = version.release
            if version.repoid:
                metadata["repoid"] = version.repoid

        return ClusterStatus(
            name=self.name,
            provider=self.type,
            nodes=sorted(nodes, key=lambda node: natural_sort_key(node.name)),
            version=version.version if version else None,
            metadata=metadata or None,
            storage=ceph_to_storage(ceph.data) if ceph.has_data else None,
        )

    async def _fetch_version(self) -> Optional[ProxmoxVersion]:
        try:
            return await asyncio.to_thread(self.client.get_version)
        except ProviderException as e:
            logger.warning(f"Could not fetch Proxmox version for '{self.name}': {e}")
            return None

    async def _fetch_ceph(self) -> OptionalResult[CephStatus]:
        try:
            return OptionalResult.of(await asyncio.to_thread(self.client.get_ceph_status))
        except ProviderResponseError as e:
            logger.debug(f"Ceph not available on '{self.name}': {e}")
            return OptionalResult.unavailable(str(e))
        except ProviderException as e:
            logger.warning(f"Ceph status lookup failed on '{self.name}': {e}")
            return OptionalResult.failed(str(e))

    async def _fetch_detail(self, node_name: str) -> Optional[ProxmoxNodeDetail]:
        try:
            return await asyncio.to_thread(self.client.get_node_status, node_name)
        except ProviderException as e:
            logger.warning(f"Could not fetch detail of node '{node_name}' in '{self.name}': {e}")
            return None

    async def _build_node(self, summary: ProxmoxNodeSummary) -> NodeStatus:
        detail = None
        if summary.status == "online":
            detail = await self._fetch_detail(summary.node)
        hardware = None
        if self.inventory is not None:
            hardware = await self.inventory.lookup(self.name, summary.node)
        return node_to_status(summary, detail, hardware)

    # ========================================================================
    # Node
    # ========================================================================

    async def get_node(self, cluster_name: str, node_name: str) -> Optional[NodeStatus]:
        if not self.owns_cluster(cluster_name):
            return None
        try:
            detail = await asyncio.to_thread(self.client.get_node_status, node_name)
        except ProviderException as e:
            logger.info(f"Node '{node_name}' not available in '{cluster_name}': {e}")
            return None

        try:
            hardware = None
            if self.inventory is not None:
                hardware = await self.inventory.lookup(self.name, node_name)
            summary = ProxmoxNodeSummary(node=node_name, status="online")
            return node_to_status(summary, detail, hardware)
        except Exception:
            logger.exception(f"Failed to map node '{node_name}' of '{cluster_name}'")
            return None

    # ========================================================================
    # Workloads
    # ========================================================================

    async def _list_guests(self, node_name: str, guest_type: str) -> List[ProxmoxGuest]:
        try:
            return await asyncio.to_thread(self.client.list_guests, node_name, guest_type)
        except ProviderException as e:
            logger.warning(f"Failed to list {guest_type} guests on '{node_name}' in '{self.name}': {e}")
            return []

    async def _build_workload(self, node_name: str, guest_type: str, guest: ProxmoxGuest) -> Workload:
        current = None
        if guest.status == "running":
            try:
                current = await asyncio.to_thread(
                    self.client.get_guest_status, node_name, guest_type, guest.vmid
                )
            except ProviderException as e:
                logger.debug(f"No live status for {guest_type}/{guest.vmid} on '{node_name}': {e}")
        return guest_to_workload(guest, guest_type, node_name, current)

    async def get_workloads(self, cluster_name: str, node_name: str) -> List[Workload]:
        if not self.owns_cluster(cluster_name):
            return []
        try:
            guest_lists = await asyncio.gather(
                *(self._list_guests(node_name, guest_type) for guest_type in GUEST_TYPES)
            )
            workloads = await asyncio.gather(*(
                self._build_workload(node_name, guest_type, guest)
                for guest_type, guests in zip(GUEST_TYPES, guest_lists)
                for guest in guests
            ))
        except Exception:
            logger.exception(f"Failed to load workloads of '{node_name}' in '{cluster_name}'")
            return []
        return sorted(workloads, key=lambda workload: workload.provider_data.vmid)

    async def close(self):
        self.client.session.close()
