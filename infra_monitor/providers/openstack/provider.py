"""
OpenStack provider.

One cluster per (account, region), named "<account>/<region>" or
"<account>/default" when no region is configured. Accounts holding the
admin role see one node per hypervisor. Other accounts see a single
project summary node built from their quota usage.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from infra_monitor.models.common.enums import ProviderType
from infra_monitor.models.common.responses import ConnectionResult
from infra_monitor.models.infrastructure import ClusterStatus, NodeStatus, Workload
from infra_monitor.providers.base import InfraProvider
from infra_monitor.providers.config import OpenStackConfig
from infra_monitor.providers.exceptions import ProviderException, ProviderResponseError
from infra_monitor.providers.openstack.auth import AuthToken, KeystoneAuthenticator, TokenCache
from infra_monitor.providers.openstack.client import NovaClient
from infra_monitor.providers.openstack.mappers import (
    PROJECT_NODE_PREFIX,
    hypervisor_to_node,
    project_summary_node,
    server_to_workload,
)
from infra_monitor.providers.openstack.schemas import NovaFlavor
from infra_monitor.services.cache import TTLCache
from infra_monitor.services.units import natural_sort_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegionTarget:
    cluster_name: str
    region: Optional[str]


class OpenStackProvider(InfraProvider):
    """Provider for one OpenStack project across one or more regions."""

    type = ProviderType.OPENSTACK

    def __init__(
        self,
        config: OpenStackConfig,
        timeout: float,
        flavor_cache_ttl: int = 300,
        client: Optional[NovaClient] = None,
    ):
        super().__init__(config)
        if client is None:
            authenticator = KeystoneAuthenticator(timeout=timeout, verify=not config.allow_insecure)
            client = NovaClient(config, timeout, TokenCache(authenticator.authenticate))
        self.client = client
        self.flavor_cache = TTLCache(default_ttl=flavor_cache_ttl)
        self.targets = [
            RegionTarget(f"{config.name}/{region or 'default'}", region)
            for region in config.effective_regions
        ]

    def cluster_names(self) -> List[str]:
        return [target.cluster_name for target in self.targets]

    def _target_for(self, cluster_name: str) -> Optional[RegionTarget]:
        for target in self.targets:
            if cluster_name == target.cluster_name:
                return target
        if len(self.targets) == 1 and cluster_name == self.name:
            return self.targets[0]
        return None

    def owns_cluster(self, cluster_name: str) -> bool:
        return self._target_for(cluster_name) is not None

    @property
    def project_name(self) -> str:
        return self.config.project_name

    async def _token(self) -> AuthToken:
        return await asyncio.to_thread(self.client.get_token)

    async def test_connection(self) -> ConnectionResult:
        try:
            token = await self._token()
            await asyncio.to_thread(self.client.check, self.targets[0].region)
        except ProviderResponseError as e:
            return ConnectionResult(ok=False, message=f"API returned {e.status_code}: {e}")
        except ProviderException as e:
            return ConnectionResult(ok=False, message=f"Connection failed: {e}")
        role = "admin" if token.is_admin else "member"
        return ConnectionResult(ok=True, message=f"Connected to {token.project_name or self.project_name} ({role})")

    # ========================================================================
    # Clusters
    # ========================================================================

    async def get_clusters(self) -> List[ClusterStatus]:
        try:
            token = await self._token()
        except ProviderException as e:
            logger.error(f"Keystone authentication failed for '{self.name}': {e}")
            return [self._error_cluster(target.cluster_name, str(e)) for target in self.targets]
        return list(await asyncio.gather(*(self._load_cluster(target, token) for target in self.targets)))

    async def get_cluster(self, cluster_name: str) -> Optional[ClusterStatus]:
        target = self._target_for(cluster_name)
        if target is None:
            return None
        try:
            token = await self._token()
        except ProviderException as e:
            logger.error(f"Keystone authentication failed for '{self.name}': {e}")
            return self._error_cluster(target.cluster_name, str(e))
        return await self._load_cluster(target, token)

    async def _summary_node(self, region: Optional[str]) -> NodeStatus:
        limits = await asyncio.to_thread(self.client.get_limits, region)
        return project_summary_node(self.project_name, limits)

    async def _load_nodes(self, target: RegionTarget, token: AuthToken) -> List[NodeStatus]:
        if token.is_admin:
            try:
                hypervisors = await asyncio.to_thread(self.client.list_hypervisors, target.region)
                return [hypervisor_to_node(hypervisor) for hypervisor in hypervisors]
            except ProviderResponseError as e:
                if e.status_code != 403:
                    raise
                logger.info(f"Hypervisor listing forbidden for '{self.name}', using project summary")
        return [await self._summary_node(target.region)]

    async def _load_cluster(self, target: RegionTarget, token: AuthToken) -> ClusterStatus:
        try:
            nodes = await self._load_nodes(target, token)
        except ProviderException as e:
            logger.error(f"Failed to load OpenStack cluster '{target.cluster_name}': {e}")
            return self._error_cluster(target.cluster_name, str(e))
        except Exception as e:
            logger.exception(f"Failed to map OpenStack cluster '{target.cluster_name}'")
            return self._error_cluster(target.cluster_name, str(e))

        metadata = {
            "project_name": token.project_name or self.project_name,
            "is_admin": str(token.is_admin).lower(),
        }
        if token.project_id:
            metadata["project_id"] = token.project_id
        if target.region:
            metadata["region"] = target.region

        return ClusterStatus(
            name=target.cluster_name,
            provider=self.type,
            nodes=sorted(nodes, key=lambda node: natural_sort_key(node.name)),
            metadata=metadata,
        )

    # ========================================================================
    # Node
    # ========================================================================

    def _is_summary_node(self, node_name: str) -> bool:
        return node_name.startswith(PROJECT_NODE_PREFIX) or self.project_name in node_name

    async def get_node(self, cluster_name: str, node_name: str) -> Optional[NodeStatus]:
        target = self._target_for(cluster_name)
        if target is None:
            return None
        try:
            token = await self._token()
            if token.is_admin and not node_name.startswith(PROJECT_NODE_PREFIX):
                try:
                    hypervisor = await asyncio.to_thread(self.client.find_hypervisor, target.region, node_name)
                except ProviderResponseError as e:
                    if e.status_code != 403:
                        raise
                    hypervisor = None
                if hypervisor is not None:
                    return hypervisor_to_node(hypervisor)
            if self._is_summary_node(node_name):
                return await self._summary_node(target.region)
        except ProviderException as e:
            logger.error(f"Failed to load node '{node_name}' in '{cluster_name}': {e}")
            return None
        logger.info(f"Node '{node_name}' not found in '{cluster_name}'")
        return None

    # ========================================================================
    # Workloads
    # ========================================================================

    async def _flavors(self, region: Optional[str]) -> Dict[str, NovaFlavor]:
        key = region or "default"
        flavors = await self.flavor_cache.get(key)
        if flavors is not None:
            return flavors
        try:
            flavor_list = await asyncio.to_thread(self.client.list_flavors, region)
        except ProviderException as e:
            logger.warning(f"Could not fetch flavors for '{self.name}': {e}")
            return {}
        flavors = {flavor.id: flavor for flavor in flavor_list}
        await self.flavor_cache.set(key, flavors)
        return flavors

    async def get_workloads(self, cluster_name: str, node_name: str) -> List[Workload]:
        target = self._target_for(cluster_name)
        if target is None:
            return []
        try:
            token = await self._token()
            servers, flavors = await asyncio.gather(
                asyncio.to_thread(self.client.list_servers, target.region),
                self._flavors(target.region),
            )
        except ProviderException as e:
            logger.error(f"Failed to list servers of '{node_name}' in '{cluster_name}': {e}")
            return []

        if token.is_admin and not node_name.startswith(PROJECT_NODE_PREFIX):
            placed = [server for server in servers if server.hypervisor_hostname == node_name]
            if placed:
                servers = placed
            else:
                logger.debug(f"No servers report hypervisor '{node_name}', returning all project servers")

        try:
            workloads = [server_to_workload(server, flavors) for server in servers]
        except Exception:
            logger.exception(f"Failed to map servers of '{node_name}' in '{cluster_name}'")
            return []
        return sorted(workloads, key=lambda workload: natural_sort_key(workload.name))

    async def close(self):
        await self.flavor_cache.clear()
        self.client.token_cache.clear()
        self.client.session.close()
