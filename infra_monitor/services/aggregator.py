"""
Infrastructure Aggregator - Single entry point for the API layer.

Fans requests out to providers concurrently and merges their results
into the unified model. A failing provider contributes nothing (or an
errored cluster) and never aborts the others.
"""

import asyncio
import logging
import time
from typing import List, Optional

from infra_monitor.middleware.metrics import record_provider_call
from infra_monitor.models.common.enums import ProviderType
from infra_monitor.models.common.responses import ProviderHealth
from infra_monitor.models.infrastructure import ClusterStatus, NodeStatus, Workload
from infra_monitor.providers.base import InfraProvider
from infra_monitor.services.registry import ProviderRegistry

logger = logging.getLogger(__name__)


class InfrastructureAggregator:
    """Concurrent fan-out over the providers of a registry."""

    def __init__(self, registry: ProviderRegistry):
        self.registry = registry

    async def _provider_clusters(self, provider: InfraProvider) -> List[ClusterStatus]:
        start_time = time.time()
        try:
            clusters = await provider.get_clusters()
        except Exception:
            logger.exception(f"Provider '{provider.name}' failed to return clusters")
            record_provider_call(provider.type.value, "get_clusters", "exception", time.time() - start_time)
            return []
        outcome = "error" if any(cluster.error for cluster in clusters) else "success"
        record_provider_call(provider.type.value, "get_clusters", outcome, time.time() - start_time)
        return clusters

    async def get_all_clusters(self, provider_type: Optional[ProviderType] = None) -> List[ClusterStatus]:
        """
        Get clusters of every provider, or of one provider type.

        Args:
            provider_type: Optional provider type filter

        Returns:
            Flattened clusters, grouped in provider configuration order
        """
        providers = self.registry.list_providers(provider_type)
        if not providers:
            return []
        results = await asyncio.gather(*(self._provider_clusters(p) for p in providers))
        return [cluster for clusters in results for cluster in clusters]

    async def get_cluster(self, cluster_name: str) -> Optional[ClusterStatus]:
        provider = self.registry.get_provider_for_cluster(cluster_name)
        if provider is None:
            logger.info(f"No provider owns cluster '{cluster_name}'")
            return None

        start_time = time.time()
        try:
            cluster = await provider.get_cluster(cluster_name)
        except Exception:
            logger.exception(f"Provider '{provider.name}' failed to return cluster '{cluster_name}'")
            record_provider_call(provider.type.value, "get_cluster", "exception", time.time() - start_time)
            return None
        if cluster is None:
            outcome = "not_found"
        else:
            outcome = "error" if cluster.error else "success"
        record_provider_call(provider.type.value, "get_cluster", outcome, time.time() - start_time)
        return cluster

    async def get_node(self, cluster_name: str, node_name: str) -> Optional[NodeStatus]:
        provider = self.registry.get_provider_for_cluster(cluster_name)
        if provider is None:
            logger.info(f"No provider owns cluster '{cluster_name}'")
            return None

        start_time = time.time()
        try:
            node = await provider.get_node(cluster_name, node_name)
        except Exception:
            logger.exception(f"Provider '{provider.name}' failed to return node '{node_name}'")
            record_provider_call(provider.type.value, "get_node", "exception", time.time() - start_time)
            return None
        outcome = "success" if node is not None else "not_found"
        record_provider_call(provider.type.value, "get_node", outcome, time.time() - start_time)
        return node

    async def get_workloads(self, cluster_name: str, node_name: str) -> List[Workload]:
        provider = self.registry.get_provider_for_cluster(cluster_name)
        if provider is None:
            logger.info(f"No provider owns cluster '{cluster_name}'")
            return []

        start_time = time.time()
        try:
            workloads = await provider.get_workloads(cluster_name, node_name)
        except Exception:
            logger.exception(f"Provider '{provider.name}' failed to return workloads of '{node_name}'")
            record_provider_call(provider.type.value, "get_workloads", "exception", time.time() - start_time)
            return []
        record_provider_call(provider.type.value, "get_workloads", "success", time.time() - start_time)
        return workloads

    def owns_cluster(self, cluster_name: str) -> bool:
        return self.registry.get_provider_for_cluster(cluster_name) is not None

    def list_provider_names(self, provider_type: Optional[ProviderType] = None) -> List[str]:
        return [provider.name for provider in self.registry.list_providers(provider_type)]

    async def _probe(self, provider: InfraProvider) -> ProviderHealth:
        try:
            result = await provider.test_connection()
        except Exception as e:
            logger.exception(f"Connection test of '{provider.name}' raised")
            return ProviderHealth(name=provider.name, type=provider.type.value, ok=False, message=str(e))
        return ProviderHealth(name=provider.name, type=provider.type.value, ok=result.ok, message=result.message)

    async def test_connections(self) -> List[ProviderHealth]:
        """Run every provider's connection test concurrently."""
        providers = self.registry.list_providers()
        return list(await asyncio.gather(*(self._probe(p) for p in providers)))

    async def reload(self):
        await self.registry.reinitialize()
