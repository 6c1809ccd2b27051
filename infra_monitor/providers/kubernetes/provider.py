"""
Kubernetes provider.

One cluster per configured kubeconfig context. With a single context the
cluster is named after the account; with several, each cluster is named
"<account>/<context>". Node and pod usage comes from the metrics.k8s.io
API when it is installed and defaults to zero otherwise.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from infra_monitor.models.common.enums import ProviderType
from infra_monitor.models.common.responses import ConnectionResult
from infra_monitor.models.infrastructure import ClusterStatus, NodeStatus, Workload
from infra_monitor.providers.base import InfraProvider, OptionalResult
from infra_monitor.providers.config import KubernetesConfig
from infra_monitor.providers.exceptions import ProviderException, ProviderResponseError
from infra_monitor.providers.kubernetes.client import KubernetesClient
from infra_monitor.providers.kubernetes.mappers import (
    node_to_status,
    node_usage_map,
    pod_to_workload,
    pod_usage_map,
)
from infra_monitor.services.units import natural_sort_key

logger = logging.getLogger(__name__)

# metrics-server missing (404) or its APIService not ready (503)
_METRICS_UNAVAILABLE = (404, 503)


@dataclass(frozen=True)
class ClusterTarget:
    """A kubeconfig context and the cluster name it is exposed under."""
    cluster_name: str
    context: Optional[str]


class KubernetesProvider(InfraProvider):
    """Provider for one or more Kubernetes clusters from one kubeconfig."""

    type = ProviderType.KUBERNETES

    def __init__(self, config: KubernetesConfig, timeout: float, client_factory=None):
        super().__init__(config)
        self.timeout = timeout
        self._client_factory = client_factory or KubernetesClient.from_config
        self._clients: Dict[str, KubernetesClient] = {}
        self.targets = self._build_targets(config)

    @staticmethod
    def _build_targets(config: KubernetesConfig) -> List[ClusterTarget]:
        if config.in_cluster:
            return [ClusterTarget(config.name, None)]
        contexts = list(config.contexts) or [config.kube_config_context]
        if len(contexts) == 1:
            return [ClusterTarget(config.name, contexts[0])]
        return [ClusterTarget(f"{config.name}/{context}", context) for context in contexts]

    def cluster_names(self) -> List[str]:
        return [target.cluster_name for target in self.targets]

    def _target_for(self, cluster_name: str) -> Optional[ClusterTarget]:
        for target in self.targets:
            if cluster_name == target.cluster_name:
                return target
            if target.context is not None and cluster_name == target.context:
                return target
            client = self._clients.get(target.cluster_name)
            if client is not None and cluster_name == client.context_name:
                return target
        if len(self.targets) == 1 and cluster_name == self.name:
            return self.targets[0]
        return None

    def owns_cluster(self, cluster_name: str) -> bool:
        return self._target_for(cluster_name) is not None

    async def _client(self, target: ClusterTarget) -> KubernetesClient:
        client = self._clients.get(target.cluster_name)
        if client is not None:
            return client
        built = await asyncio.to_thread(self._client_factory, self.config, target.context, self.timeout)
        # a concurrent first call may have stored a client while this one was being built
        client = self._clients.setdefault(target.cluster_name, built)
        if client is not built:
            built.close()
        return client

    async def test_connection(self) -> ConnectionResult:
        messages = []
        ok = True
        for target in self.targets:
            try:
                client = await self._client(target)
                version = await asyncio.to_thread(client.get_version)
                messages.append(f"Connected to {client.context_name} (Kubernetes {version.git_version})")
            except ProviderException as e:
                ok = False
                messages.append(f"Connection to {target.cluster_name} failed: {e}")
        return ConnectionResult(ok=ok, message="; ".join(messages))

    # ========================================================================
    # Clusters
    # ========================================================================

    async def get_clusters(self) -> List[ClusterStatus]:
        return list(await asyncio.gather(*(self._load_cluster(target) for target in self.targets)))

    async def get_cluster(self, cluster_name: str) -> Optional[ClusterStatus]:
        target = self._target_for(cluster_name)
        if target is None:
            return None
        return await self._load_cluster(target)

    async def _fetch_version(self, client: KubernetesClient):
        try:
            return await asyncio.to_thread(client.get_version)
        except ProviderException as e:
            logger.warning(f"Could not fetch Kubernetes version for '{client.context_name}': {e}")
            return None

    async def _fetch_metrics(self, fetch, *args) -> OptionalResult[dict]:
        try:
            return OptionalResult.of(await asyncio.to_thread(fetch, *args))
        except ProviderResponseError as e:
            if e.status_code in _METRICS_UNAVAILABLE:
                logger.debug(f"Metrics API not available: {e}")
                return OptionalResult.unavailable(str(e))
            logger.warning(f"Metrics API lookup failed: {e}")
            return OptionalResult.failed(str(e))
        except ProviderException as e:
            logger.warning(f"Metrics API lookup failed: {e}")
            return OptionalResult.failed(str(e))

    async def _load_cluster(self, target: ClusterTarget) -> ClusterStatus:
        try:
            client = await self._client(target)
            version, nodes, metrics = await asyncio.gather(
                self._fetch_version(client),
                asyncio.to_thread(client.list_nodes),
                self._fetch_metrics(client.list_node_metrics),
            )
        except ProviderException as e:
            logger.error(f"Failed to load Kubernetes cluster '{target.cluster_name}': {e}")
            return self._error_cluster(target.cluster_name, str(e))
        except Exception as e:
            logger.exception(f"Unexpected error loading Kubernetes cluster '{target.cluster_name}'")
            return self._error_cluster(target.cluster_name, str(e))

        try:
            usage = node_usage_map(metrics.data if metrics.has_data else None)
            statuses = [node_to_status(node, usage.get(node.metadata.name)) for node in nodes]
        except Exception as e:
            logger.exception(f"Failed to map nodes of Kubernetes cluster '{target.cluster_name}'")
            return self._error_cluster(target.cluster_name, str(e))

        metadata = {"context": client.context_name}
        if version is not None:
            if version.platform:
                metadata["platform"] = version.platform
            if version.go_version:
                metadata["go_version"] = version.go_version

        return ClusterStatus(
            name=target.cluster_name,
            provider=self.type,
            nodes=sorted(statuses, key=lambda node: natural_sort_key(node.name)),
            version=version.git_version if version is not None else None,
            metadata=metadata,
        )

    # ========================================================================
    # Node
    # ========================================================================

    async def get_node(self, cluster_name: str, node_name: str) -> Optional[NodeStatus]:
        target = self._target_for(cluster_name)
        if target is None:
            return None
        try:
            client = await self._client(target)
            node, metrics = await asyncio.gather(
                asyncio.to_thread(client.read_node, node_name),
                self._fetch_metrics(client.get_node_metrics, node_name),
            )
        except ProviderResponseError as e:
            if e.status_code == 404:
                logger.info(f"Node '{node_name}' not found in '{cluster_name}'")
            else:
                logger.error(f"Failed to read node '{node_name}' in '{cluster_name}': {e}")
            return None
        except ProviderException as e:
            logger.error(f"Failed to read node '{node_name}' in '{cluster_name}': {e}")
            return None
        except Exception:
            logger.exception(f"Unexpected error reading node '{node_name}' in '{cluster_name}'")
            return None

        try:
            usage = node_usage_map({"items": [metrics.data]}).get(node_name) if metrics.has_data else None
            return node_to_status(node, usage)
        except Exception:
            logger.exception(f"Failed to map node '{node_name}' of '{cluster_name}'")
            return None

    # ========================================================================
    # Workloads
    # ========================================================================

    async def get_workloads(self, cluster_name: str, node_name: str) -> List[Workload]:
        target = self._target_for(cluster_name)
        if target is None:
            return []
        namespace = self.config.namespace
        try:
            client = await self._client(target)
            pods, metrics = await asyncio.gather(
                asyncio.to_thread(client.list_pods, node_name, namespace),
                self._fetch_metrics(client.list_pod_metrics, namespace),
            )
        except ProviderException as e:
            logger.error(f"Failed to list pods of '{node_name}' in '{cluster_name}': {e}")
            return []
        except Exception:
            logger.exception(f"Unexpected error listing pods of '{node_name}' in '{cluster_name}'")
            return []

        try:
            usage = pod_usage_map(metrics.data if metrics.has_data else None)
            workloads = [
                pod_to_workload(pod, usage.get(f"{pod.metadata.namespace}/{pod.metadata.name}"))
                for pod in pods
            ]
        except Exception:
            logger.exception(f"Failed to map pods of '{node_name}' in '{cluster_name}'")
            return []
        return sorted(workloads, key=lambda w: (w.provider_data.namespace or "", natural_sort_key(w.name)))

    async def close(self):
        for client in self._clients.values():
            client.close()
        self._clients.clear()
