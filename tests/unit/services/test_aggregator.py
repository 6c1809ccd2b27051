"""
Unit tests for InfrastructureAggregator

Covers concurrent fan-out and per-provider failure isolation.
"""

import asyncio
import time

import pytest

from infra_monitor.models.common.enums import NodeState, ProviderType
from infra_monitor.models.common.responses import ConnectionResult
from infra_monitor.models.infrastructure import ClusterStatus, NodeStatus
from infra_monitor.providers.base import InfraProvider
from infra_monitor.providers.config import KubernetesConfig, ProxmoxConfig
from infra_monitor.services.aggregator import InfrastructureAggregator
from infra_monitor.services.registry import ProviderRegistry
from infra_monitor.services.units import create_resource_metric


def _node(name):
    return NodeStatus(
        id=f"node/{name}",
        name=name,
        status=NodeState.ONLINE,
        cpu=create_resource_metric(1, 4),
        memory=create_resource_metric(1024, 4096),
    )


class StubProvider(InfraProvider):
    """Provider returning canned data, or raising when told to"""

    def __init__(self, config, fail=False, delay=0.0):
        super().__init__(config)
        self.type = ProviderType(config.type)
        self.fail = fail
        self.delay = delay

    async def test_connection(self):
        if self.fail:
            raise RuntimeError("boom")
        return ConnectionResult(ok=True, message=f"Connected to {self.name}")

    async def get_clusters(self):
        await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("backend exploded")
        return [ClusterStatus(name=self.name, provider=self.type, nodes=[_node("n1")])]

    async def get_cluster(self, cluster_name):
        if self.fail:
            raise RuntimeError("backend exploded")
        return ClusterStatus(name=cluster_name, provider=self.type, nodes=[_node("n1")])

    async def get_node(self, cluster_name, node_name):
        if self.fail:
            raise RuntimeError("backend exploded")
        return _node(node_name) if node_name == "n1" else None

    async def get_workloads(self, cluster_name, node_name):
        if self.fail:
            raise RuntimeError("backend exploded")
        return []


def _build(test_settings, failing=()):
    configs = [
        ProxmoxConfig(name="pve-a", url="https://a", token_id="t", token_secret="s"),
        ProxmoxConfig(name="pve-b", url="https://b", token_id="t", token_secret="s"),
        KubernetesConfig(name="k8s"),
    ]

    def factory(config, settings):
        # the first provider finishes last to prove order is configuration order
        delay = 0.05 if config.name == "pve-a" else 0.0
        return StubProvider(config, fail=config.name in failing, delay=delay)

    registry = ProviderRegistry(lambda: configs, test_settings, provider_factory=factory)
    return InfrastructureAggregator(registry)


class TestGetAllClusters:
    """Test fan-out over all providers"""

    @pytest.mark.asyncio
    async def test_merges_in_configuration_order(self, test_settings):
        aggregator = _build(test_settings)
        clusters = await aggregator.get_all_clusters()
        assert [c.name for c in clusters] == ["pve-a", "pve-b", "k8s"]

    @pytest.mark.asyncio
    async def test_failing_provider_is_isolated(self, test_settings):
        aggregator = _build(test_settings, failing=("pve-b",))
        clusters = await aggregator.get_all_clusters()

        assert [c.name for c in clusters] == ["pve-a", "k8s"]
        assert all(c.error is None for c in clusters)

    @pytest.mark.asyncio
    async def test_type_filter(self, test_settings):
        aggregator = _build(test_settings)
        clusters = await aggregator.get_all_clusters(ProviderType.KUBERNETES)
        assert [c.name for c in clusters] == ["k8s"]
        assert clusters[0].provider == ProviderType.KUBERNETES

    @pytest.mark.asyncio
    async def test_providers_are_queried_concurrently(self, test_settings):
        configs = [
            ProxmoxConfig(name=f"pve-{i}", url=f"https://pve{i}", token_id="t", token_secret="s")
            for i in range(3)
        ]
        entered = []
        all_entered = asyncio.Event()

        class RendezvousProvider(StubProvider):
            async def get_clusters(self):
                entered.append(self.name)
                if len(entered) == len(configs):
                    all_entered.set()
                # a sequential fan-out never releases the first provider
                await asyncio.wait_for(all_entered.wait(), timeout=1)
                return await super().get_clusters()

        registry = ProviderRegistry(
            lambda: configs, test_settings, provider_factory=lambda config, settings: RendezvousProvider(config)
        )
        clusters = await InfrastructureAggregator(registry).get_all_clusters()

        assert [c.name for c in clusters] == ["pve-0", "pve-1", "pve-2"]

    @pytest.mark.asyncio
    async def test_slow_providers_overlap(self, test_settings):
        configs = [
            ProxmoxConfig(name=f"pve-{i}", url=f"https://pve{i}", token_id="t", token_secret="s")
            for i in range(4)
        ]
        registry = ProviderRegistry(
            lambda: configs, test_settings,
            provider_factory=lambda config, settings: StubProvider(config, delay=0.2),
        )
        aggregator = InfrastructureAggregator(registry)

        started = time.monotonic()
        clusters = await aggregator.get_all_clusters()
        elapsed = time.monotonic() - started

        assert len(clusters) == 4
        assert elapsed < 0.6

    @pytest.mark.asyncio
    async def test_no_providers(self, test_settings):
        registry = ProviderRegistry(lambda: [], test_settings)
        aggregator = InfrastructureAggregator(registry)
        assert await aggregator.get_all_clusters() == []


class TestScopedQueries:
    """Test cluster, node and workload lookups"""

    @pytest.mark.asyncio
    async def test_get_cluster(self, test_settings):
        aggregator = _build(test_settings)
        cluster = await aggregator.get_cluster("pve-b")
        assert cluster.name == "pve-b"

    @pytest.mark.asyncio
    async def test_unknown_cluster(self, test_settings):
        aggregator = _build(test_settings)
        assert await aggregator.get_cluster("nope") is None
        assert await aggregator.get_node("nope", "n1") is None
        assert await aggregator.get_workloads("nope", "n1") == []
        assert not aggregator.owns_cluster("nope")

    @pytest.mark.asyncio
    async def test_get_node(self, test_settings):
        aggregator = _build(test_settings)
        assert (await aggregator.get_node("pve-a", "n1")).name == "n1"
        assert await aggregator.get_node("pve-a", "n2") is None

    @pytest.mark.asyncio
    async def test_provider_exception_becomes_empty_result(self, test_settings):
        aggregator = _build(test_settings, failing=("pve-a",))
        assert await aggregator.get_cluster("pve-a") is None
        assert await aggregator.get_node("pve-a", "n1") is None
        assert await aggregator.get_workloads("pve-a", "n1") == []

    def test_list_provider_names(self, test_settings):
        aggregator = _build(test_settings)
        assert aggregator.list_provider_names() == ["pve-a", "pve-b", "k8s"]
        assert aggregator.list_provider_names(ProviderType.PROXMOX) == ["pve-a", "pve-b"]


class TestConnections:
    """Test connection probes"""

    @pytest.mark.asyncio
    async def test_connection_failure_is_reported(self, test_settings):
        aggregator = _build(test_settings, failing=("k8s",))
        results = await aggregator.test_connections()

        assert [r.name for r in results] == ["pve-a", "pve-b", "k8s"]
        assert results[0].ok
        assert results[0].message == "Connected to pve-a"
        assert not results[2].ok
        assert results[2].message == "boom"
