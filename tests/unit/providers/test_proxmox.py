"""
Unit tests for the Proxmox provider

Tests cover:
- API token authentication header
- Cluster assembly with online and offline nodes
- Ceph storage presence and absence
- Guest listing and live status
- Error handling
"""

import threading
from unittest.mock import MagicMock

import pytest
import responses
from responses import matchers

from infra_monitor.models.common.enums import NodeState, ProviderType, WorkloadState, WorkloadType
from infra_monitor.providers.exceptions import ProviderAuthError, ProviderResponseError
from infra_monitor.providers.proxmox.client import ProxmoxClient
from infra_monitor.providers.proxmox.mappers import node_to_status, trim_kernel_version
from infra_monitor.providers.proxmox.provider import ProxmoxProvider
from infra_monitor.providers.proxmox.schemas import (
    ProxmoxCpuInfo,
    ProxmoxNodeDetail,
    ProxmoxNodeSummary,
    ProxmoxVersion,
)

BASE = "https://pve.example:8006/api2/json"


def _data(payload):
    return {"data": payload}


NODES = [
    {"id": "node/pve10", "node": "pve10", "status": "online", "cpu": 0.5, "maxcpu": 8,
     "mem": 4 * 1024 ** 3, "maxmem": 16 * 1024 ** 3, "disk": 10, "maxdisk": 100, "uptime": 3600},
    {"id": "node/pve2", "node": "pve2", "status": "online", "cpu": 0.25, "maxcpu": 16,
     "mem": 8 * 1024 ** 3, "maxmem": 32 * 1024 ** 3, "disk": 20, "maxdisk": 200, "uptime": 7200},
    {"id": "node/pve3", "node": "pve3", "status": "offline"},
]

NODE_DETAIL = {
    "cpu": 0.25,
    "memory": {"total": 32 * 1024 ** 3, "used": 8 * 1024 ** 3, "free": 24 * 1024 ** 3},
    "rootfs": {"total": 200, "used": 20},
    "uptime": 7200,
    "cpuinfo": {"model": "AMD EPYC 7302", "sockets": 1, "cores": 8, "cpus": 16},
    "kversion": "Linux 6.8.12-4-pve #1 SMP PREEMPT_DYNAMIC PMX 6.8.12-4 (2024-11-06T15:04Z)",
}


@pytest.fixture
def provider(proxmox_config):
    return ProxmoxProvider(proxmox_config, timeout=5)


def _register_cluster(rsps, ceph_status=500):
    rsps.add(responses.GET, f"{BASE}/nodes", json=_data(NODES))
    rsps.add(responses.GET, f"{BASE}/version", json=_data({"version": "8.2.4", "release": "8.2", "repoid": "faa83925"}))
    rsps.add(responses.GET, f"{BASE}/nodes/pve10/status", json=_data(dict(NODE_DETAIL, cpuinfo={"cpus": 8})))
    rsps.add(responses.GET, f"{BASE}/nodes/pve2/status", json=_data(NODE_DETAIL))
    if ceph_status == 200:
        rsps.add(responses.GET, f"{BASE}/cluster/ceph/status", json=_data({
            "health": {"status": "HEALTH_OK"},
            "pgmap": {"bytes_total": 1000, "bytes_used": 400, "bytes_avail": 600},
        }))
    else:
        rsps.add(responses.GET, f"{BASE}/cluster/ceph/status", status=ceph_status, body="ceph not installed")


class TestProxmoxClient:
    """Test the HTTP client"""

    def test_sends_api_token_header(self, proxmox_config, mocked_responses):
        mocked_responses.add(
            responses.GET, f"{BASE}/version",
            json=_data({"version": "8.2.4"}),
            match=[matchers.header_matcher({"Authorization": "PVEAPIToken=monitor@pve!dash=secret-uuid"})]
        )
        client = ProxmoxClient(proxmox_config, timeout=5)

        assert client.get_version().version == "8.2.4"
        assert client.verify is False

    def test_401_maps_to_auth_error(self, proxmox_config, mocked_responses):
        mocked_responses.add(responses.GET, f"{BASE}/version", status=401)
        client = ProxmoxClient(proxmox_config, timeout=5)

        with pytest.raises(ProviderAuthError):
            client.get_version()

    def test_missing_envelope(self, proxmox_config, mocked_responses):
        mocked_responses.add(responses.GET, f"{BASE}/nodes", json=[{"node": "pve1"}])
        client = ProxmoxClient(proxmox_config, timeout=5)

        with pytest.raises(ProviderResponseError):
            client.list_nodes()

    def test_unknown_guest_type(self, proxmox_config):
        client = ProxmoxClient(proxmox_config, timeout=5)
        with pytest.raises(ValueError):
            client.list_guests("pve1", "docker")


class TestProxmoxMappers:
    """Test response to model conversion"""

    def test_trim_kernel_version(self):
        assert trim_kernel_version("Linux 6.8.12-4-pve #1 SMP PREEMPT") == "Linux 6.8.12-4-pve"
        assert trim_kernel_version(None) is None

    def test_cpu_uses_logical_cpu_count_from_detail(self):
        summary = ProxmoxNodeSummary(node="pve1", status="online")
        detail = ProxmoxNodeDetail(cpu=0.5, cpuinfo=ProxmoxCpuInfo(cores=8, sockets=2))

        node = node_to_status(summary, detail)

        assert node.cpu.total == 16
        assert node.cpu.used == pytest.approx(8)
        assert node.cpu.percentage == pytest.approx(50)

    def test_offline_node_without_detail(self):
        node = node_to_status(ProxmoxNodeSummary(node="pve3", status="offline"))

        assert node.id == "node/pve3"
        assert node.status == NodeState.OFFLINE
        assert node.cpu.total == 0
        assert node.storage is None
        assert node.provider_data is None

    def test_unexpected_status_is_unknown(self):
        node = node_to_status(ProxmoxNodeSummary(node="pve4", status="weird"))
        assert node.status == NodeState.UNKNOWN


class TestProxmoxCluster:
    """Test cluster assembly"""

    @pytest.mark.asyncio
    async def test_online_and_offline_nodes(self, provider, mocked_responses):
        _register_cluster(mocked_responses)

        clusters = await provider.get_clusters()

        assert len(clusters) == 1
        cluster = clusters[0]
        assert cluster.name == "pve-lab"
        assert cluster.provider == ProviderType.PROXMOX
        assert cluster.error is None
        assert cluster.version == "8.2.4"
        assert cluster.metadata == {"release": "8.2", "repoid": "faa83925"}
        assert [n.name for n in cluster.nodes] == ["pve2", "pve3", "pve10"]

        pve2, pve3, pve10 = cluster.nodes
        assert pve2.status == NodeState.ONLINE
        assert pve2.cpu.used == pytest.approx(4)
        assert pve2.cpu.total == 16
        assert pve2.provider_data.cpu_model == "AMD EPYC 7302"
        assert pve2.provider_data.kernel_version == "Linux 6.8.12-4-pve"
        assert pve10.cpu.total == 8
        assert pve3.status == NodeState.OFFLINE

    @pytest.mark.asyncio
    async def test_offline_node_detail_is_not_requested(self, provider, mocked_responses):
        _register_cluster(mocked_responses)
        await provider.get_clusters()

        called = [call.request.url for call in mocked_responses.calls]
        assert f"{BASE}/nodes/pve3/status" not in called

    @pytest.mark.asyncio
    async def test_ceph_absent(self, provider, mocked_responses):
        _register_cluster(mocked_responses, ceph_status=500)
        cluster = (await provider.get_clusters())[0]

        assert cluster.error is None
        assert cluster.storage is None

    @pytest.mark.asyncio
    async def test_ceph_present(self, provider, mocked_responses):
        _register_cluster(mocked_responses, ceph_status=200)
        cluster = (await provider.get_clusters())[0]

        assert cluster.storage.type == "ceph"
        assert cluster.storage.health == "HEALTH_OK"
        assert cluster.storage.usage.used == 400

    @pytest.mark.asyncio
    async def test_node_list_failure_gives_error_cluster(self, provider, mocked_responses):
        mocked_responses.add(responses.GET, f"{BASE}/nodes", status=401)

        clusters = await provider.get_clusters()

        assert clusters[0].name == "pve-lab"
        assert clusters[0].nodes == []
        assert clusters[0].error

    @pytest.mark.asyncio
    async def test_detail_failure_keeps_summary(self, provider, mocked_responses):
        _register_cluster(mocked_responses)
        mocked_responses.replace(responses.GET, f"{BASE}/nodes/pve2/status", status=500)

        cluster = (await provider.get_clusters())[0]
        pve2 = next(n for n in cluster.nodes if n.name == "pve2")

        assert pve2.memory.total == 32 * 1024 ** 3
        assert pve2.provider_data is None

    @pytest.mark.asyncio
    async def test_get_cluster_twice_is_stable(self, provider, mocked_responses):
        _register_cluster(mocked_responses, ceph_status=200)

        first = await provider.get_cluster("pve-lab")
        second = await provider.get_cluster("pve-lab")

        assert first == second

    @pytest.mark.asyncio
    async def test_node_details_are_fetched_in_parallel(self, proxmox_config):
        # each detail call blocks until the other one has started
        barrier = threading.Barrier(2, timeout=2)

        def get_node_status(node_name):
            barrier.wait()
            return ProxmoxNodeDetail(**NODE_DETAIL)

        client = MagicMock()
        client.list_nodes.return_value = [ProxmoxNodeSummary(**node) for node in NODES[:2]]
        client.get_version.return_value = ProxmoxVersion(version="8.2.4")
        client.get_ceph_status.side_effect = ProviderResponseError("ceph not installed", status_code=500)
        client.get_node_status.side_effect = get_node_status
        provider = ProxmoxProvider(proxmox_config, timeout=5, client=client)

        cluster = (await provider.get_clusters())[0]

        assert cluster.error is None
        assert [n.name for n in cluster.nodes] == ["pve2", "pve10"]
        assert all(n.provider_data is not None for n in cluster.nodes)
        assert client.get_node_status.call_count == 2

    @pytest.mark.asyncio
    async def test_get_cluster_foreign_name(self, provider):
        assert await provider.get_cluster("other") is None


class TestProxmoxNode:
    """Test single node lookup"""

    @pytest.mark.asyncio
    async def test_get_node(self, provider, mocked_responses):
        mocked_responses.add(responses.GET, f"{BASE}/nodes/pve2/status", json=_data(NODE_DETAIL))

        node = await provider.get_node("pve-lab", "pve2")

        assert node.name == "pve2"
        assert node.status == NodeState.ONLINE
        assert node.memory.used == 8 * 1024 ** 3

    @pytest.mark.asyncio
    async def test_missing_node(self, provider, mocked_responses):
        mocked_responses.add(responses.GET, f"{BASE}/nodes/ghost/status", status=500)
        assert await provider.get_node("pve-lab", "ghost") is None


class TestProxmoxWorkloads:
    """Test guest listing"""

    @pytest.mark.asyncio
    async def test_vms_and_containers(self, provider, mocked_responses):
        mocked_responses.add(responses.GET, f"{BASE}/nodes/pve1/qemu", json=_data([
            {"vmid": 101, "name": "web", "status": "running", "cpus": 2, "maxmem": 2048},
            {"vmid": 100, "name": "db", "status": "stopped", "cpus": 4, "maxmem": 4096, "cpu": 0},
        ]))
        mocked_responses.add(responses.GET, f"{BASE}/nodes/pve1/lxc", json=_data([
            {"vmid": "200", "name": "dns", "status": "running", "cpus": 1, "maxmem": 512},
        ]))
        mocked_responses.add(responses.GET, f"{BASE}/nodes/pve1/qemu/101/status/current", json=_data(
            {"status": "running", "cpu": 0.35, "cpus": 2, "mem": 1024, "maxmem": 2048, "uptime": 600}
        ))
        mocked_responses.add(responses.GET, f"{BASE}/nodes/pve1/lxc/200/status/current", status=500)

        workloads = await provider.get_workloads("pve-lab", "pve1")

        assert [w.id for w in workloads] == ["100", "101", "200"]
        db, web, dns = workloads
        assert db.status == WorkloadState.STOPPED
        assert db.cpu.usage is None
        assert web.type == WorkloadType.QEMU
        assert web.cpu.count == 2
        assert web.cpu.usage == pytest.approx(0.35)
        assert web.memory.used == 1024
        assert web.uptime == 600
        assert web.metadata == {"node": "pve1"}
        assert dns.type == WorkloadType.LXC
        assert dns.status == WorkloadState.RUNNING

    @pytest.mark.asyncio
    async def test_empty_node(self, provider, mocked_responses):
        mocked_responses.add(responses.GET, f"{BASE}/nodes/pve1/qemu", json=_data([]))
        mocked_responses.add(responses.GET, f"{BASE}/nodes/pve1/lxc", json=_data([]))

        assert await provider.get_workloads("pve-lab", "pve1") == []


class TestProxmoxConnection:
    """Test connection probe"""

    @pytest.mark.asyncio
    async def test_success(self, provider, mocked_responses):
        mocked_responses.add(responses.GET, f"{BASE}/version", json=_data({"version": "8.2.4"}))
        result = await provider.test_connection()
        assert result.ok
        assert result.message == "Connected to Proxmox 8.2.4"

    @pytest.mark.asyncio
    async def test_api_error(self, provider, mocked_responses):
        mocked_responses.add(responses.GET, f"{BASE}/version", status=500, body="internal")
        result = await provider.test_connection()
        assert not result.ok
        assert result.message.startswith("API returned 500")
