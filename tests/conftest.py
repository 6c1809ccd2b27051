"""
Pytest configuration and fixtures for all tests
"""
import pytest
import responses
from fastapi.testclient import TestClient

from infra_monitor.main import app
from infra_monitor.config import Settings
from infra_monitor.deps import get_aggregator
from infra_monitor.providers.config import KubernetesConfig, OpenStackConfig, ProxmoxConfig


@pytest.fixture
def test_settings(tmp_path):
    """Settings pointing at files inside a temporary directory"""
    return Settings(
        INFRASTRUCTURE_CONFIG_PATH=str(tmp_path / "infrastructure_config.json"),
        LEGACY_PROXMOX_CONFIG_PATH=str(tmp_path / "proxmox_config.json"),
        HARDWARE_INVENTORY_PATH=str(tmp_path / "hardware_inventory.json"),
        PROVIDER_TIMEOUT=5,
        FLAVOR_CACHE_TTL=300,
        HARDWARE_INVENTORY_TTL=300
    )


@pytest.fixture
def mocked_responses():
    """Intercept requests made from any thread"""
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


@pytest.fixture
def proxmox_config():
    return ProxmoxConfig(
        name="pve-lab",
        url="https://pve.example:8006",
        token_id="monitor@pve!dash",
        token_secret="secret-uuid",
        allow_insecure=True
    )


@pytest.fixture
def kubernetes_config():
    return KubernetesConfig(name="k8s-prod", kube_config_path="/tmp/kubeconfig", kube_config_context="prod")


@pytest.fixture
def openstack_config():
    return OpenStackConfig(
        name="cloud",
        auth_url="https://keystone.example:5000/v3",
        project_name="demo",
        username="viewer",
        password="s3cret",
        region="RegionOne"
    )


@pytest.fixture
def make_client():
    """Create a TestClient whose routes use the given aggregator"""
    def _make(aggregator):
        app.dependency_overrides[get_aggregator] = lambda: aggregator
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()
