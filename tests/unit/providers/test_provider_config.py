"""
Unit tests for provider configuration parsing and loading
"""

import json
import pytest

from infra_monitor.providers.config import (
    KubernetesConfig,
    OpenStackConfig,
    ProxmoxConfig,
    is_legacy_format,
    load_provider_configs,
    parse_provider_configs,
)
from infra_monitor.providers.exceptions import ConfigError


UNIFIED = [
    {"name": "pve-lab", "type": "proxmox", "url": "https://pve:8006",
     "tokenId": "monitor@pve!dash", "tokenSecret": "secret", "allowInsecure": True},
    {"name": "k8s-prod", "type": "kubernetes", "kubeConfigPath": "~/.kube/config",
     "kubeConfigContext": "prod", "namespace": "apps"},
    {"name": "cloud", "type": "openstack", "authUrl": "https://keystone:5000/v3",
     "projectName": "demo", "username": "viewer", "password": "pw", "region": "RegionOne"},
]


class TestParseProviderConfigs:
    """Test validation of decoded JSON"""

    def test_unified_format(self):
        configs = parse_provider_configs(UNIFIED)

        assert [type(c) for c in configs] == [ProxmoxConfig, KubernetesConfig, OpenStackConfig]
        assert configs[0].token_id == "monitor@pve!dash"
        assert configs[0].allow_insecure is True
        assert configs[1].kube_config_context == "prod"
        assert configs[2].project_domain_name == "Default"
        assert configs[2].effective_regions == ["RegionOne"]

    def test_legacy_format_is_converted(self):
        legacy = [{"name": "old-pve", "url": "https://pve:8006", "tokenId": "a@pve!t", "tokenSecret": "s"}]
        assert is_legacy_format(legacy)

        configs = parse_provider_configs(legacy)
        assert isinstance(configs[0], ProxmoxConfig)
        assert configs[0].type == "proxmox"

    def test_disabled_entries_are_skipped(self):
        raw = [dict(UNIFIED[0], enabled=False), UNIFIED[1]]
        configs = parse_provider_configs(raw)
        assert [c.name for c in configs] == ["k8s-prod"]

    def test_unknown_type_is_rejected(self):
        with pytest.raises(ConfigError):
            parse_provider_configs([{"name": "x", "type": "vsphere"}])

    def test_missing_required_field(self):
        with pytest.raises(ConfigError):
            parse_provider_configs([{"name": "pve", "type": "proxmox", "url": "https://pve"}])

    def test_duplicate_names_are_rejected(self):
        with pytest.raises(ConfigError, match="pve-lab"):
            parse_provider_configs([UNIFIED[0], UNIFIED[0]])

    def test_configs_are_immutable(self):
        config = parse_provider_configs(UNIFIED)[0]
        with pytest.raises(Exception):
            config.url = "https://other"


class TestOpenStackAuthMethod:
    """Test OpenStack credential validation"""

    def test_application_credential(self):
        config = OpenStackConfig(
            name="cloud", auth_url="https://ks/v3", project_name="demo",
            application_credential_id="id", application_credential_secret="secret"
        )
        assert config.uses_application_credential

    def test_both_methods_rejected(self):
        with pytest.raises(ValueError):
            OpenStackConfig(
                name="cloud", auth_url="https://ks/v3", project_name="demo",
                username="u", password="p",
                application_credential_id="id", application_credential_secret="secret"
            )

    def test_no_method_rejected(self):
        with pytest.raises(ValueError):
            OpenStackConfig(name="cloud", auth_url="https://ks/v3", project_name="demo", username="u")

    def test_multiple_regions(self):
        config = OpenStackConfig(
            name="cloud", auth_url="https://ks/v3", project_name="demo",
            username="u", password="p", regions=["RegionOne", "RegionTwo"]
        )
        assert config.effective_regions == ["RegionOne", "RegionTwo"]


class TestLoadProviderConfigs:
    """Test loading from disk"""

    def test_no_files(self, tmp_path):
        assert load_provider_configs(str(tmp_path / "a.json"), str(tmp_path / "b.json")) == []

    def test_unified_file(self, tmp_path):
        path = tmp_path / "infrastructure_config.json"
        path.write_text(json.dumps(UNIFIED))

        configs = load_provider_configs(str(path))
        assert len(configs) == 3

    def test_legacy_file_fallback(self, tmp_path):
        legacy = tmp_path / "proxmox_config.json"
        legacy.write_text(json.dumps([
            {"name": "old", "url": "https://pve", "tokenId": "t", "tokenSecret": "s"}
        ]))

        configs = load_provider_configs(str(tmp_path / "missing.json"), str(legacy))
        assert [c.name for c in configs] == ["old"]

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "infrastructure_config.json"
        path.write_text("[{")

        with pytest.raises(ConfigError, match="Invalid JSON"):
            load_provider_configs(str(path))
