"""
Provider Configuration - Typed per-backend connection settings.

Provider accounts are listed in a JSON file (INFRASTRUCTURE_CONFIG_PATH).
Keys are camelCase on disk and snake_case in Python:

[
  {"name": "pve-lab", "type": "proxmox", "url": "https://pve:8006",
   "tokenId": "monitor@pve!dash", "tokenSecret": "...", "allowInsecure": true},
  {"name": "k8s-prod", "type": "kubernetes", "kubeConfigPath": "~/.kube/config",
   "kubeConfigContext": "prod"},
  {"name": "cloud", "type": "openstack", "authUrl": "https://keystone:5000/v3",
   "projectName": "demo", "username": "viewer", "password": "...", "region": "RegionOne"}
]

The legacy proxmox_config.json format (entries without "type") is still
accepted and converted to Proxmox entries.
"""

import json
import logging
from pathlib import Path
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from infra_monitor.models.common.enums import ProviderType
from infra_monitor.providers.exceptions import ConfigError

logger = logging.getLogger(__name__)


# ============================================================================
# Provider Config Models
# ============================================================================

class BaseProviderConfig(BaseModel):
    """Settings shared by every provider account."""
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    name: str = Field(..., min_length=1, description="Account name, unique across the deployment")
    enabled: bool = Field(True, description="Disabled accounts are skipped at load time")
    timeout: Optional[float] = Field(None, gt=0, description="Per-call timeout in seconds")


class ProxmoxConfig(BaseProviderConfig):
    type: Literal["proxmox"] = "proxmox"
    url: str = Field(..., min_length=1, description="Proxmox VE base URL (https://host:8006)")
    token_id: str = Field(..., min_length=1, description="API token id (user@realm!token)")
    token_secret: str = Field(..., min_length=1, description="API token secret")
    allow_insecure: bool = Field(False, description="Skip TLS verification (self-signed certificates)")


class KubernetesConfig(BaseProviderConfig):
    type: Literal["kubernetes"] = "kubernetes"
    kube_config_path: Optional[str] = Field(None, description="Path to a kubeconfig file")
    kube_config_data: Optional[str] = Field(None, description="Base64-encoded kubeconfig content")
    kube_config_context: Optional[str] = Field(None, description="Context to use; defaults to current-context")
    contexts: List[str] = Field(default_factory=list, description="Several contexts, one cluster each")
    in_cluster: bool = Field(False, description="Use the service account of the running pod")
    namespace: Optional[str] = Field(None, description="Restrict workload listing to one namespace")


class OpenStackConfig(BaseProviderConfig):
    type: Literal["openstack"] = "openstack"
    auth_url: str = Field(..., min_length=1, description="Keystone v3 endpoint")
    project_name: str = Field(..., min_length=1, description="Project to scope the token to")
    project_domain_name: str = Field("Default", description="Project domain")
    user_domain_name: str = Field("Default", description="User domain")
    username: Optional[str] = Field(None, description="Username for password authentication")
    password: Optional[str] = Field(None, description="Password for password authentication")
    application_credential_id: Optional[str] = Field(None, description="Application credential id")
    application_credential_secret: Optional[str] = Field(None, description="Application credential secret")
    region: Optional[str] = Field(None, description="Region to monitor")
    regions: List[str] = Field(default_factory=list, description="Several regions, one cluster each")
    allow_insecure: bool = Field(False, description="Skip TLS verification")

    @model_validator(mode="after")
    def _check_auth_method(self) -> "OpenStackConfig":
        has_password = bool(self.username and self.password)
        has_app_cred = bool(self.application_credential_id and self.application_credential_secret)
        if has_password == has_app_cred:
            raise ValueError(
                "exactly one of username/password or applicationCredentialId/applicationCredentialSecret is required"
            )
        return self

    @property
    def uses_application_credential(self) -> bool:
        return bool(self.application_credential_id)

    @property
    def effective_regions(self) -> List[Optional[str]]:
        if self.regions:
            return list(self.regions)
        return [self.region]


ProviderConfig = Annotated[
    Union[ProxmoxConfig, KubernetesConfig, OpenStackConfig],
    Field(discriminator="type"),
]

_provider_list_adapter = TypeAdapter(List[ProviderConfig])


# ============================================================================
# Loading
# ============================================================================

def is_legacy_format(raw) -> bool:
    """Legacy files are a list of Proxmox entries without a "type" key."""
    return (
        isinstance(raw, list)
        and len(raw) > 0
        and all(isinstance(item, dict) and "type" not in item for item in raw)
    )


def parse_provider_configs(raw) -> List[ProviderConfig]:
    """
    Validate raw JSON content into provider configs.

    Args:
        raw: Decoded JSON (a list of objects)

    Returns:
        Validated configs with disabled entries removed

    Raises:
        ConfigError: If the content does not validate
    """
    if is_legacy_format(raw):
        logger.info("Detected legacy Proxmox config format, converting to unified format")
        raw = [{**item, "type": ProviderType.PROXMOX.value} for item in raw]

    try:
        configs = _provider_list_adapter.validate_python(raw)
    except ValidationError as e:
        raise ConfigError(f"Configuration validation failed: {e}") from e

    names = [config.name for config in configs]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ConfigError(f"Duplicate provider names: {', '.join(duplicates)}")

    enabled = [config for config in configs if config.enabled]
    logger.info(f"Loaded {len(configs)} provider configs ({len(enabled)} enabled)")
    return enabled


def load_provider_configs(path: str, legacy_path: Optional[str] = None) -> List[ProviderConfig]:
    """
    Load provider configs from disk.

    The unified file wins over the legacy one. When neither exists an empty
    list is returned.

    Raises:
        ConfigError: If the chosen file is not valid JSON or fails validation
    """
    config_path = Path(path)
    if not config_path.exists():
        if legacy_path and Path(legacy_path).exists():
            config_path = Path(legacy_path)
            logger.info(f"Loading infrastructure config from legacy file {config_path}")
        else:
            logger.warning(f"No configuration file found at {path} or {legacy_path}")
            return []

    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in configuration file {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read configuration file {config_path}: {e}") from e

    try:
        return parse_provider_configs(raw)
    except ConfigError as e:
        raise ConfigError(f"{config_path}: {e}") from e
