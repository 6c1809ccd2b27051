from infra_monitor.config import Settings
from infra_monitor.providers.base import InfraProvider
from infra_monitor.providers.config import KubernetesConfig, OpenStackConfig, ProviderConfig, ProxmoxConfig
from infra_monitor.providers.kubernetes.provider import KubernetesProvider
from infra_monitor.providers.openstack.provider import OpenStackProvider
from infra_monitor.providers.proxmox.provider import ProxmoxProvider
from infra_monitor.services.inventory import HardwareInventory


def create_provider(config: ProviderConfig, settings: Settings) -> InfraProvider:
    """
    Build the provider for one config entry.

    Args:
        config: Validated provider config
        settings: Application settings (timeouts, cache TTLs, inventory path)

    Returns:
        A provider owning its own clients and caches

    Raises:
        ValueError: If the config type is not supported
    """
    timeout = config.timeout or settings.PROVIDER_TIMEOUT

    if isinstance(config, ProxmoxConfig):
        inventory = HardwareInventory(settings.HARDWARE_INVENTORY_PATH, ttl=settings.HARDWARE_INVENTORY_TTL)
        return ProxmoxProvider(config, timeout, inventory=inventory)
    if isinstance(config, KubernetesConfig):
        return KubernetesProvider(config, timeout)
    if isinstance(config, OpenStackConfig):
        return OpenStackProvider(config, timeout, flavor_cache_ttl=settings.FLAVOR_CACHE_TTL)

    raise ValueError(f"Unsupported provider type: {getattr(config, 'type', type(config).__name__)}")
