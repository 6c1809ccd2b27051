"""
Provider Registry - One provider instance per configured backend account.

Providers are built lazily on first access from the configured loader.
Cluster names are resolved in two steps:

1. Exact match in a map precomputed from each provider's statically known
   cluster names (Proxmox account name, Kubernetes contexts, OpenStack
   regions).
2. A linear scan asking each provider whether it owns the name (account
   name, kubeconfig context resolved at runtime). Never does network I/O.

reinitialize() closes every provider, drops all caches and rebuilds from
a fresh config load.
"""

import logging
from typing import Callable, Dict, List, Optional

from infra_monitor.config import Settings
from infra_monitor.models.common.enums import ProviderType
from infra_monitor.providers.base import InfraProvider
from infra_monitor.providers.config import ProviderConfig
from infra_monitor.providers.factory import create_provider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Registry of provider instances keyed by account and cluster name."""

    def __init__(
        self,
        config_loader: Callable[[], List[ProviderConfig]],
        settings: Settings,
        provider_factory: Callable[[ProviderConfig, Settings], InfraProvider] = create_provider,
    ):
        self._config_loader = config_loader
        self._settings = settings
        self._provider_factory = provider_factory
        self._providers: Dict[str, InfraProvider] = {}
        self._cluster_map: Dict[str, InfraProvider] = {}
        self._initialized = False

    def _initialize(self):
        """Build providers from configuration. ConfigError from the loader propagates."""
        configs = self._config_loader()
        providers: Dict[str, InfraProvider] = {}
        cluster_map: Dict[str, InfraProvider] = {}

        for config in configs:
            if config.name in providers:
                logger.warning(f"Skipping duplicate provider name '{config.name}'")
                continue
            try:
                provider = self._provider_factory(config, self._settings)
            except Exception as e:
                logger.error(f"Failed to initialize {config.type} provider '{config.name}': {e}")
                continue

            providers[config.name] = provider
            for cluster_name in provider.cluster_names():
                if cluster_name in cluster_map:
                    logger.warning(
                        f"Cluster name '{cluster_name}' of '{config.name}' already belongs to "
                        f"'{cluster_map[cluster_name].name}', keeping the first"
                    )
                    continue
                cluster_map[cluster_name] = provider
            logger.info(f"Registered {config.type} provider: {config.name}")

        self._providers = providers
        self._cluster_map = cluster_map
        self._initialized = True
        logger.info(f"Provider registry initialized with {len(providers)} providers")

    def _ensure_initialized(self):
        if not self._initialized:
            self._initialize()

    def list_providers(self, provider_type: Optional[ProviderType] = None) -> List[InfraProvider]:
        """
        Get registered providers, in configuration order.

        Args:
            provider_type: Only return providers of this type

        Returns:
            List of providers
        """
        self._ensure_initialized()
        providers = list(self._providers.values())
        if provider_type is not None:
            providers = [p for p in providers if p.type == provider_type]
        return providers

    def get_provider(self, name: str) -> Optional[InfraProvider]:
        self._ensure_initialized()
        return self._providers.get(name)

    def get_provider_for_cluster(self, cluster_name: str) -> Optional[InfraProvider]:
        """
        Resolve the provider owning a cluster name.

        Returns:
            The owning provider, or None if no provider claims the name
        """
        self._ensure_initialized()
        provider = self._cluster_map.get(cluster_name)
        if provider is not None:
            return provider

        for provider in self._providers.values():
            if provider.owns_cluster(cluster_name):
                return provider
        return None

    def get_summary(self) -> Dict[str, int]:
        """Number of registered providers per type."""
        self._ensure_initialized()
        summary: Dict[str, int] = {}
        for provider in self._providers.values():
            summary[provider.type.value] = summary.get(provider.type.value, 0) + 1
        return summary

    async def close(self):
        for provider in self._providers.values():
            try:
                await provider.close()
            except Exception as e:
                logger.warning(f"Error while closing provider '{provider.name}': {e}")
        self._providers = {}
        self._cluster_map = {}
        self._initialized = False

    async def reinitialize(self):
        """Drop every provider with its caches and rebuild from configuration."""
        logger.info("Reinitializing provider registry")
        await self.close()
        self._initialize()
