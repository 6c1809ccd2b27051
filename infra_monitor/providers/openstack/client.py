import logging
from typing import Any, Dict, List, Optional

from infra_monitor.providers.config import OpenStackConfig
from infra_monitor.providers.exceptions import ProviderAuthError, ProviderResponseError
from infra_monitor.providers.http import JsonHttpClient
from infra_monitor.providers.openstack.auth import AuthToken, TokenCache, get_service_endpoint
from infra_monitor.providers.openstack.schemas import (
    NovaAbsoluteLimits,
    NovaFlavor,
    NovaFlavorList,
    NovaHypervisor,
    NovaHypervisorList,
    NovaHypervisorResponse,
    NovaServer,
    NovaServerList,
)

logger = logging.getLogger(__name__)


class NovaClient(JsonHttpClient):
    """
    A client for the Nova compute API.

    Every call takes its token from the shared TokenCache and its base URL
    from the token's service catalog. A 401 evicts the cached token.
    """

    def __init__(self, config: OpenStackConfig, timeout: float, token_cache: TokenCache):
        super().__init__(timeout=timeout, verify=not config.allow_insecure)
        self.config = config
        self.token_cache = token_cache

    def get_token(self) -> AuthToken:
        return self.token_cache.get(self.config)

    def compute_url(self, token: AuthToken, region: Optional[str]) -> str:
        url = get_service_endpoint(token, "compute", "public", region)
        if not url:
            raise ProviderResponseError(
                f"No public compute endpoint in service catalog for region '{region or 'any'}'"
            )
        return url

    def _get(self, region: Optional[str], path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        token = self.get_token()
        url = f"{self.compute_url(token, region)}{path}"
        try:
            return self._request("get", url, params=params, headers={"X-Auth-Token": token.token})
        except ProviderAuthError:
            self.token_cache.invalidate(self.config)
            raise

    def list_flavors(self, region: Optional[str]) -> List[NovaFlavor]:
        return self._validate(NovaFlavorList, self._get(region, "/flavors/detail"), "/flavors/detail").flavors

    def list_servers(self, region: Optional[str], all_tenants: bool = False) -> List[NovaServer]:
        params = {"all_tenants": 1} if all_tenants else None
        data = self._get(region, "/servers/detail", params=params)
        return self._validate(NovaServerList, data, "/servers/detail").servers

    def list_hypervisors(self, region: Optional[str]) -> List[NovaHypervisor]:
        data = self._get(region, "/os-hypervisors/detail")
        return self._validate(NovaHypervisorList, data, "/os-hypervisors/detail").hypervisors

    def find_hypervisor(self, region: Optional[str], name: str) -> Optional[NovaHypervisor]:
        """
        Look up a hypervisor by id, then by exact hostname.

        Returns:
            NovaHypervisor if found, None otherwise
        """
        try:
            data = self._get(region, f"/os-hypervisors/{name}")
            return self._validate(NovaHypervisorResponse, data, "/os-hypervisors/{id}").hypervisor
        except ProviderResponseError as e:
            if e.status_code is None or e.status_code >= 500:
                raise
            logger.debug(f"Hypervisor id lookup for '{name}' failed ({e.status_code}), searching by hostname")

        data = self._get(region, "/os-hypervisors/detail", params={"hypervisor_hostname_pattern": name})
        for hypervisor in self._validate(NovaHypervisorList, data, "/os-hypervisors/detail").hypervisors:
            if hypervisor.hypervisor_hostname == name:
                return hypervisor
        return None

    def get_limits(self, region: Optional[str]) -> NovaAbsoluteLimits:
        data = self._get(region, "/limits")
        absolute = ((data or {}).get("limits") or {}).get("absolute") or {}
        return self._validate(NovaAbsoluteLimits, absolute, "/limits")

    def check(self, region: Optional[str]):
        """Cheapest authenticated call, used for connection tests."""
        self._get(region, "/servers", params={"limit": 1})
