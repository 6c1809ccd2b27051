import logging
from typing import Any, List

from infra_monitor.providers.config import ProxmoxConfig
from infra_monitor.providers.http import JsonHttpClient
from infra_monitor.providers.exceptions import ProviderResponseError
from infra_monitor.providers.proxmox.schemas import (
    CephStatus,
    ProxmoxGuest,
    ProxmoxGuestList,
    ProxmoxGuestStatus,
    ProxmoxNodeDetail,
    ProxmoxNodeList,
    ProxmoxNodeSummary,
    ProxmoxVersion,
)

logger = logging.getLogger(__name__)

GUEST_TYPES = ("qemu", "lxc")


class ProxmoxClient(JsonHttpClient):
    """A client for the Proxmox VE JSON API authenticated with an API token."""

    def __init__(self, config: ProxmoxConfig, timeout: float):
        super().__init__(timeout=timeout, verify=not config.allow_insecure)
        self.base_url = f"{config.url.rstrip('/')}/api2/json"
        self.session.headers.update({
            "Authorization": f"PVEAPIToken={config.token_id}={config.token_secret}"
        })

    def _get_data(self, path: str) -> Any:
        url = f"{self.base_url}{path}"
        payload = self._request("get", url)
        if not isinstance(payload, dict) or "data" not in payload:
            raise ProviderResponseError(f"Missing data envelope in response from {url}")
        return payload["data"]

    def get_version(self) -> ProxmoxVersion:
        return self._validate(ProxmoxVersion, self._get_data("/version"), "/version")

    def list_nodes(self) -> List[ProxmoxNodeSummary]:
        data = self._get_data("/nodes")
        return self._validate(ProxmoxNodeList, {"nodes": data}, "/nodes").nodes

    def get_node_status(self, node: str) -> ProxmoxNodeDetail:
        path = f"/nodes/{node}/status"
        return self._validate(ProxmoxNodeDetail, self._get_data(path), path)

    def list_guests(self, node: str, guest_type: str) -> List[ProxmoxGuest]:
        """Lists QEMU VMs or LXC containers of a node."""
        if guest_type not in GUEST_TYPES:
            raise ValueError(f"Unknown guest type '{guest_type}'")
        path = f"/nodes/{node}/{guest_type}"
        return self._validate(ProxmoxGuestList, {"guests": self._get_data(path)}, path).guests

    def get_guest_status(self, node: str, guest_type: str, vmid: int) -> ProxmoxGuestStatus:
        path = f"/nodes/{node}/{guest_type}/{vmid}/status/current"
        return self._validate(ProxmoxGuestStatus, self._get_data(path), path)

    def get_ceph_status(self) -> CephStatus:
        path = "/cluster/ceph/status"
        return self._validate(CephStatus, self._get_data(path), path)
