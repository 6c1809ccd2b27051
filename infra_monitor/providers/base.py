"""
Provider contract shared by every infrastructure backend.

A provider wraps one configured backend account. The registry owns
provider instances; each instance owns its HTTP/API clients and caches.
Provider operations never raise: failures become a ClusterStatus carrying
an error, a None node or an empty workload list.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Generic, List, Optional, TypeVar

from infra_monitor.models.common.enums import ProviderType
from infra_monitor.models.common.responses import ConnectionResult
from infra_monitor.models.infrastructure import ClusterStatus, NodeStatus, Workload

T = TypeVar("T")


@dataclass
class OptionalResult(Generic[T]):
    """
    Outcome of a best-effort subsystem call (Ceph status, metrics API, flavors).

    status is "data" when the call succeeded, "unavailable" when the
    subsystem is not installed and "error" for any other failure.
    """
    status: str
    data: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def of(cls, data: T) -> "OptionalResult[T]":
        return cls(status="data", data=data)

    @classmethod
    def unavailable(cls, reason: Optional[str] = None) -> "OptionalResult[T]":
        return cls(status="unavailable", error=reason)

    @classmethod
    def failed(cls, error: str) -> "OptionalResult[T]":
        return cls(status="error", error=error)

    @property
    def has_data(self) -> bool:
        return self.status == "data"


class InfraProvider(ABC):
    """Base class for backend adapters."""

    type: ProviderType

    def __init__(self, config):
        self.config = config

    @property
    def name(self) -> str:
        """Configured account name."""
        return self.config.name

    def cluster_names(self) -> List[str]:
        """
        Cluster names this provider exposes, known without any network call.

        The registry uses them to precompute its cluster-name lookup.
        """
        return [self.name]

    def owns_cluster(self, cluster_name: str) -> bool:
        """Whether a cluster name belongs to this provider. Never does I/O."""
        return cluster_name == self.name or cluster_name in self.cluster_names()

    def _error_cluster(self, cluster_name: str, error: str) -> ClusterStatus:
        return ClusterStatus(name=cluster_name, provider=self.type, nodes=[], error=error)

    @abstractmethod
    async def test_connection(self) -> ConnectionResult:
        """Minimal call proving reachability and valid credentials."""

    @abstractmethod
    async def get_clusters(self) -> List[ClusterStatus]:
        """All clusters of this account."""

    @abstractmethod
    async def get_cluster(self, cluster_name: str) -> Optional[ClusterStatus]:
        """One cluster, or None if the name belongs to another provider."""

    @abstractmethod
    async def get_node(self, cluster_name: str, node_name: str) -> Optional[NodeStatus]:
        """One node, or None if unknown or unreachable."""

    @abstractmethod
    async def get_workloads(self, cluster_name: str, node_name: str) -> List[Workload]:
        """Workloads placed on a node; empty when there are none."""

    async def close(self):
        """Drop cached state. Called when the registry is reinitialized."""
        return None
