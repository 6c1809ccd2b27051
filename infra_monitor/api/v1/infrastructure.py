"""
Infrastructure API - Unified cluster, node and workload endpoints.

This module provides read-only endpoints over every configured backend:
- Cluster list (optionally filtered by provider type)
- Single cluster with its nodes
- Single node
- Workloads (VMs, containers, pods, instances) of a node

Cluster names may contain "/" (OpenStack "<account>/<region>", multi-context
Kubernetes "<account>/<context>").
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Path
from typing import List, Optional
import logging

from infra_monitor.deps import get_aggregator
from infra_monitor.models.common.enums import ProviderType
from infra_monitor.models.infrastructure import ClusterStatus, NodeStatus, Workload
from infra_monitor.services.aggregator import InfrastructureAggregator

router = APIRouter()
logger = logging.getLogger(__name__)


def parse_provider_type(provider: Optional[str]) -> Optional[ProviderType]:
    """Validate the ?provider= filter, raising 400 on unknown values."""
    if provider is None:
        return None
    try:
        return ProviderType(provider)
    except ValueError:
        allowed = ", ".join(p.value for p in ProviderType)
        raise HTTPException(
            status_code=400,
            detail=f"Invalid provider type '{provider}'. Must be one of: {allowed}"
        )


# ============================================================================
# Clusters
# ============================================================================

@router.get("/infrastructure",
           response_model=List[ClusterStatus],
           response_model_exclude_none=True,
           summary="List clusters",
           description="Get live status of every cluster of every configured provider.")
async def list_clusters(
    provider: Optional[str] = Query(None, description="Filter by provider type (proxmox, kubernetes, openstack)"),
    aggregator: InfrastructureAggregator = Depends(get_aggregator)
):
    """
    Get all clusters.

    **Query Parameters:**
    - `provider`: Optional provider type filter

    **Returns:** Clusters of every provider. A provider that cannot be
    reached contributes a cluster with `error` set and no nodes.
    """
    provider_type = parse_provider_type(provider)
    clusters = await aggregator.get_all_clusters(provider_type)
    logger.info(f"Retrieved {len(clusters)} clusters")
    return clusters


@router.get("/infrastructure/list",
           response_model=List[str],
           summary="List provider accounts",
           description="Get the names of configured provider accounts without contacting any backend.")
async def list_provider_names(
    provider: Optional[str] = Query(None, description="Filter by provider type"),
    aggregator: InfrastructureAggregator = Depends(get_aggregator)
):
    return aggregator.list_provider_names(parse_provider_type(provider))


# ============================================================================
# Nodes and Workloads
# ============================================================================
# Registered before the cluster route: the path converter would otherwise
# swallow "/node/..." into the cluster name.

@router.get("/infrastructure/cluster/{cluster_name:path}/node/{node_name}/workloads",
           response_model=List[Workload],
           response_model_exclude_none=True,
           summary="List node workloads",
           description="Get VMs, containers, pods or instances placed on a node.")
async def list_node_workloads(
    cluster_name: str = Path(..., description="Cluster name"),
    node_name: str = Path(..., description="Node name"),
    aggregator: InfrastructureAggregator = Depends(get_aggregator)
):
    """
    Get workloads of a node.

    **Returns:** Workloads of the node; an empty list when the node has none
    or its backend could not be reached. 404 when no provider owns the cluster.
    """
    if not aggregator.owns_cluster(cluster_name):
        raise HTTPException(status_code=404, detail=f"Cluster '{cluster_name}' not found")
    return await aggregator.get_workloads(cluster_name, node_name)


@router.get("/infrastructure/cluster/{cluster_name:path}/node/{node_name}",
           response_model=NodeStatus,
           response_model_exclude_none=True,
           summary="Get node",
           description="Get live status of one node.")
async def get_node(
    cluster_name: str = Path(..., description="Cluster name"),
    node_name: str = Path(..., description="Node name"),
    aggregator: InfrastructureAggregator = Depends(get_aggregator)
):
    if not aggregator.owns_cluster(cluster_name):
        raise HTTPException(status_code=404, detail=f"Cluster '{cluster_name}' not found")
    node = await aggregator.get_node(cluster_name, node_name)
    if node is None:
        raise HTTPException(status_code=404, detail=f"Node '{node_name}' not found or offline")
    return node


@router.get("/infrastructure/cluster/{cluster_name:path}",
           response_model=ClusterStatus,
           response_model_exclude_none=True,
           summary="Get cluster",
           description="Get live status of one cluster with its nodes.")
async def get_cluster(
    cluster_name: str = Path(..., description="Cluster name"),
    aggregator: InfrastructureAggregator = Depends(get_aggregator)
):
    """
    Get one cluster.

    **Path Parameters:**
    - `cluster_name`: Cluster name as returned by `/infrastructure`

    **Returns:** The cluster, possibly with `error` set. 404 when no provider owns the name.
    """
    cluster = await aggregator.get_cluster(cluster_name)
    if cluster is None:
        raise HTTPException(status_code=404, detail=f"Cluster '{cluster_name}' not found")
    return cluster
