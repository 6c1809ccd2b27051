"""
API Metrics Middleware - Request and provider call tracking for Prometheus.

This module provides:
- Request count and duration per endpoint
- Error rates per endpoint
- Provider call count and duration per provider type, operation and outcome
"""

import time
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST, CollectorRegistry


# ============================================================================
# Prometheus Metrics Registry
# ============================================================================

# Separate registry so only monitor metrics are exported
metrics_registry = CollectorRegistry()

api_requests_total = Counter(
    'api_requests_total',
    'Total number of API requests',
    ['method', 'endpoint', 'status_code'],
    registry=metrics_registry
)

api_request_duration_seconds = Histogram(
    'api_request_duration_seconds',
    'API request duration in seconds',
    ['method', 'endpoint'],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
    registry=metrics_registry
)

api_errors_total = Counter(
    'api_errors_total',
    'Total number of API errors',
    ['method', 'endpoint', 'error_type'],
    registry=metrics_registry
)

provider_calls_total = Counter(
    'provider_calls_total',
    'Total number of provider operations',
    ['provider_type', 'operation', 'outcome'],
    registry=metrics_registry
)

provider_call_duration_seconds = Histogram(
    'provider_call_duration_seconds',
    'Provider operation duration in seconds',
    ['provider_type', 'operation'],
    buckets=(0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0),
    registry=metrics_registry
)

_STATIC_SEGMENTS = {
    'api', 'v1', 'infrastructure', 'list', 'cluster', 'node', 'workloads',
    'system', 'health', 'providers', 'metrics', 'reload',
}

_PLACEHOLDERS = {
    'cluster': '{cluster_name}',
    'node': '{node_name}',
}


# ============================================================================
# Metrics Middleware
# ============================================================================

class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware recording request count, duration and errors."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path == "/api/v1/system/metrics":
            return await call_next(request)

        start_time = time.time()
        endpoint = normalize_endpoint(request.url.path)
        method = request.method

        try:
            response = await call_next(request)
        except Exception as exc:
            api_errors_total.labels(
                method=method,
                endpoint=endpoint,
                error_type=exc.__class__.__name__
            ).inc()
            api_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(time.time() - start_time)
            raise

        status_code = response.status_code
        api_requests_total.labels(method=method, endpoint=endpoint, status_code=status_code).inc()
        api_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(time.time() - start_time)

        if status_code >= 400:
            error_type = "client_error" if status_code < 500 else "server_error"
            api_errors_total.labels(method=method, endpoint=endpoint, error_type=error_type).inc()

        return response


def normalize_endpoint(path: str) -> str:
    """
    Replace dynamic path segments with placeholders.

    - /api/v1/infrastructure/cluster/pve/node/pve1 -> /api/v1/infrastructure/cluster/{cluster_name}/node/{node_name}

    Cluster names may contain "/" (cloud/RegionOne); every segment up to
    the next static segment is folded into one placeholder.
    """
    normalized = []
    placeholder = None
    for segment in path.split('/'):
        if not segment:
            normalized.append(segment)
            continue
        if segment in _STATIC_SEGMENTS:
            normalized.append(segment)
            placeholder = _PLACEHOLDERS.get(segment)
            continue
        token = placeholder or '{id}'
        if not normalized or normalized[-1] != token:
            normalized.append(token)
    return '/'.join(normalized)


# ============================================================================
# Metrics Export Functions
# ============================================================================

def get_metrics_text() -> bytes:
    """Generate Prometheus text format metrics."""
    return generate_latest(metrics_registry)


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST


# ============================================================================
# Helper Functions for Manual Metric Recording
# ============================================================================

def record_provider_call(provider_type: str, operation: str, outcome: str, duration: float):
    """
    Record one provider operation.

    Args:
        provider_type: proxmox, kubernetes or openstack
        operation: get_clusters, get_cluster, get_node or get_workloads
        outcome: success, error, not_found or exception
        duration: Elapsed seconds
    """
    provider_calls_total.labels(provider_type=provider_type, operation=operation, outcome=outcome).inc()
    provider_call_duration_seconds.labels(provider_type=provider_type, operation=operation).observe(duration)
