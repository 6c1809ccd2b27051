"""
System API - Health, provider connectivity and API metrics endpoints.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from typing import List
import logging

from infra_monitor import __version__
from infra_monitor.deps import get_aggregator
from infra_monitor.middleware import get_metrics_text, get_metrics_content_type
from infra_monitor.models.common.responses import HealthResponse, ProviderHealth, SuccessResponse
from infra_monitor.services.aggregator import InfrastructureAggregator

router = APIRouter()
logger = logging.getLogger(__name__)


# ============================================================================
# Health Check
# ============================================================================

@router.get("/system/health", response_model=HealthResponse)
async def health_check(aggregator: InfrastructureAggregator = Depends(get_aggregator)):
    """
    Provides the health status of the API.

    Does not contact any backend; use `/system/providers` for that.
    """
    providers_by_type = aggregator.registry.get_summary()
    return HealthResponse(
        status="healthy",
        version=__version__,
        providers_configured=sum(providers_by_type.values()),
        providers_by_type=providers_by_type
    )


@router.get("/system/providers", response_model=List[ProviderHealth])
async def provider_connections(aggregator: InfrastructureAggregator = Depends(get_aggregator)):
    """
    Test connectivity and credentials of every configured provider.

    **Returns:** One entry per provider with `ok` and a diagnostic message.
    """
    return await aggregator.test_connections()


@router.post("/system/reload", response_model=SuccessResponse)
async def reload_providers(aggregator: InfrastructureAggregator = Depends(get_aggregator)):
    """Re-read provider configuration and rebuild every provider, dropping all caches."""
    await aggregator.reload()
    count = len(aggregator.list_provider_names())
    logger.info(f"Provider configuration reloaded, {count} providers active")
    return SuccessResponse(message=f"Reloaded {count} providers")


# ============================================================================
# API Metrics
# ============================================================================

@router.get("/system/metrics")
async def get_api_metrics():
    """API request and provider call metrics in Prometheus text format."""
    return Response(content=get_metrics_text(), media_type=get_metrics_content_type())
