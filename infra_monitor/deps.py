from fastapi import Request

from infra_monitor.services.aggregator import InfrastructureAggregator


def get_aggregator(request: Request) -> InfrastructureAggregator:
    """Returns the aggregator built during application startup."""
    return request.app.state.aggregator
