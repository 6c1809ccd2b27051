"""
Middleware package for FastAPI application.

Contains:
- MetricsMiddleware: Request tracking and Prometheus metrics
"""

from infra_monitor.middleware.metrics import (
    MetricsMiddleware,
    get_metrics_text,
    get_metrics_content_type,
    record_provider_call,
)

__all__ = [
    "MetricsMiddleware",
    "get_metrics_text",
    "get_metrics_content_type",
    "record_provider_call",
]
