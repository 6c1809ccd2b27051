"""
API v1 Module

1. Infrastructure - Clusters, nodes and workloads across providers
2. System - Health, provider connectivity, metrics, reload
"""

from infra_monitor.api.v1 import infrastructure, system

__all__ = [
    "infrastructure",
    "system"
]
