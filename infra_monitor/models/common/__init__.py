from infra_monitor.models.common.enums import ProviderType, NodeState, WorkloadState, WorkloadType
from infra_monitor.models.common.responses import (
    BaseResponse,
    SuccessResponse,
    ErrorDetail,
    ErrorResponse,
    ConnectionResult,
    ProviderHealth,
    HealthResponse,
)

__all__ = [
    "ProviderType",
    "NodeState",
    "WorkloadState",
    "WorkloadType",
    "BaseResponse",
    "SuccessResponse",
    "ErrorDetail",
    "ErrorResponse",
    "ConnectionResult",
    "ProviderHealth",
    "HealthResponse",
]
