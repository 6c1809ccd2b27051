"""
Common Response Models - Standardized API response structures.

This module defines the error envelope and system health models shared
by all API endpoints.
"""

from typing import Optional, Dict
from datetime import datetime
from pydantic import BaseModel, Field


# ============================================================================
# Base Response Models
# ============================================================================

class BaseResponse(BaseModel):
    """Base response model carrying a UTC timestamp."""
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Response timestamp (UTC)")


class SuccessResponse(BaseResponse):
    """Generic success response for operations without a specific data structure."""
    status: str = Field("success", description="Operation status")
    message: str = Field(..., description="Success message")


# ============================================================================
# Error Response Models
# ============================================================================

class ErrorDetail(BaseModel):
    """
    Detailed error information.

    Provides structured error data with code, message, and optional details.
    """
    code: str = Field(..., description="Error code (e.g., CONFIG_ERROR, VALIDATION_ERROR, NOT_FOUND)")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[str] = Field(None, description="Additional error details or context")


class ErrorResponse(BaseResponse):
    """Standard error response for all API errors."""
    error: ErrorDetail = Field(..., description="Error details")


# ============================================================================
# System Models
# ============================================================================

class ConnectionResult(BaseModel):
    """Outcome of a provider connectivity probe."""
    ok: bool = Field(..., description="Whether the backend answered")
    message: str = Field(..., description="Human-readable connection message")


class ProviderHealth(BaseModel):
    """Connectivity of a single configured provider account."""
    name: str = Field(..., description="Provider account name")
    type: str = Field(..., description="Provider type")
    ok: bool = Field(..., description="Whether the backend answered")
    message: str = Field(..., description="Connection message")


class HealthResponse(BaseResponse):
    """API health status."""
    status: str = Field(..., description="Overall API status")
    version: str = Field(..., description="API version")
    providers_configured: int = Field(..., ge=0, description="Number of enabled provider accounts")
    providers_by_type: Dict[str, int] = Field(default_factory=dict, description="Enabled accounts per provider type")
