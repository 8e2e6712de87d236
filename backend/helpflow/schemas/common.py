"""
HelpFlow Backend: Shared Response Schemas
==========================================

What:  Error envelope and health report shared by every router.
"""

from typing import Dict, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error body for all API errors.

    Example:
        {
            "error": "validation_error",
            "message": "Missing required fields: recipientEmail",
            "details": {"missing_fields": ["recipientEmail"]},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """
    What:  Service and dependency status for monitors and load balancers.

    status:
        healthy   - database reachable, every integration configured
        degraded  - database reachable, at least one integration unconfigured
        unhealthy - database unreachable
    """
    status: str = Field(description="healthy, degraded or unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="connected or disconnected")
    integrations: Dict[str, str] = Field(
        description="Per integration: configured or not_configured"
    )
    uptime_seconds: float = Field(description="Seconds since service started")
