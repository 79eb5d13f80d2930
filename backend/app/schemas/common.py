"""
Wayfarer Backend — Shared Pydantic Schemas
============================================

What:  Base model configuration and response models shared by every resource.
Why:   The API speaks camelCase (ratingsAverage) while Python attributes are
       snake_case (ratings_average). One base class owns that mapping.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class APIModel(BaseModel):
    """
    Base for all request/response models.

    alias_generator:   snake_case attributes ↔ camelCase JSON keys
    populate_by_name:  services may construct models with attribute names
    from_attributes:   response models validate straight from ORM objects
    extra="ignore":    unknown and derived keys (e.g. slug) are dropped
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        extra="ignore",
    )


class ErrorResponse(BaseModel):
    """
    Error body produced by the error translation layer.

    Production:
        {"status": "fail", "message": "No tour found with that ID."}
    Development adds `error` (type, status, context) and `stack`.
    """
    status: str = Field(description="'fail' for client faults, 'error' for server faults")
    message: str = Field(description="Human-readable error description")
    error: Optional[Dict[str, Any]] = Field(default=None, description="Development only")
    stack: Optional[str] = Field(default=None, description="Development only")


class HealthResponse(BaseModel):
    """Health check response showing service and dependency status."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    environment: str = Field(description="development or production")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
