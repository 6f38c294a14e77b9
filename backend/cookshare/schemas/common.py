"""
CookShare Backend — Shared Pydantic Schemas
=============================================

What:  Base model and the schemas every router shares: error body, health
       body, plain message body and the `{userId}` request body.
How:   CamelModel serializes with camelCase aliases (the wire format the
       frontend speaks) while accepting either camelCase or snake_case on
       input, and can be built straight from ORM rows.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class UserIdBody(CamelModel):
    """Request body carrying only the caller's id (join, delete, like...)."""

    user_id: Optional[str] = Field(default=None, description="Caller's user id")


class MessageResponse(CamelModel):
    message: str = Field(description="Human-readable outcome")


# ══════════════════════════════════════════════════════════════════════════
# Error & Health
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error body for every failed request.

    Fields:
        error: Machine-readable error code (e.g. "conflict", "not_found")
        message: Human-readable description for display to users
        details: Extra context (reason code, offending field); omitted for
                 500s outside development
        request_id: Correlation ID for tracing this error in server logs

    Example:
        {
            "error": "conflict",
            "message": "Already a member of this group",
            "details": {"reason": "already_member"},
            "request_id": "550e8400-e29b-41d4-a716-446655440000"
        }
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
