"""
Pydantic Schemas for the CallRelay HTTP API

This module defines the request and response models for the thin HTTP
surface in front of the dispatcher:
- ToolResultsRequest: Reconciliation input (provider, request, tool results)
- Error responses and health check schemas

DispatchRequest and DispatchResult are shared with the in-process API and
live in schemas/conversation.py.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from callrelay.schemas.conversation import DispatchRequest, ToolCall, ToolResult


class ToolResultsRequest(BaseModel):
    """
    Request body for the /dispatch/tool-results endpoint.

    Example:
        {
            "provider": "openai",
            "request": {"user_message": "book me tomorrow at 2pm", ...},
            "tool_calls": [{"id": "x", "name": "bookAppointment", "args": {"time": "14:00"}}],
            "tool_results": [{"id": "x", "name": "bookAppointment", "result": {"ok": true}}]
        }
    """

    provider: str = Field(
        ...,
        description="Provider that proposed the tool calls",
    )

    request: DispatchRequest = Field(
        ...,
        description="The original dispatch request for this turn",
    )

    tool_calls: list[ToolCall] = Field(
        default_factory=list,
        description="Tool calls as proposed by the provider (optional)",
    )

    tool_results: list[ToolResult] = Field(
        ...,
        min_length=1,
        description="Results of executing the proposed tool calls",
    )


# =============================================================================
# ERROR MODELS
# =============================================================================


class ErrorCodes:
    """
    Standard error codes for API responses.

    These codes enable programmatic error handling by clients
    without parsing human-readable messages.
    """

    VALIDATION_ERROR = "VALIDATION_ERROR"
    ALL_PROVIDERS_FAILED = "ALL_PROVIDERS_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorDetail(BaseModel):
    """Machine-readable error code, message and optional field."""

    code: str = Field(
        ...,
        description="Machine-readable error code for programmatic handling",
    )

    message: str = Field(
        ...,
        description="Human-readable error message",
    )

    field: str | None = Field(
        default=None,
        description="Field that caused the error (for validation errors)",
    )

    attempts: list[dict] | None = Field(
        default=None,
        description="Per-provider outcomes when every provider failed",
    )


class ErrorResponse(BaseModel):
    """
    Standard error response format for all API errors.

    Example:
        {
            "error": {
                "code": "ALL_PROVIDERS_FAILED",
                "message": "All LLM providers failed (gemini=rate_limited, ...)"
            }
        }
    """

    error: ErrorDetail

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "error": {
                        "code": "ALL_PROVIDERS_FAILED",
                        "message": "All LLM providers failed (gemini=skipped, openai=error, groq=error)",
                    }
                }
            ]
        }
    )


# =============================================================================
# HEALTH MODELS
# =============================================================================


class ProviderHealth(BaseModel):
    """Availability of a single provider as seen by the health tracker."""

    status: Literal["available", "rate_limited", "error"] = Field(
        ...,
        description="Effective provider status (cooldown expiry applied)",
    )

    model: str | None = Field(
        default=None,
        description="Configured model name, None when the API key is missing",
    )

    cooldown_remaining_seconds: float | None = Field(
        default=None,
        ge=0.0,
        description="Seconds until the provider is retried",
    )


class HealthResponse(BaseModel):
    """
    Response from the /health endpoint.

    The service is "healthy" when the primary provider is available,
    "degraded" when only fallbacks are, and "unhealthy" when none are.
    """

    status: Literal["healthy", "degraded", "unhealthy"]
    service: str = Field(default="callrelay")
    version: str
    providers: dict[str, ProviderHealth] = Field(default_factory=dict)
    uptime_seconds: float | None = Field(default=None, ge=0.0)
