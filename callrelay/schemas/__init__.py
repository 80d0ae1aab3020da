"""
Schemas module: canonical conversation models and HTTP API schemas.

This module contains:
- conversation.py: Turn, ToolDeclaration, DispatchRequest, DispatchResult
- api.py: Request/response bodies for the HTTP surface
"""

from callrelay.schemas.conversation import (
    SCHEMA_TYPES,
    DispatchRequest,
    DispatchResult,
    ParameterSchema,
    ToolCall,
    ToolDeclaration,
    ToolResult,
    Turn,
    normalize_type,
)

from callrelay.schemas.api import (
    ErrorCodes,
    ErrorDetail,
    ErrorResponse,
    HealthResponse,
    ProviderHealth,
    ToolResultsRequest,
)

__all__ = [
    # Canonical conversation models
    "SCHEMA_TYPES",
    "Turn",
    "ParameterSchema",
    "ToolDeclaration",
    "ToolCall",
    "ToolResult",
    "DispatchRequest",
    "DispatchResult",
    "normalize_type",
    # API schemas
    "ErrorCodes",
    "ErrorDetail",
    "ErrorResponse",
    "HealthResponse",
    "ProviderHealth",
    "ToolResultsRequest",
]
