"""
Canonical Conversation Schemas

Backend-agnostic representation of one conversational turn:
- Turn: one role-tagged entry in conversation history
- ParameterSchema / ToolDeclaration: callable tool catalog
- DispatchRequest: everything a provider needs to answer one turn
- ToolCall / ToolResult: proposed tool invocations and their outcomes
- DispatchResult: the normalized reply from whichever provider answered

Nothing above the backend invokers ever sees provider-specific shapes;
every invoker normalizes into these models at the boundary.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

SCHEMA_TYPES = frozenset({"string", "number", "integer", "boolean", "array", "object"})

TurnRole = Literal["user", "assistant", "tool", "system"]


def normalize_type(value: Any) -> str:
    """
    Normalize a parameter type to one of the six recognized primitives.

    Matching is case-insensitive so Gemini enum spellings ("OBJECT") are
    accepted. Missing or unrecognized types become "string".
    """
    if value is None:
        return "string"
    # Enum members (e.g. SDK Type enums) carry the spelling in .value
    raw = getattr(value, "value", value)
    schema_type = str(raw).strip().lower()
    return schema_type if schema_type in SCHEMA_TYPES else "string"


class Turn(BaseModel):
    """
    One entry in conversation history.

    Turns are immutable once appended. Tool turns carry the id and name of
    the call they answer plus the (already serialized or raw) result.
    """

    model_config = ConfigDict(frozen=True)

    role: TurnRole
    content: str = ""
    tool_name: str | None = None
    tool_call_id: str | None = None
    tool_result: Any = None


class ParameterSchema(BaseModel):
    """
    Recursively-typed tool parameter schema.

    The type is normalized during validation, so a malformed or
    forward-incompatible declaration never blocks dispatch.
    """

    type: str = "string"
    description: str | None = None
    properties: dict[str, "ParameterSchema"] | None = None
    required: list[str] | None = None
    items: "ParameterSchema | None" = None

    @field_validator("type", mode="before")
    @classmethod
    def coerce_type(cls, v: Any) -> str:
        """Coerce unknown or missing types to "string"."""
        return normalize_type(v)


ParameterSchema.model_rebuild()


class ToolDeclaration(BaseModel):
    """A callable capability offered to the model."""

    name: str = Field(..., min_length=1)
    description: str | None = None
    parameters: ParameterSchema | None = None


class ToolCall(BaseModel):
    """A tool invocation proposed by a provider."""

    id: str
    name: str
    args: dict[str, Any] = Field(default_factory=dict)


class ToolResult(BaseModel):
    """Result of executing one proposed tool call."""

    id: str
    name: str
    result: Any = None


class DispatchRequest(BaseModel):
    """
    One conversational turn to dispatch.

    Constructed once per turn by the caller; read-only to the dispatcher.

    Example:
        {
            "user_message": "book me tomorrow at 2pm",
            "conversation_history": [],
            "system_prompt": "You are the front desk of Luna Salon.",
            "tools": [{"name": "bookAppointment", "parameters": {...}}]
        }
    """

    model_config = ConfigDict(frozen=True)

    user_message: str = ""
    conversation_history: list[Turn] = Field(default_factory=list)
    system_prompt: str = ""
    tools: list[ToolDeclaration] = Field(default_factory=list)


class DispatchResult(BaseModel):
    """
    Normalized reply from a provider.

    Exactly one of text or tool_calls is meaningful: a reply with tool calls
    has empty text, since the model is re-invoked after tool execution to
    produce prose.
    """

    text: str = ""
    provider: str
    tool_calls: list[ToolCall] = Field(default_factory=list)

    @property
    def has_tool_calls(self) -> bool:
        """True when the provider asked for tools to be executed."""
        return bool(self.tool_calls)
