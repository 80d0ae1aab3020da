"""
Capability Schema Translator

Converts canonical tool declarations into each provider's declaration shape:
- OpenAI / Groq: {"type": "function", "function": {..., "parameters": <JSON Schema>}}
- Gemini: FunctionDeclaration dict with OpenAPI-subset schema (uppercase types)

Translation is pure and recursive over properties/items. Unknown types are
coerced to string rather than rejected, and a missing description is
omitted rather than defaulted to "" since providers treat empty and absent
descriptions differently.

The from_* functions translate provider shapes back to canonical form.
"""

from typing import Any

from callrelay.schemas.conversation import ParameterSchema, ToolDeclaration, normalize_type

EMPTY_OBJECT_SCHEMA: dict[str, Any] = {"type": "object", "properties": {}}


def _translate(schema: ParameterSchema, type_name) -> dict[str, Any]:
    translated: dict[str, Any] = {"type": type_name(normalize_type(schema.type))}

    if schema.description:
        translated["description"] = schema.description

    if schema.properties is not None:
        translated["properties"] = {
            key: _translate(value, type_name) for key, value in schema.properties.items()
        }

    if schema.required:
        translated["required"] = list(schema.required)

    if schema.items is not None:
        translated["items"] = _translate(schema.items, type_name)

    return translated


def to_json_schema(schema: ParameterSchema) -> dict[str, Any]:
    """Translate a parameter schema to JSON Schema (lowercase types)."""
    return _translate(schema, str.lower)


def to_gemini_schema(schema: ParameterSchema) -> dict[str, Any]:
    """Translate a parameter schema to Gemini's schema shape (uppercase types)."""
    return _translate(schema, str.upper)


def to_openai_tool(declaration: ToolDeclaration) -> dict[str, Any]:
    """
    Translate a tool declaration to the chat-completions tool shape.

    Used for both OpenAI and Groq, which share the format.

    Args:
        declaration: Canonical tool declaration

    Returns:
        {"type": "function", "function": {"name", "description"?, "parameters"}}
    """
    function: dict[str, Any] = {"name": declaration.name}
    if declaration.description:
        function["description"] = declaration.description
    if declaration.parameters is not None:
        function["parameters"] = to_json_schema(declaration.parameters)
    else:
        function["parameters"] = dict(EMPTY_OBJECT_SCHEMA)
    return {"type": "function", "function": function}


def to_openai_tools(declarations: list[ToolDeclaration]) -> list[dict[str, Any]]:
    """Translate a tool catalog to the chat-completions shape."""
    return [to_openai_tool(declaration) for declaration in declarations]


def to_gemini_declaration(declaration: ToolDeclaration) -> dict[str, Any]:
    """
    Translate a tool declaration to a Gemini function declaration.

    Args:
        declaration: Canonical tool declaration

    Returns:
        {"name", "description"?, "parameters"?} with uppercase schema types
    """
    translated: dict[str, Any] = {"name": declaration.name}
    if declaration.description:
        translated["description"] = declaration.description
    if declaration.parameters is not None:
        translated["parameters"] = to_gemini_schema(declaration.parameters)
    return translated


def to_gemini_declarations(declarations: list[ToolDeclaration]) -> list[dict[str, Any]]:
    """Translate a tool catalog to Gemini function declarations."""
    return [to_gemini_declaration(declaration) for declaration in declarations]


def from_json_schema(schema: dict[str, Any] | None) -> ParameterSchema:
    """
    Translate a JSON Schema or Gemini schema dict back to canonical form.

    Both spellings are accepted since type matching is case-insensitive.
    """
    if not isinstance(schema, dict):
        return ParameterSchema(type="object", properties={})

    properties = schema.get("properties")
    items = schema.get("items")
    required = schema.get("required")

    return ParameterSchema(
        type=normalize_type(schema.get("type")),
        description=schema.get("description") or None,
        properties=(
            {key: from_json_schema(value) for key, value in properties.items()}
            if isinstance(properties, dict)
            else None
        ),
        required=list(required) if isinstance(required, list) and required else None,
        items=from_json_schema(items) if isinstance(items, dict) else None,
    )


def from_openai_tool(tool: dict[str, Any]) -> ToolDeclaration:
    """Translate a chat-completions tool back to a canonical declaration."""
    function = tool.get("function", tool)
    return ToolDeclaration(
        name=function["name"],
        description=function.get("description") or None,
        parameters=from_json_schema(function.get("parameters")),
    )


def from_gemini_declaration(declaration: dict[str, Any]) -> ToolDeclaration:
    """Translate a Gemini function declaration back to canonical form."""
    parameters = declaration.get("parameters")
    return ToolDeclaration(
        name=declaration["name"],
        description=declaration.get("description") or None,
        parameters=from_json_schema(parameters) if parameters is not None else None,
    )
