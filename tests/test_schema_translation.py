"""
Capability Schema Translator Tests

Covers type normalization, description handling, provider shapes and
translation back to canonical form.
"""

import pytest

from callrelay.schemas.conversation import ParameterSchema, ToolDeclaration, normalize_type
from callrelay.translation.schema import (
    from_gemini_declaration,
    from_json_schema,
    from_openai_tool,
    to_gemini_declaration,
    to_gemini_schema,
    to_json_schema,
    to_openai_tool,
    to_openai_tools,
)

NESTED_DECLARATION = {
    "name": "createOrder",
    "description": "Place a pizza order",
    "parameters": {
        "type": "object",
        "properties": {
            "customer": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "phone": {"type": "string", "description": "E.164 phone"},
                },
                "required": ["phone"],
            },
            "items": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "sku": {"type": "string"},
                        "quantity": {"type": "integer"},
                        "price": {"type": "number"},
                    },
                    "required": ["sku", "quantity"],
                },
            },
            "delivery": {"type": "boolean"},
        },
        "required": ["customer", "items"],
    },
}


def _shape(schema: ParameterSchema) -> tuple:
    """Type, required and nested property keys, recursively."""
    return (
        schema.type,
        tuple(schema.required or ()),
        tuple(
            (key, _shape(value)) for key, value in sorted((schema.properties or {}).items())
        ),
        _shape(schema.items) if schema.items else None,
    )


class TestTypeNormalization:
    """Unknown or missing types default to string."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("object", "object"),
            ("OBJECT", "object"),
            ("Integer", "integer"),
            ("frobnicate", "string"),
            (None, "string"),
            ("", "string"),
        ],
    )
    def test_normalize_type(self, raw, expected):
        assert normalize_type(raw) == expected

    def test_unknown_type_translates_to_string(self):
        """type 'frobnicate' becomes 'string' and never raises."""
        declaration = ToolDeclaration.model_validate(
            {"name": "weird", "parameters": {"type": "frobnicate"}}
        )

        assert to_openai_tool(declaration)["function"]["parameters"]["type"] == "string"
        assert to_gemini_declaration(declaration)["parameters"]["type"] == "STRING"

    def test_nested_unknown_type_translates_to_string(self):
        schema = ParameterSchema.model_validate(
            {"type": "object", "properties": {"when": {"type": "datetime"}}}
        )

        assert to_json_schema(schema)["properties"]["when"] == {"type": "string"}

    def test_missing_type_defaults_to_string(self):
        schema = ParameterSchema.model_validate({"description": "free text"})

        assert to_json_schema(schema) == {"type": "string", "description": "free text"}


class TestOpenAIShape:
    """Tests for the chat-completions tool shape used by OpenAI and Groq."""

    def test_tool_wrapper(self, book_appointment_tool):
        tool = to_openai_tool(book_appointment_tool)

        assert tool["type"] == "function"
        assert tool["function"]["name"] == "bookAppointment"
        assert tool["function"]["description"] == "Book an appointment for the caller"
        assert tool["function"]["parameters"]["required"] == ["time"]

    def test_missing_description_is_omitted(self):
        """Absent descriptions are left out, not sent as empty strings."""
        declaration = ToolDeclaration.model_validate(
            {"name": "ping", "parameters": {"type": "object", "properties": {"x": {"type": "string"}}}}
        )
        tool = to_openai_tool(declaration)

        assert "description" not in tool["function"]
        assert "description" not in tool["function"]["parameters"]["properties"]["x"]

    def test_no_parameters_gets_empty_object(self):
        tool = to_openai_tool(ToolDeclaration(name="transferCall"))

        assert tool["function"]["parameters"] == {"type": "object", "properties": {}}

    def test_empty_required_is_omitted(self):
        schema = ParameterSchema(type="object", properties={}, required=[])

        assert "required" not in to_json_schema(schema)

    def test_catalog_translation_keeps_order(self, book_appointment_tool):
        tools = to_openai_tools([book_appointment_tool, ToolDeclaration(name="transferCall")])

        assert [t["function"]["name"] for t in tools] == ["bookAppointment", "transferCall"]

    def test_translation_is_deterministic(self):
        declaration = ToolDeclaration.model_validate(NESTED_DECLARATION)

        assert to_openai_tool(declaration) == to_openai_tool(declaration)


class TestGeminiShape:
    """Tests for Gemini function declarations."""

    def test_types_are_uppercase(self):
        declaration = ToolDeclaration.model_validate(NESTED_DECLARATION)
        translated = to_gemini_declaration(declaration)

        params = translated["parameters"]
        assert params["type"] == "OBJECT"
        assert params["properties"]["items"]["type"] == "ARRAY"
        assert params["properties"]["items"]["items"]["properties"]["quantity"]["type"] == "INTEGER"
        assert params["properties"]["delivery"]["type"] == "BOOLEAN"

    def test_no_parameters_omits_parameters(self):
        translated = to_gemini_declaration(ToolDeclaration(name="transferCall"))

        assert translated == {"name": "transferCall"}

    def test_description_preserved(self):
        schema = ParameterSchema(type="string", description="E.164 phone")

        assert to_gemini_schema(schema) == {"type": "STRING", "description": "E.164 phone"}


class TestRoundTrip:
    """Translating to a provider shape and back preserves structure."""

    def test_openai_round_trip(self):
        original = ToolDeclaration.model_validate(NESTED_DECLARATION)
        restored = from_openai_tool(to_openai_tool(original))

        assert restored.name == original.name
        assert restored.description == original.description
        assert _shape(restored.parameters) == _shape(original.parameters)

    def test_gemini_round_trip(self):
        original = ToolDeclaration.model_validate(NESTED_DECLARATION)
        restored = from_gemini_declaration(to_gemini_declaration(original))

        assert _shape(restored.parameters) == _shape(original.parameters)

    def test_round_trip_preserves_descriptions(self):
        original = ToolDeclaration.model_validate(NESTED_DECLARATION)
        restored = from_openai_tool(to_openai_tool(original))

        phone = restored.parameters.properties["customer"].properties["phone"]
        assert phone.description == "E.164 phone"

    def test_from_json_schema_handles_non_dict(self):
        assert from_json_schema(None) == ParameterSchema(type="object", properties={})
