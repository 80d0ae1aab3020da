"""
Translation module: canonical <-> provider shapes.

This module contains:
- schema.py: Tool declaration translation (JSON Schema and Gemini)
- conversation.py: Turn history translation (chat-completions and Gemini)
"""

from callrelay.translation.schema import (
    from_gemini_declaration,
    from_json_schema,
    from_openai_tool,
    to_gemini_declaration,
    to_gemini_declarations,
    to_gemini_schema,
    to_json_schema,
    to_openai_tool,
    to_openai_tools,
)

from callrelay.translation.conversation import (
    append_tool_results,
    serialize_tool_result,
    to_gemini_contents,
    to_gemini_function_calls,
    to_gemini_function_responses,
    to_openai_messages,
)

__all__ = [
    # Tool schemas
    "to_json_schema",
    "to_gemini_schema",
    "to_openai_tool",
    "to_openai_tools",
    "to_gemini_declaration",
    "to_gemini_declarations",
    "from_json_schema",
    "from_openai_tool",
    "from_gemini_declaration",
    # Conversation history
    "serialize_tool_result",
    "append_tool_results",
    "to_openai_messages",
    "to_gemini_contents",
    "to_gemini_function_calls",
    "to_gemini_function_responses",
]
