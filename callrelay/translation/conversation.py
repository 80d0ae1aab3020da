"""
Conversation Adapter

Converts canonical turn history into each provider's message shape.

The providers disagree on where the system prompt lives:
- OpenAI / Groq want it inline, as the first "system" message
- Gemini wants it out-of-band (system_instruction), so it never appears
  in the contents list

Canonical "system" turns are dropped for both: the system prompt passed
alongside the history is the single source of truth.
"""

import json
from typing import Any, Iterable

from google.genai import types

from callrelay.schemas.conversation import ToolCall, ToolResult, Turn


def serialize_tool_result(value: Any) -> str:
    """Serialize a tool result for a provider; strings pass through unchanged."""
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str)


def append_tool_results(history: Iterable[Turn], tool_results: Iterable[ToolResult]) -> list[Turn]:
    """
    Return a new history with one tool turn per result appended.

    The input history is not modified.
    """
    updated = list(history)
    for tool_result in tool_results:
        updated.append(
            Turn(
                role="tool",
                content=serialize_tool_result(tool_result.result),
                tool_name=tool_result.name,
                tool_call_id=tool_result.id,
                tool_result=tool_result.result,
            )
        )
    return updated


def _tool_payload(turn: Turn) -> Any:
    return turn.tool_result if turn.tool_result is not None else turn.content


def _openai_tool_call_message(tool_calls: list[ToolCall]) -> dict[str, Any]:
    return {
        "role": "assistant",
        "content": None,
        "tool_calls": [
            {
                "id": call.id,
                "type": "function",
                "function": {"name": call.name, "arguments": json.dumps(call.args)},
            }
            for call in tool_calls
        ],
    }


def to_openai_messages(
    history: Iterable[Turn],
    system_prompt: str,
    pending_tool_calls: list[ToolCall] | None = None,
) -> list[dict[str, Any]]:
    """
    Convert history to chat-completions messages (OpenAI and Groq).

    Args:
        history: Canonical turns, oldest first
        system_prompt: Rendered inline as the first message, omitted if empty
        pending_tool_calls: Tool calls answered by tool turns in history.
                            Rendered as the assistant message that must
                            precede the first tool message answering them.

    Returns:
        List of message dicts ready for chat.completions.create()
    """
    messages: list[dict[str, Any]] = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    pending_ids = {call.id for call in pending_tool_calls or []}
    pending_emitted = not pending_ids

    for turn in history:
        if turn.role == "system":
            continue
        if turn.role == "user":
            messages.append({"role": "user", "content": turn.content})
        elif turn.role == "assistant":
            messages.append({"role": "assistant", "content": turn.content})
        elif turn.role == "tool":
            if not pending_emitted and turn.tool_call_id in pending_ids:
                messages.append(_openai_tool_call_message(pending_tool_calls))
                pending_emitted = True
            messages.append(
                {
                    "role": "tool",
                    "tool_call_id": turn.tool_call_id or "unknown",
                    "content": serialize_tool_result(_tool_payload(turn)),
                }
            )

    return messages


def _gemini_function_response(name: str, result: Any) -> types.Part:
    return types.Part.from_function_response(name=name, response={"result": result})


def to_gemini_contents(
    history: Iterable[Turn],
    pending_tool_calls: list[ToolCall] | None = None,
) -> list[types.Content]:
    """
    Convert history to Gemini contents.

    The system prompt is not part of the result; pass it as
    system_instruction. Assistant turns use the "model" role and tool turns
    become function_response parts.

    Args:
        history: Canonical turns, oldest first
        pending_tool_calls: Tool calls answered by tool turns in history,
                            rendered as the model's function_call turn.
    """
    contents: list[types.Content] = []
    pending_ids = {call.id for call in pending_tool_calls or []}
    pending_emitted = not pending_ids

    for turn in history:
        if turn.role == "system":
            continue
        if turn.role == "user":
            contents.append(types.Content(role="user", parts=[types.Part(text=turn.content)]))
        elif turn.role == "assistant":
            contents.append(types.Content(role="model", parts=[types.Part(text=turn.content)]))
        elif turn.role == "tool":
            if not pending_emitted and turn.tool_call_id in pending_ids:
                contents.append(to_gemini_function_calls(pending_tool_calls))
                pending_emitted = True
            contents.append(
                types.Content(
                    role="user",
                    parts=[
                        _gemini_function_response(turn.tool_name or "unknown", _tool_payload(turn))
                    ],
                )
            )

    return contents


def to_gemini_function_calls(tool_calls: list[ToolCall]) -> types.Content:
    """Render proposed tool calls as the model turn that requested them."""
    return types.Content(
        role="model",
        parts=[types.Part.from_function_call(name=call.name, args=call.args) for call in tool_calls],
    )


def to_gemini_function_responses(tool_results: Iterable[ToolResult]) -> list[types.Part]:
    """Render tool results as the function_response parts Gemini expects."""
    return [_gemini_function_response(result.name, result.result) for result in tool_results]
