"""
Conversation Adapter Tests

Validates history translation for chat-completions providers (inline
system prompt) and Gemini (out-of-band system prompt), including tool
result serialization.
"""

import json

import pytest

from callrelay.schemas.conversation import ToolCall, ToolResult, Turn
from callrelay.translation.conversation import (
    append_tool_results,
    serialize_tool_result,
    to_gemini_contents,
    to_gemini_function_responses,
    to_openai_messages,
)


@pytest.fixture
def history():
    return [
        Turn(role="system", content="stored system note"),
        Turn(role="user", content="Hi, are you open Sunday?"),
        Turn(role="assistant", content="We are open 10 to 4 on Sunday."),
        Turn(
            role="tool",
            content="",
            tool_name="checkAvailability",
            tool_call_id="call_1",
            tool_result={"slots": ["14:00", "15:00"]},
        ),
    ]


class TestSerializeToolResult:
    """String results pass through, everything else is JSON."""

    def test_string_passes_through(self):
        assert serialize_tool_result('{"already": "json"}') == '{"already": "json"}'
        assert serialize_tool_result("Booked!") == "Booked!"

    def test_dict_is_serialized(self):
        assert json.loads(serialize_tool_result({"ok": True})) == {"ok": True}

    def test_list_and_numbers_are_serialized(self):
        assert serialize_tool_result([1, 2]) == "[1, 2]"
        assert serialize_tool_result(3) == "3"


class TestOpenAIMessages:
    """Tests for chat-completions history translation."""

    def test_system_prompt_is_inline_first(self, history):
        messages = to_openai_messages(history, "You are the receptionist.")

        assert messages[0] == {"role": "system", "content": "You are the receptionist."}

    def test_empty_system_prompt_is_omitted(self, history):
        messages = to_openai_messages(history, "")

        assert [m["role"] for m in messages] == ["user", "assistant", "tool"]

    def test_system_turns_are_dropped(self, history):
        messages = to_openai_messages(history, "prompt")

        assert [m["role"] for m in messages] == ["system", "user", "assistant", "tool"]
        assert all(m.get("content") != "stored system note" for m in messages)

    def test_tool_turn_carries_call_id_and_serialized_result(self, history):
        tool_message = to_openai_messages(history, "prompt")[-1]

        assert tool_message["tool_call_id"] == "call_1"
        assert json.loads(tool_message["content"]) == {"slots": ["14:00", "15:00"]}

    def test_tool_turn_without_id_uses_unknown(self):
        messages = to_openai_messages([Turn(role="tool", content="done")], "prompt")

        assert messages[-1] == {"role": "tool", "tool_call_id": "unknown", "content": "done"}

    def test_pending_tool_calls_precede_tool_messages(self):
        history = [
            Turn(role="user", content="book me tomorrow at 2pm"),
            Turn(role="tool", tool_name="bookAppointment", tool_call_id="x", tool_result="Booked"),
        ]
        calls = [ToolCall(id="x", name="bookAppointment", args={"time": "14:00"})]

        messages = to_openai_messages(history, "prompt", pending_tool_calls=calls)

        assert [m["role"] for m in messages] == ["system", "user", "assistant", "tool"]
        assistant = messages[2]
        assert assistant["tool_calls"][0]["id"] == "x"
        assert assistant["tool_calls"][0]["function"]["name"] == "bookAppointment"
        assert json.loads(assistant["tool_calls"][0]["function"]["arguments"]) == {"time": "14:00"}

    def test_history_is_not_modified(self, history):
        before = list(history)
        to_openai_messages(history, "prompt")

        assert history == before


class TestGeminiContents:
    """Tests for Gemini history translation."""

    def test_system_prompt_is_not_in_contents(self, history):
        contents = to_gemini_contents(history)

        assert [c.role for c in contents] == ["user", "model", "user"]
        assert all(
            part.text != "stored system note" for c in contents for part in c.parts
        )

    def test_assistant_maps_to_model(self, history):
        contents = to_gemini_contents(history)

        assert contents[1].role == "model"
        assert contents[1].parts[0].text == "We are open 10 to 4 on Sunday."

    def test_tool_turn_becomes_function_response(self, history):
        part = to_gemini_contents(history)[-1].parts[0]

        assert part.function_response.name == "checkAvailability"
        assert part.function_response.response == {"result": {"slots": ["14:00", "15:00"]}}

    def test_tool_turn_without_name_uses_unknown(self):
        part = to_gemini_contents([Turn(role="tool", content="done")])[0].parts[0]

        assert part.function_response.name == "unknown"
        assert part.function_response.response == {"result": "done"}

    def test_pending_tool_calls_render_model_function_call(self):
        history = [
            Turn(role="user", content="book me"),
            Turn(role="tool", tool_name="bookAppointment", tool_call_id="x", tool_result="ok"),
        ]
        calls = [ToolCall(id="x", name="bookAppointment", args={"time": "14:00"})]

        contents = to_gemini_contents(history, pending_tool_calls=calls)

        assert [c.role for c in contents] == ["user", "model", "user"]
        assert contents[1].parts[0].function_call.name == "bookAppointment"
        assert contents[1].parts[0].function_call.args == {"time": "14:00"}

    def test_function_responses_from_results(self):
        parts = to_gemini_function_responses(
            [ToolResult(id="x", name="bookAppointment", result={"ok": True})]
        )

        assert parts[0].function_response.name == "bookAppointment"
        assert parts[0].function_response.response == {"result": {"ok": True}}


class TestAppendToolResults:
    """Tool results become new tool turns without touching the original."""

    def test_appends_tool_turns(self):
        history = [Turn(role="user", content="book me")]
        results = [
            ToolResult(id="a", name="bookAppointment", result={"ok": True}),
            ToolResult(id="b", name="sendSms", result="sent"),
        ]

        updated = append_tool_results(history, results)

        assert len(history) == 1
        assert [t.role for t in updated] == ["user", "tool", "tool"]
        assert updated[1].tool_call_id == "a"
        assert updated[1].tool_name == "bookAppointment"
        assert json.loads(updated[1].content) == {"ok": True}
        assert updated[2].content == "sent"

    def test_turns_are_immutable(self):
        turn = Turn(role="user", content="hi")

        with pytest.raises(Exception):
            turn.content = "changed"
