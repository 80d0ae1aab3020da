"""
Pytest configuration and shared fixtures.

Provides fake provider replies, mocked SDK clients, a controllable clock
and stub invokers for the CallRelay test suite.

IMPORTANT: Environment variables must be set BEFORE importing callrelay
modules that use pydantic-settings, as Settings reads them on first use.
"""

import os

# Set test environment variables before importing callrelay modules
os.environ["GEMINI_API_KEY"] = "test-key-not-real"
os.environ["OPENAI_API_KEY"] = "test-key-not-real"
os.environ["GROQ_API_KEY"] = "test-key-not-real"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["DEBUG"] = "false"

# Now safe to import everything else
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "asyncio: mark test as async")


@pytest.fixture(autouse=True)
def reset_singletons():
    """
    Reset all singleton instances between tests.

    This ensures each test starts with a clean state.
    """
    yield

    from callrelay.health import tracker

    tracker.reset_health_tracker()

    from callrelay.registry import providers

    providers._registry_instance = None

    from callrelay.dispatcher import handlers, orchestrator

    handlers._clients = None
    orchestrator.reset_orchestrator()


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubInvoker:
    """
    Backend invoker double.

    Each outcome is either a DispatchResult to return or an exception to
    raise; the last outcome repeats. Calls are recorded per primitive.
    """

    def __init__(self, name: str, *outcomes):
        self.name = name
        self.outcomes = list(outcomes)
        self.complete_calls: list = []
        self.continue_calls: list = []

    def _next(self):
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def complete(self, request):
        self.complete_calls.append(request)
        return self._next()

    async def continue_with_tool_results(self, request, tool_calls, tool_results):
        self.continue_calls.append((request, tool_calls, tool_results))
        return self._next()

    @property
    def call_count(self) -> int:
        return len(self.complete_calls) + len(self.continue_calls)


@pytest.fixture
def clock():
    """A fresh FakeClock."""
    return FakeClock()


@pytest.fixture
def tracker(clock):
    """Health tracker for the default providers driven by the fake clock."""
    from callrelay.health.tracker import ProviderHealthTracker

    return ProviderHealthTracker(
        ["gemini", "openai", "groq"],
        rate_limit_cooldown_seconds=300.0,
        error_cooldown_seconds=60.0,
        clock=clock,
    )


@pytest.fixture
def registry():
    """Provider registry built from the test settings."""
    from callrelay.registry.providers import ProviderRegistry

    return ProviderRegistry()


@pytest.fixture
def text_result():
    """Factory for text DispatchResults."""

    def _create(provider: str, text: str = "Sure, how can I help?"):
        from callrelay.schemas.conversation import DispatchResult

        return DispatchResult(text=text, provider=provider)

    return _create


@pytest.fixture
def stub_orchestrator(tracker, registry):
    """
    Factory fixture for an orchestrator wired to stub invokers.

    Usage:
        orchestrator, invokers = stub_orchestrator(
            gemini=[RuntimeError("boom")], openai=[result]
        )
    """

    def _create(**outcomes):
        from callrelay.dispatcher.orchestrator import FallbackOrchestrator

        invokers = {
            name: StubInvoker(name, *outcomes.get(name, [RuntimeError(f"{name} down")]))
            for name in registry.default_order()
        }
        orchestrator = FallbackOrchestrator(
            tracker=tracker, registry=registry, invokers=invokers
        )
        return orchestrator, invokers

    return _create


@pytest.fixture
def book_appointment_tool():
    """The bookAppointment tool declaration."""
    from callrelay.schemas.conversation import ToolDeclaration

    return ToolDeclaration.model_validate(
        {
            "name": "bookAppointment",
            "description": "Book an appointment for the caller",
            "parameters": {
                "type": "object",
                "properties": {
                    "date": {"type": "string", "description": "Date, YYYY-MM-DD"},
                    "time": {"type": "string", "description": "Time, HH:MM"},
                },
                "required": ["time"],
            },
        }
    )


@pytest.fixture
def booking_request(book_appointment_tool):
    """Dispatch request for 'book me tomorrow at 2pm' with an empty history."""
    from callrelay.schemas.conversation import DispatchRequest

    return DispatchRequest(
        user_message="book me tomorrow at 2pm",
        conversation_history=[],
        system_prompt="You are the receptionist for Luna Salon.",
        tools=[book_appointment_tool],
    )


# =============================================================================
# FAKE SDK REPLIES
# =============================================================================


def make_chat_completion(content: str | None = None, tool_calls: list[dict] | None = None):
    """
    Build a chat-completions reply shaped like the OpenAI/Groq SDK objects.

    tool_calls entries: {"id": ..., "name": ..., "args": {...}} or with a
    raw "arguments" string.
    """
    raw_calls = None
    if tool_calls:
        raw_calls = [
            SimpleNamespace(
                id=call["id"],
                type="function",
                function=SimpleNamespace(
                    name=call["name"],
                    arguments=call.get("arguments", json.dumps(call.get("args", {}))),
                ),
            )
            for call in tool_calls
        ]
    message = SimpleNamespace(role="assistant", content=content, tool_calls=raw_calls)
    return SimpleNamespace(
        choices=[SimpleNamespace(index=0, message=message, finish_reason="stop")],
        usage=SimpleNamespace(prompt_tokens=100, completion_tokens=20),
    )


def make_gemini_response(text: str | None = None, function_calls: list[dict] | None = None):
    """Build a reply shaped like google-genai's GenerateContentResponse."""
    calls = None
    if function_calls:
        calls = [
            SimpleNamespace(id=call.get("id"), name=call["name"], args=call.get("args", {}))
            for call in function_calls
        ]
    return SimpleNamespace(text=text, function_calls=calls)


@pytest.fixture
def chat_completion():
    """Factory for fake chat-completions replies."""
    return make_chat_completion


@pytest.fixture
def gemini_response():
    """Factory for fake Gemini replies."""
    return make_gemini_response


def _chat_client(response):
    client = AsyncMock()
    client.chat = MagicMock()
    client.chat.completions = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=response)
    return client


@pytest.fixture
def mock_openai_client():
    """Fully mocked AsyncOpenAI client replying with text."""
    return _chat_client(make_chat_completion("OpenAI here, how can I help?"))


@pytest.fixture
def mock_groq_client():
    """Fully mocked AsyncGroq client replying with text."""
    return _chat_client(make_chat_completion("Groq here, how can I help?"))


@pytest.fixture
def mock_gemini_chat():
    """Mocked Gemini chat session replying with text."""
    chat = MagicMock()
    chat.send_message = AsyncMock(return_value=make_gemini_response("Gemini here, how can I help?"))
    return chat


@pytest.fixture
def mock_gemini_client(mock_gemini_chat):
    """Mocked google-genai Client whose aio.chats.create returns mock_gemini_chat."""
    client = MagicMock()
    client.aio.chats.create = MagicMock(return_value=mock_gemini_chat)
    return client


@pytest.fixture
def mock_provider_clients(mock_gemini_client, mock_openai_client, mock_groq_client):
    """
    Create a mocked ProviderClients instance.

    Provides Gemini, OpenAI and Groq clients as mocks.
    """
    mock_clients = MagicMock()
    mock_clients.gemini = mock_gemini_client
    mock_clients.openai = mock_openai_client
    mock_clients.groq = mock_groq_client
    return mock_clients
