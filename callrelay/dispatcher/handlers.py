"""
Dispatcher Handlers - Provider-specific inference execution.

This module performs the actual API calls to the conversational backends
(Gemini, OpenAI, Groq) and normalizes every reply into a DispatchResult.

Key components:
- ProviderClients: Lazy-initialized async SDK clients
- BackendInvoker: Common interface, one strategy per provider family
- ChatCompletionsInvoker: OpenAI and Groq (shared chat-completions wire format)
- GeminiInvoker: Google Gen AI chat sessions
- build_invokers(): Invoker per registered provider

Each invoker implements two primitives:
- complete(): answer a fresh turn, possibly with proposed tool calls
- continue_with_tool_results(): finish the turn after tools ran

The continuation mechanisms differ: chat-completions providers replay the
full history with tool messages appended, while Gemini opens a session on
the history and sends only the function-response parts. Callers never see
the difference.

Invokers raise on any failure. Classification into rate limiting or errors
is the orchestrator's job.
"""

import json
import logging
import time
from typing import Any

from google import genai
from google.genai import types
from groq import AsyncGroq
from openai import AsyncOpenAI

from callrelay.config import get_settings
from callrelay.errors import MalformedResponseError, ProviderNotConfiguredError
from callrelay.registry.providers import ProviderMetadata, ProviderName, ProviderRegistry
from callrelay.schemas.conversation import (
    DispatchRequest,
    DispatchResult,
    ToolCall,
    ToolResult,
    Turn,
)
from callrelay.translation.conversation import (
    append_tool_results,
    to_gemini_contents,
    to_gemini_function_calls,
    to_gemini_function_responses,
    to_openai_messages,
)
from callrelay.translation.schema import to_gemini_declarations, to_openai_tools

logger = logging.getLogger(__name__)


class ProviderClients:
    """
    Lazy-initialized provider SDK clients.

    Clients are created on first use to avoid initialization errors
    when API keys are not configured for unused providers. A provider
    without a key raises ProviderNotConfiguredError when accessed, which
    the orchestrator treats like any other provider failure.
    """

    def __init__(self) -> None:
        self._settings = get_settings()
        self._gemini: genai.Client | None = None
        self._openai: AsyncOpenAI | None = None
        self._groq: AsyncGroq | None = None

    def _api_key(self, provider: str) -> str:
        api_key = self._settings.api_key_for(provider)
        if api_key is None:
            raise ProviderNotConfiguredError(provider)
        return api_key

    @property
    def gemini(self) -> genai.Client:
        """
        Get the Google Gen AI client (lazy initialization).

        Raises:
            ProviderNotConfiguredError: If GEMINI_API_KEY is not configured.
        """
        if self._gemini is None:
            self._gemini = genai.Client(api_key=self._api_key("gemini"))
            logger.debug("Initialized Gemini client")
        return self._gemini

    @property
    def openai(self) -> AsyncOpenAI:
        """
        Get OpenAI client (lazy initialization).

        Raises:
            ProviderNotConfiguredError: If OPENAI_API_KEY is not configured.
        """
        if self._openai is None:
            self._openai = AsyncOpenAI(api_key=self._api_key("openai"))
            logger.debug("Initialized OpenAI client")
        return self._openai

    @property
    def groq(self) -> AsyncGroq:
        """
        Get Groq client (lazy initialization).

        Raises:
            ProviderNotConfiguredError: If GROQ_API_KEY is not configured.
        """
        if self._groq is None:
            self._groq = AsyncGroq(api_key=self._api_key("groq"))
            logger.debug("Initialized Groq client")
        return self._groq


# Global client instance (singleton pattern)
_clients: ProviderClients | None = None


def get_clients() -> ProviderClients:
    """
    Get the global provider clients instance.

    Returns:
        The singleton ProviderClients instance.
    """
    global _clients
    if _clients is None:
        _clients = ProviderClients()
    return _clients


def _continuation_history(request: DispatchRequest, tool_results: list[ToolResult]) -> list[Turn]:
    """History as it stands once the tools have run: prior turns, the user
    message that triggered the tool calls, then one tool turn per result."""
    history = list(request.conversation_history)
    if request.user_message:
        history.append(Turn(role="user", content=request.user_message))
    return append_tool_results(history, tool_results)


class BackendInvoker:
    """
    Base class for provider strategies.

    Subclasses implement complete() and continue_with_tool_results() and
    must return canonical DispatchResults only.
    """

    def __init__(self, metadata: ProviderMetadata) -> None:
        self.metadata = metadata

    @property
    def name(self) -> str:
        """Provider name reported in DispatchResult.provider."""
        return self.metadata.name.value

    async def complete(self, request: DispatchRequest) -> DispatchResult:
        """Answer a fresh turn."""
        raise NotImplementedError

    async def continue_with_tool_results(
        self,
        request: DispatchRequest,
        tool_calls: list[ToolCall],
        tool_results: list[ToolResult],
    ) -> DispatchResult:
        """Finish a turn after the proposed tool calls were executed."""
        raise NotImplementedError


# =============================================================================
# CHAT COMPLETIONS (OPENAI, GROQ)
# =============================================================================


def _parse_tool_arguments(provider: str, raw: str | None) -> dict[str, Any]:
    try:
        args = json.loads(raw or "{}")
    except json.JSONDecodeError as e:
        raise MalformedResponseError(provider, f"tool arguments are not valid JSON: {e}") from e
    if not isinstance(args, dict):
        raise MalformedResponseError(provider, "tool arguments are not a JSON object")
    return args


def _normalize_chat_completion(provider: str, response: Any) -> DispatchResult:
    """
    Normalize a chat-completions reply into a DispatchResult.

    If the model returns both prose and tool calls, the tool calls win and
    the prose is dropped: the model is re-invoked after tool execution.
    """
    if not getattr(response, "choices", None):
        raise MalformedResponseError(provider, "no choices in response")

    message = response.choices[0].message
    raw_tool_calls = getattr(message, "tool_calls", None) or []

    if raw_tool_calls:
        if message.content:
            logger.debug(f"{provider} returned text alongside tool calls, discarding text")
        return DispatchResult(
            text="",
            provider=provider,
            tool_calls=[
                ToolCall(
                    id=tc.id,
                    name=tc.function.name,
                    args=_parse_tool_arguments(provider, tc.function.arguments),
                )
                for tc in raw_tool_calls
            ],
        )

    return DispatchResult(text=message.content or "", provider=provider)


class ChatCompletionsInvoker(BackendInvoker):
    """
    Invoker for providers speaking the chat-completions wire format.

    OpenAI and Groq share message, tool and reply shapes; they differ only
    in SDK client and model name.
    """

    def _client(self) -> Any:
        clients = get_clients()
        if self.metadata.name is ProviderName.GROQ:
            return clients.groq
        return clients.openai

    async def _create(self, messages: list[dict], tools: list[dict] | None) -> Any:
        kwargs: dict[str, Any] = {
            "model": self.metadata.api_model_name,
            "messages": messages,
            "temperature": self.metadata.temperature,
            "max_tokens": self.metadata.max_output_tokens,
        }
        if tools:
            kwargs["tools"] = tools
        return await self._client().chat.completions.create(**kwargs)

    async def complete(self, request: DispatchRequest) -> DispatchResult:
        """
        Answer a fresh turn via chat completions.

        Args:
            request: Canonical dispatch request

        Returns:
            DispatchResult with text or proposed tool calls
        """
        start_time = time.perf_counter()

        messages = to_openai_messages(request.conversation_history, request.system_prompt)
        messages.append({"role": "user", "content": request.user_message})

        response = await self._create(messages, to_openai_tools(request.tools))
        result = _normalize_chat_completion(self.name, response)

        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"{self.name} completion: model={self.metadata.api_model_name}, "
            f"latency={latency_ms:.0f}ms, tool_calls={len(result.tool_calls)}"
        )
        return result

    async def continue_with_tool_results(
        self,
        request: DispatchRequest,
        tool_calls: list[ToolCall],
        tool_results: list[ToolResult],
    ) -> DispatchResult:
        """
        Replay the full history with tool messages appended.

        No tools are offered on this call; the model is expected to finish
        the turn in prose. A reply proposing more tool calls raises
        MalformedResponseError so the next provider is tried.
        """
        start_time = time.perf_counter()

        history = _continuation_history(request, tool_results)
        messages = to_openai_messages(history, request.system_prompt, pending_tool_calls=tool_calls)

        response = await self._create(messages, tools=None)
        result = _normalize_chat_completion(self.name, response)
        if result.has_tool_calls:
            raise MalformedResponseError(self.name, "proposed tool calls after tool results")

        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"{self.name} tool-result completion: model={self.metadata.api_model_name}, "
            f"latency={latency_ms:.0f}ms"
        )
        return result


# =============================================================================
# GEMINI
# =============================================================================


def _normalize_gemini_response(provider: str, response: Any) -> DispatchResult:
    """
    Normalize a Gemini reply; function calls take precedence over text.

    A reply with neither function calls nor text (no candidates, e.g. a
    blocked prompt) raises MalformedResponseError so the turn fails over.
    """
    function_calls = getattr(response, "function_calls", None) or []

    if function_calls:
        stamp = int(time.time() * 1000)
        return DispatchResult(
            text="",
            provider=provider,
            tool_calls=[
                ToolCall(
                    id=fc.id or f"gemini_{stamp}_{i}",
                    name=fc.name,
                    args=dict(fc.args or {}),
                )
                for i, fc in enumerate(function_calls)
            ],
        )

    text = getattr(response, "text", None)
    if text is None:
        feedback = getattr(response, "prompt_feedback", None)
        block_reason = getattr(feedback, "block_reason", None)
        reason = f"blocked: {block_reason}" if block_reason else "no candidates or content"
        raise MalformedResponseError(provider, reason)

    return DispatchResult(text=text, provider=provider)


class GeminiInvoker(BackendInvoker):
    """
    Invoker for Google Gemini via the google-genai SDK.

    The system prompt goes into system_instruction and the tool catalog
    into a single Tool holding every function declaration.
    """

    def _config(self, request: DispatchRequest) -> types.GenerateContentConfig:
        declarations = [
            types.FunctionDeclaration.model_validate(declaration)
            for declaration in to_gemini_declarations(request.tools)
        ]
        return types.GenerateContentConfig(
            system_instruction=request.system_prompt or None,
            temperature=self.metadata.temperature,
            max_output_tokens=self.metadata.max_output_tokens,
            tools=[types.Tool(function_declarations=declarations)] if declarations else None,
        )

    def _start_chat(self, request: DispatchRequest, history: list[types.Content]) -> Any:
        return get_clients().gemini.aio.chats.create(
            model=self.metadata.api_model_name,
            config=self._config(request),
            history=history,
        )

    async def complete(self, request: DispatchRequest) -> DispatchResult:
        """
        Answer a fresh turn in a new Gemini chat session.

        Args:
            request: Canonical dispatch request

        Returns:
            DispatchResult with text or proposed tool calls
        """
        start_time = time.perf_counter()

        chat = self._start_chat(request, to_gemini_contents(request.conversation_history))
        response = await chat.send_message(request.user_message)
        result = _normalize_gemini_response(self.name, response)

        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"{self.name} completion: model={self.metadata.api_model_name}, "
            f"latency={latency_ms:.0f}ms, tool_calls={len(result.tool_calls)}"
        )
        return result

    async def continue_with_tool_results(
        self,
        request: DispatchRequest,
        tool_calls: list[ToolCall],
        tool_results: list[ToolResult],
    ) -> DispatchResult:
        """
        Send only the function responses into a session rebuilt from history.

        The session history ends with the user message and the model's
        function_call turn, so the function responses answer it directly.
        A reply proposing more tool calls raises MalformedResponseError.
        """
        start_time = time.perf_counter()

        history = to_gemini_contents(request.conversation_history)
        if request.user_message:
            history.append(
                types.Content(role="user", parts=[types.Part(text=request.user_message)])
            )
        if tool_calls:
            history.append(to_gemini_function_calls(tool_calls))

        chat = self._start_chat(request, history)
        response = await chat.send_message(to_gemini_function_responses(tool_results))
        result = _normalize_gemini_response(self.name, response)
        if result.has_tool_calls:
            raise MalformedResponseError(self.name, "proposed tool calls after tool results")

        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"{self.name} tool-result completion: model={self.metadata.api_model_name}, "
            f"latency={latency_ms:.0f}ms"
        )
        return result


def build_invoker(metadata: ProviderMetadata) -> BackendInvoker:
    """Create the invoker strategy for one provider."""
    match metadata.name:
        case ProviderName.GEMINI:
            return GeminiInvoker(metadata)
        case ProviderName.OPENAI | ProviderName.GROQ:
            return ChatCompletionsInvoker(metadata)
        case _:
            raise ValueError(f"Unknown provider: {metadata.name}")


def build_invokers(registry: ProviderRegistry) -> dict[str, BackendInvoker]:
    """
    Create one invoker per registered provider.

    Args:
        registry: Provider registry

    Returns:
        Invokers keyed by provider name, in priority order
    """
    return {
        metadata.name.value: build_invoker(metadata) for metadata in registry.list_providers()
    }
