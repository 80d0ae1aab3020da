"""
Dispatcher module: multi-provider conversational dispatch with failover.

This module provides a unified interface for obtaining a reply for one
conversational turn from Gemini, OpenAI or Groq. It handles provider
failover, provider-specific API calls, reply normalization and sending
tool results back to finish a turn.

Key exports:
- FallbackOrchestrator: dispatch() and reconcile() across providers
- get_orchestrator(): Get the global orchestrator instance
- classify_failure(): Rate limiting vs error classification
- ProviderClients / get_clients(): Lazy-initialized async SDK clients
- BackendInvoker, ChatCompletionsInvoker, GeminiInvoker: provider strategies
- run_turn(): Full turn including tool execution via a caller executor
"""

from callrelay.dispatcher.handlers import (
    # Provider clients
    ProviderClients,
    get_clients,
    # Provider strategies
    BackendInvoker,
    ChatCompletionsInvoker,
    GeminiInvoker,
    build_invoker,
    build_invokers,
)

from callrelay.dispatcher.orchestrator import (
    FallbackOrchestrator,
    classify_failure,
    get_orchestrator,
    reset_orchestrator,
)

from callrelay.dispatcher.turn import (
    ExecutedToolCall,
    ToolExecutor,
    TurnOutcome,
    run_turn,
)

__all__ = [
    # Provider clients
    "ProviderClients",
    "get_clients",
    # Provider strategies
    "BackendInvoker",
    "ChatCompletionsInvoker",
    "GeminiInvoker",
    "build_invoker",
    "build_invokers",
    # Orchestration
    "FallbackOrchestrator",
    "classify_failure",
    "get_orchestrator",
    "reset_orchestrator",
    # Turn runner
    "ExecutedToolCall",
    "ToolExecutor",
    "TurnOutcome",
    "run_turn",
]
