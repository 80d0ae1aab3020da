"""
Turn Runner

Drives one full conversational turn: dispatch, execute any proposed tool
calls through the caller's executor, then reconcile the results with the
provider that proposed them. The dispatcher never executes tools itself;
the executor is supplied by the caller.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Protocol

from callrelay.dispatcher.orchestrator import FallbackOrchestrator
from callrelay.schemas.conversation import DispatchRequest, ToolCall, ToolResult

logger = logging.getLogger(__name__)


class ToolExecutor(Protocol):
    """Executes one named tool and returns a JSON-serializable result."""

    def __call__(self, name: str, args: dict[str, Any], context: Any) -> Awaitable[Any]: ...


@dataclass
class ExecutedToolCall:
    """A tool call together with the result it produced."""

    call: ToolCall
    result: Any


@dataclass
class TurnOutcome:
    """
    Final outcome of a conversational turn.

    Attributes:
        text: Natural-language reply to speak or display
        provider: Provider that produced the final reply
        tool_calls: Tools executed during the turn, in proposal order
    """

    text: str
    provider: str
    tool_calls: list[ExecutedToolCall] = field(default_factory=list)


async def run_turn(
    orchestrator: FallbackOrchestrator,
    request: DispatchRequest,
    tool_executor: ToolExecutor,
    context: Any = None,
) -> TurnOutcome:
    """
    Run one conversational turn end to end.

    Tool calls are executed sequentially in the order the provider
    proposed them. An executor failure becomes an {"error": ...} result
    for that tool so the model can still produce a reply.

    Args:
        orchestrator: Orchestrator used for dispatch and reconciliation
        request: Canonical dispatch request for this turn
        tool_executor: Caller-supplied tool execution collaborator
        context: Opaque value passed through to the executor

    Returns:
        TurnOutcome with the final text

    Raises:
        AllProvidersFailedError: If dispatch or reconciliation is exhausted
    """
    response = await orchestrator.dispatch(request)
    logger.info(f"Response from {response.provider}")

    if not response.has_tool_calls:
        return TurnOutcome(text=response.text, provider=response.provider)

    logger.info(f"Executing {len(response.tool_calls)} tool calls")
    executed: list[ExecutedToolCall] = []
    for call in response.tool_calls:
        logger.info(f"Executing tool: {call.name}")
        try:
            result = await tool_executor(call.name, call.args, context)
        except Exception as e:
            logger.exception(f"Tool {call.name} failed")
            result = {"error": str(e)}
        executed.append(ExecutedToolCall(call=call, result=result))

    final = await orchestrator.reconcile(
        response.provider,
        request,
        [ToolResult(id=e.call.id, name=e.call.name, result=e.result) for e in executed],
        tool_calls=response.tool_calls,
    )

    return TurnOutcome(text=final.text, provider=final.provider, tool_calls=executed)
