"""
Fallback Orchestrator - Top-level entry point for conversational dispatch.

The orchestrator walks an ordered provider list, skips providers on
cooldown, invokes the first available one, and returns the first success.
Failures never escape a single attempt: they are classified as rate
limiting or errors and recorded in the health tracker. Only the
all-providers-exhausted case is raised to the caller.

Attempts are sequential. Provider order is a quality/cost preference, so
providers are never raced and an attempt is never cancelled here; timeouts
and turn-level retries belong to the calling layer.
"""

import logging

from callrelay.errors import AllProvidersFailedError, ProviderAttempt
from callrelay.health.tracker import (
    ProviderHealthTracker,
    ProviderStatus,
    get_health_tracker,
)
from callrelay.dispatcher.handlers import BackendInvoker, build_invokers
from callrelay.registry.providers import ProviderRegistry, get_provider_registry
from callrelay.schemas.conversation import (
    DispatchRequest,
    DispatchResult,
    ToolCall,
    ToolResult,
)

logger = logging.getLogger(__name__)

RATE_LIMIT_MARKERS = (
    "429",
    "rate limit",
    "rate_limit",
    "ratelimit",
    "rate-limit",
    "too many requests",
    "quota",
    "resource_exhausted",
    "resource exhausted",
)


def classify_failure(error: BaseException) -> ProviderStatus:
    """
    Classify a provider failure.

    HTTP 429 status codes and rate-limit/quota vocabulary in the error
    message map to RATE_LIMITED; everything else is ERROR.

    Args:
        error: Exception raised by a backend invoker

    Returns:
        ProviderStatus.RATE_LIMITED or ProviderStatus.ERROR
    """
    # openai/groq expose status_code, google-genai exposes code
    for attr in ("status_code", "code"):
        if getattr(error, attr, None) == 429:
            return ProviderStatus.RATE_LIMITED

    message = f"{type(error).__name__}: {error}".lower()
    if any(marker in message for marker in RATE_LIMIT_MARKERS):
        return ProviderStatus.RATE_LIMITED
    return ProviderStatus.ERROR


class FallbackOrchestrator:
    """
    Dispatches conversational turns across providers with failover.

    The health tracker is injected so tests and embedding applications
    control its lifetime; by default the process-wide tracker is used.

    Usage:
        orchestrator = FallbackOrchestrator()
        result = await orchestrator.dispatch(request)
        if result.has_tool_calls:
            results = [...]  # execute tools
            result = await orchestrator.reconcile(result.provider, request, results)
    """

    def __init__(
        self,
        tracker: ProviderHealthTracker | None = None,
        registry: ProviderRegistry | None = None,
        invokers: dict[str, BackendInvoker] | None = None,
    ) -> None:
        self.registry = registry or get_provider_registry()
        self.tracker = tracker or get_health_tracker()
        self.invokers = invokers if invokers is not None else build_invokers(self.registry)

    def _record_failure(self, provider: str, error: BaseException) -> ProviderAttempt:
        status = classify_failure(error)
        if status is ProviderStatus.RATE_LIMITED:
            self.tracker.mark_rate_limited(provider)
        else:
            self.tracker.mark_error(provider)
        return ProviderAttempt(provider=provider, outcome=status.value, error=str(error))

    async def dispatch(self, request: DispatchRequest) -> DispatchResult:
        """
        Obtain a response for one conversational turn.

        Args:
            request: Canonical dispatch request

        Returns:
            DispatchResult from the first provider that succeeded

        Raises:
            AllProvidersFailedError: If every provider was skipped or failed
        """
        attempts: list[ProviderAttempt] = []

        for provider in self.registry.default_order():
            if not self.tracker.is_available(provider):
                logger.info(f"Skipping {provider} (not available)")
                attempts.append(ProviderAttempt(provider=provider, outcome="skipped"))
                continue

            logger.info(f"Trying {provider}...")
            try:
                result = await self.invokers[provider].complete(request)
            except Exception as e:
                logger.warning(f"{provider} failed: {e}")
                attempts.append(self._record_failure(provider, e))
                continue

            logger.info(f"{provider} succeeded")
            return result

        logger.error("All LLM providers failed")
        raise AllProvidersFailedError(attempts, phase="dispatch")

    async def reconcile(
        self,
        original_provider: str,
        request: DispatchRequest,
        tool_results: list[ToolResult],
        tool_calls: list[ToolCall] | None = None,
    ) -> DispatchResult:
        """
        Send tool results back and obtain the final reply for the turn.

        The provider that proposed the tool calls is tried first, then the
        others per registry.reconciliation_order() (primary last), subject
        to the same health checks.

        Args:
            original_provider: Provider that proposed the tool calls
            request: The dispatch request of this turn (unchanged)
            tool_results: Results of executing every proposed tool call
            tool_calls: The proposed calls. When omitted they are rebuilt
                        from the results (id and name, empty arguments).

        Returns:
            Text-only DispatchResult

        Raises:
            AllProvidersFailedError: If every provider was skipped or failed
        """
        if tool_calls is None:
            tool_calls = [ToolCall(id=tr.id, name=tr.name) for tr in tool_results]

        attempts: list[ProviderAttempt] = []

        for provider in self.registry.reconciliation_order(original_provider):
            if not self.tracker.is_available(provider):
                logger.info(f"Skipping {provider} for tool results (not available)")
                attempts.append(ProviderAttempt(provider=provider, outcome="skipped"))
                continue

            logger.info(f"Sending {len(tool_results)} tool results to {provider}...")
            try:
                result = await self.invokers[provider].continue_with_tool_results(
                    request, tool_calls, tool_results
                )
            except Exception as e:
                logger.warning(f"{provider} tool result failed: {e}")
                attempts.append(self._record_failure(provider, e))
                continue

            return result

        logger.error("All providers failed for tool results")
        raise AllProvidersFailedError(attempts, phase="reconcile")

    def get_provider_status(self) -> dict[str, dict]:
        """
        Report provider availability for health checks.

        Lazy cooldown expiry is applied, so a provider whose cooldown has
        passed is reported as available.

        Returns:
            Per provider: status, configured model (None without API key)
            and seconds of cooldown remaining
        """
        status: dict[str, dict] = {}
        for metadata in self.registry.list_providers():
            name = metadata.name.value
            available = self.tracker.is_available(name)
            status[name] = {
                "status": (
                    ProviderStatus.AVAILABLE.value
                    if available
                    else self.tracker.get_record(name).status.value
                ),
                "model": metadata.api_model_name if metadata.configured else None,
                "cooldown_remaining_seconds": (
                    None if available else self.tracker.cooldown_remaining(name)
                ),
            }
        return status


_orchestrator: FallbackOrchestrator | None = None


def get_orchestrator() -> FallbackOrchestrator:
    """
    Get the global orchestrator instance.

    Returns:
        Singleton FallbackOrchestrator wired to the process-wide tracker
    """
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = FallbackOrchestrator()
    return _orchestrator


def reset_orchestrator() -> None:
    """Drop the global orchestrator so the next access builds a fresh one."""
    global _orchestrator
    _orchestrator = None
