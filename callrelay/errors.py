"""
Dispatcher exceptions.

Only AllProvidersFailedError is meant to reach callers. The other errors are
raised by backend invokers and are caught by the orchestrator, which turns
them into provider health updates.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ProviderAttempt:
    """
    Outcome of one provider during a dispatch or reconciliation pass.

    Attributes:
        provider: Provider name (e.g., "gemini")
        outcome: "skipped", "rate_limited" or "error"
        error: Error message for failed attempts, None for skipped ones
    """

    provider: str
    outcome: str
    error: str | None = None


class DispatchError(Exception):
    """Base class for dispatcher errors."""


class ProviderNotConfiguredError(DispatchError):
    """Raised when a provider is attempted without an API key."""

    def __init__(self, provider: str) -> None:
        self.provider = provider
        super().__init__(f"{provider} client not initialized - missing API key")


class MalformedResponseError(DispatchError):
    """Raised when a provider reply cannot be normalized."""

    def __init__(self, provider: str, reason: str) -> None:
        self.provider = provider
        self.reason = reason
        super().__init__(f"Malformed {provider} response: {reason}")


class AllProvidersFailedError(DispatchError):
    """
    Every provider was skipped or failed for this turn.

    This is fatal for the turn. The caller is expected to fall back to its
    own user-facing handling (apologize, take a message, escalate).
    """

    def __init__(self, attempts: list[ProviderAttempt], phase: str = "dispatch") -> None:
        self.attempts = list(attempts)
        self.phase = phase
        if phase == "reconcile":
            message = "All providers failed for tool results"
        else:
            message = "All LLM providers failed"
        if self.attempts:
            detail = ", ".join(f"{a.provider}={a.outcome}" for a in self.attempts)
            message = f"{message} ({detail})"
        super().__init__(message)

    @property
    def attempted_providers(self) -> list[str]:
        """Providers that were actually called (not skipped)."""
        return [a.provider for a in self.attempts if a.outcome != "skipped"]
