"""
Provider Health Tracker

Per-provider circuit breaker consulted before every dispatch attempt:
- available: provider may be called
- rate_limited: quota/429 signal seen, long cooldown (5 minutes by default)
- error: any other failure, short cooldown (1 minute by default)

Expiry is lazy: the first is_available() call after the cooldown has passed
resets the record to available. There is no background timer.

The tracker is the only shared mutable state in the dispatcher. Each record
has its own threading.Lock so status and cooldown are always read and
written together, from asyncio tasks or threads alike.
"""

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable

from callrelay.config import get_settings

logger = logging.getLogger(__name__)


class ProviderStatus(str, Enum):
    """Availability state of a provider."""

    AVAILABLE = "available"
    RATE_LIMITED = "rate_limited"
    ERROR = "error"


@dataclass(frozen=True)
class HealthRecord:
    """
    Snapshot of one provider's health.

    Attributes:
        status: Current status
        cooldown_until: Clock reading after which the provider is retried,
                        None while available
    """

    status: ProviderStatus = ProviderStatus.AVAILABLE
    cooldown_until: float | None = None


class _GuardedRecord:
    """Mutable record plus the lock that protects it."""

    __slots__ = ("lock", "record")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.record = HealthRecord()


class ProviderHealthTracker:
    """
    Thread-safe availability tracker for a fixed set of providers.

    Records are created as available when the tracker is constructed.
    Unknown providers are never available.

    Example:
        tracker = ProviderHealthTracker(["gemini", "openai", "groq"])
        tracker.mark_rate_limited("gemini")
        tracker.is_available("gemini")  # False for the next 5 minutes
    """

    def __init__(
        self,
        providers: Iterable[str],
        rate_limit_cooldown_seconds: float | None = None,
        error_cooldown_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the tracker.

        Args:
            providers: Provider names to track.
            rate_limit_cooldown_seconds: Cooldown after rate limiting.
                                         Defaults to the configured value.
            error_cooldown_seconds: Cooldown after other failures.
                                    Defaults to the configured value.
            clock: Monotonic clock in seconds. Injectable for tests.
        """
        settings = get_settings()
        self._rate_limit_cooldown = (
            rate_limit_cooldown_seconds
            if rate_limit_cooldown_seconds is not None
            else settings.rate_limit_cooldown_seconds
        )
        self._error_cooldown = (
            error_cooldown_seconds
            if error_cooldown_seconds is not None
            else settings.error_cooldown_seconds
        )
        self._clock = clock
        self._records: dict[str, _GuardedRecord] = {
            name: _GuardedRecord() for name in providers
        }

    @property
    def providers(self) -> list[str]:
        """Tracked provider names in registration order."""
        return list(self._records)

    def is_available(self, provider: str) -> bool:
        """
        Check whether a provider may be attempted.

        Resets an expired cooldown to available as a side effect.

        Args:
            provider: Provider name

        Returns:
            True if the provider is available or its cooldown has elapsed
        """
        guarded = self._records.get(provider)
        if guarded is None:
            return False

        with guarded.lock:
            record = guarded.record
            if record.status is ProviderStatus.AVAILABLE:
                return True
            if record.cooldown_until is not None and self._clock() > record.cooldown_until:
                guarded.record = HealthRecord()
                logger.info(f"{provider} cooldown expired, marking available")
                return True
            return False

    def mark_rate_limited(self, provider: str) -> None:
        """Put a provider on the long rate-limit cooldown."""
        self._set(provider, ProviderStatus.RATE_LIMITED, self._rate_limit_cooldown)
        logger.warning(
            f"{provider} rate limited, cooling down for {self._rate_limit_cooldown:.0f}s"
        )

    def mark_error(self, provider: str) -> None:
        """Put a provider on the short error cooldown."""
        self._set(provider, ProviderStatus.ERROR, self._error_cooldown)
        logger.warning(f"{provider} error, cooling down for {self._error_cooldown:.0f}s")

    def mark_available(self, provider: str) -> None:
        """Clear any cooldown for a provider."""
        guarded = self._guarded(provider)
        with guarded.lock:
            guarded.record = HealthRecord()

    def get_record(self, provider: str) -> HealthRecord:
        """
        Return the current record for a provider.

        Unlike is_available(), this does not apply lazy expiry.

        Raises:
            KeyError: If the provider is not tracked
        """
        guarded = self._guarded(provider)
        with guarded.lock:
            return guarded.record

    def cooldown_remaining(self, provider: str) -> float | None:
        """Seconds until a cooling-down provider is retried, None if available."""
        record = self.get_record(provider)
        if record.cooldown_until is None:
            return None
        return max(0.0, record.cooldown_until - self._clock())

    def snapshot(self) -> dict[str, HealthRecord]:
        """Return a copy of every record, taken one lock at a time."""
        return {name: self.get_record(name) for name in self._records}

    def reset(self) -> None:
        """
        Mark every provider available.

        Primarily used for testing.
        """
        for name in self._records:
            self.mark_available(name)

    def _set(self, provider: str, status: ProviderStatus, cooldown: float) -> None:
        guarded = self._guarded(provider)
        with guarded.lock:
            guarded.record = HealthRecord(
                status=status, cooldown_until=self._clock() + cooldown
            )

    def _guarded(self, provider: str) -> _GuardedRecord:
        try:
            return self._records[provider]
        except KeyError:
            raise KeyError(f"Unknown provider: {provider}") from None


_tracker: ProviderHealthTracker | None = None


def get_health_tracker() -> ProviderHealthTracker:
    """
    Get the process-wide health tracker.

    Tracks the providers named in the configured provider order.

    Returns:
        Singleton ProviderHealthTracker instance
    """
    global _tracker
    if _tracker is None:
        _tracker = ProviderHealthTracker(get_settings().provider_order)
    return _tracker


def reset_health_tracker() -> None:
    """Drop the process-wide tracker so the next access builds a fresh one."""
    global _tracker
    _tracker = None
