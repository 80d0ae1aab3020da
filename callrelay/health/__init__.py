"""
Health module: per-provider availability tracking.

Public API:
- ProviderStatus: Enum of provider availability states
- HealthRecord: Immutable snapshot of one provider's state
- ProviderHealthTracker: Thread-safe tracker with lazy cooldown expiry
- get_health_tracker(): Process-wide tracker accessor
- reset_health_tracker(): Drop the process-wide tracker
"""

from callrelay.health.tracker import (
    HealthRecord,
    ProviderHealthTracker,
    ProviderStatus,
    get_health_tracker,
    reset_health_tracker,
)

__all__ = [
    "ProviderStatus",
    "HealthRecord",
    "ProviderHealthTracker",
    "get_health_tracker",
    "reset_health_tracker",
]
