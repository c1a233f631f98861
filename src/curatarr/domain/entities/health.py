"""Provider health value objects."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class CircuitState(StrEnum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass(frozen=True)
class CircuitBreakerStatus:
    """Read-only view of one provider's breaker."""

    provider_id: str
    state: CircuitState = CircuitState.CLOSED
    consecutive_failures: int = 0
    total_calls: int = 0
    success_rate: float | None = None
    average_latency_ms: float | None = None
    opened_at: float | None = None
    half_open_trial_in_flight: bool = False
