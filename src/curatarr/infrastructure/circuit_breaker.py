"""Per-provider circuit breaker to skip consistently failing indexers.

When a provider accumulates ``failure_threshold`` consecutive failures
(exceptions or timeouts), the breaker opens and calls are short-circuited
for ``cooldown_seconds``.  After the cooldown exactly one trial call is
let through (half-open).  If the trial succeeds the breaker closes and the
failure counter resets; if it fails the breaker re-opens with a fresh
cooldown. Overlapping callers go through ``acquire``/``complete`` so that only
the permit holding the trial can close or re-open a half-open breaker.

Each provider id has its own lock, so providers never contend with each
other and the breaker may be shared across worker threads.
"""

from __future__ import annotations

import itertools
import threading
import time
from dataclasses import dataclass, field
from typing import Callable

import structlog

from curatarr.domain.entities.health import CircuitBreakerStatus, CircuitState

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CallPermit:
    """Admission for one call. Only the permit holding the trial token may
    settle a half-open breaker."""

    provider_id: str
    trial_token: int | None = None

    @property
    def is_trial(self) -> bool:
        return self.trial_token is not None


@dataclass
class _ProviderCircuit:
    lock: threading.Lock = field(default_factory=threading.Lock)
    state: CircuitState = CircuitState.CLOSED
    consecutive_failures: int = 0
    opened_at: float | None = None
    trial_token: int | None = None
    calls: int = 0
    successes: int = 0
    latency_total_ms: float = 0.0
    latency_samples: int = 0

    def status(self, provider_id: str) -> CircuitBreakerStatus:
        return CircuitBreakerStatus(
            provider_id=provider_id,
            state=self.state,
            consecutive_failures=self.consecutive_failures,
            total_calls=self.calls,
            success_rate=(self.successes / self.calls) if self.calls else None,
            average_latency_ms=(
                round(self.latency_total_ms / self.latency_samples, 1)
                if self.latency_samples
                else None
            ),
            opened_at=self.opened_at,
            half_open_trial_in_flight=self.trial_token is not None,
        )


class ProviderCircuitBreaker:
    """Track per-provider failures and manage open/closed state."""

    def __init__(
        self,
        *,
        failure_threshold: int = 5,
        cooldown_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        if cooldown_seconds < 0:
            raise ValueError("cooldown_seconds must be >= 0")
        self._threshold = failure_threshold
        self._cooldown = cooldown_seconds
        self._clock = clock
        self._registry_lock = threading.Lock()
        self._circuits: dict[str, _ProviderCircuit] = {}
        self._tokens = itertools.count(1)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _circuit(self, provider_id: str) -> _ProviderCircuit:
        circuit = self._circuits.get(provider_id)
        if circuit is None:
            with self._registry_lock:
                circuit = self._circuits.setdefault(provider_id, _ProviderCircuit())
        return circuit

    def _close(self, circuit: _ProviderCircuit) -> None:
        circuit.state = CircuitState.CLOSED
        circuit.consecutive_failures = 0
        circuit.opened_at = None
        circuit.trial_token = None

    def _open(self, provider_id: str, circuit: _ProviderCircuit) -> None:
        circuit.state = CircuitState.OPEN
        circuit.opened_at = self._clock()
        circuit.trial_token = None
        log.warning(
            "circuit_opened",
            provider=provider_id,
            consecutive_failures=circuit.consecutive_failures,
            cooldown_seconds=self._cooldown,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def acquire(self, provider_id: str) -> CallPermit | None:
        """Admit a call, or return ``None`` when it must short-circuit.

        - **CLOSED**: always admitted.
        - **OPEN**: refused until the cooldown expires, then transitions
          to HALF_OPEN and admits this caller as the single trial.
        - **HALF_OPEN**: refused while the trial is in flight.
        """
        circuit = self._circuit(provider_id)
        with circuit.lock:
            if circuit.state is CircuitState.CLOSED:
                return CallPermit(provider_id)

            if circuit.state is CircuitState.OPEN:
                elapsed = self._clock() - (circuit.opened_at or 0.0)
                if elapsed < self._cooldown:
                    return None
                circuit.state = CircuitState.HALF_OPEN
                log.info("circuit_half_open", provider=provider_id)
            elif circuit.trial_token is not None:
                return None

            circuit.trial_token = next(self._tokens)
            return CallPermit(provider_id, circuit.trial_token)

    def complete(
        self, permit: CallPermit, success: bool, latency_ms: float | None = None
    ) -> None:
        """Record the result of a call admitted by ``acquire``."""
        circuit = self._circuit(permit.provider_id)
        with circuit.lock:
            is_trial = (
                permit.is_trial
                and circuit.state is CircuitState.HALF_OPEN
                and circuit.trial_token == permit.trial_token
            )
            self._record(permit.provider_id, circuit, success, latency_ms, is_trial)

    def abandon(self, permit: CallPermit) -> None:
        """Give back a trial slot whose call never completed.

        Permits that do not hold the current trial are ignored.
        """
        circuit = self._circuits.get(permit.provider_id)
        if circuit is None or not permit.is_trial:
            return
        with circuit.lock:
            if circuit.trial_token == permit.trial_token:
                circuit.trial_token = None

    def before_call(self, provider_id: str) -> bool:
        """Return ``True`` if *provider_id* may be called now."""
        return self.acquire(provider_id) is not None

    def on_result(
        self, provider_id: str, success: bool, latency_ms: float | None = None
    ) -> None:
        """Record a result without a permit.

        While HALF_OPEN the result is taken as the trial's. Callers that can
        run overlapping calls should use ``acquire``/``complete`` instead.
        """
        circuit = self._circuit(provider_id)
        with circuit.lock:
            is_trial = circuit.state is CircuitState.HALF_OPEN
            self._record(provider_id, circuit, success, latency_ms, is_trial)

    def _record(
        self,
        provider_id: str,
        circuit: _ProviderCircuit,
        success: bool,
        latency_ms: float | None,
        is_trial: bool,
    ) -> None:
        # caller holds circuit.lock
        circuit.calls += 1
        if latency_ms is not None:
            circuit.latency_total_ms += latency_ms
            circuit.latency_samples += 1
        if success:
            circuit.successes += 1

        if circuit.state is CircuitState.HALF_OPEN:
            if not is_trial:
                # late result from a call admitted before the breaker opened
                return
            if success:
                log.info("circuit_closed", provider=provider_id)
                self._close(circuit)
            else:
                circuit.consecutive_failures += 1
                self._open(provider_id, circuit)
            return

        if circuit.state is CircuitState.OPEN:
            if not success:
                circuit.consecutive_failures += 1
            return

        if success:
            circuit.consecutive_failures = 0
            return
        circuit.consecutive_failures += 1
        if circuit.consecutive_failures >= self._threshold:
            self._open(provider_id, circuit)

    def state(self, provider_id: str) -> CircuitState:
        circuit = self._circuits.get(provider_id)
        return circuit.state if circuit else CircuitState.CLOSED

    def get_status(self, provider_id: str) -> CircuitBreakerStatus:
        """Return the status of *provider_id* without changing it."""
        circuit = self._circuits.get(provider_id)
        if circuit is None:
            return CircuitBreakerStatus(provider_id=provider_id)
        with circuit.lock:
            return circuit.status(provider_id)

    def reset(self, provider_id: str) -> bool:
        """Force *provider_id* back to CLOSED. Returns False if unknown."""
        circuit = self._circuits.get(provider_id)
        if circuit is None:
            return False
        with circuit.lock:
            self._close(circuit)
        log.info("circuit_reset", provider=provider_id)
        return True

    def snapshot(self) -> dict[str, dict[str, object]]:
        """Return a diagnostic snapshot of all tracked providers."""
        with self._registry_lock:
            ids = sorted(self._circuits)
        result: dict[str, dict[str, object]] = {}
        for provider_id in ids:
            status = self.get_status(provider_id)
            result[provider_id] = {
                "state": status.state.value,
                "failures": status.consecutive_failures,
                "calls": status.total_calls,
                "success_rate": status.success_rate,
                "avg_latency_ms": status.average_latency_ms,
            }
        return result
