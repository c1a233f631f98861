"""Circuit-breaker guarded access to search providers."""

from __future__ import annotations

import asyncio
import time
from typing import Sequence

import structlog

from curatarr.domain.entities.release import ReleaseCandidate
from curatarr.domain.entities.search import (
    AggregatedSearch,
    ProviderOutcome,
    ProviderSearchResult,
    SearchQuery,
)
from curatarr.domain.ports.search_provider import SearchProviderPort
from curatarr.infrastructure.circuit_breaker import ProviderCircuitBreaker

log = structlog.get_logger(__name__)


class GuardedSearchProvider:
    """Wraps one provider with a circuit breaker and optional timeout.

    A call refused by the breaker yields ``ProviderOutcome.UNAVAILABLE``
    without reaching the provider or touching the failure counter. Any
    exception from the provider is a failure; cancellation is not.
    """

    def __init__(
        self,
        provider: SearchProviderPort,
        breaker: ProviderCircuitBreaker,
        *,
        timeout_seconds: float | None = None,
    ) -> None:
        self._provider = provider
        self._breaker = breaker
        self._timeout = timeout_seconds

    @property
    def provider_id(self) -> str:
        return self._provider.provider_id

    async def search(self, query: SearchQuery) -> ProviderSearchResult:
        pid = self.provider_id
        permit = self._breaker.acquire(pid)
        if permit is None:
            log.debug("provider_short_circuited", provider=pid, term=query.term)
            return ProviderSearchResult(provider_id=pid, outcome=ProviderOutcome.UNAVAILABLE)

        t0 = time.perf_counter_ns()
        try:
            if self._timeout:
                raw = await asyncio.wait_for(
                    self._provider.search(query), timeout=self._timeout
                )
            else:
                raw = await self._provider.search(query)
        except asyncio.CancelledError:
            self._breaker.abandon(permit)
            log.warning("provider_search_cancelled", provider=pid)
            raise
        except Exception as e:
            latency_ms = (time.perf_counter_ns() - t0) / 1_000_000
            self._breaker.complete(permit, False, latency_ms)
            log.warning(
                "provider_search_failed",
                provider=pid,
                term=query.term,
                error=str(e) or type(e).__name__,
                exc_info=True,
            )
            return ProviderSearchResult(
                provider_id=pid,
                outcome=ProviderOutcome.FAILED,
                error=str(e) or type(e).__name__,
                latency_ms=latency_ms,
            )

        latency_ms = (time.perf_counter_ns() - t0) / 1_000_000
        self._breaker.complete(permit, True, latency_ms)
        log.debug(
            "provider_search_done",
            provider=pid,
            result_count=len(raw),
            latency_ms=round(latency_ms, 1),
        )
        return ProviderSearchResult(
            provider_id=pid,
            outcome=ProviderOutcome.OK,
            releases=tuple(raw),
            latency_ms=latency_ms,
        )


class ProviderPool:
    """Fans one query out to every guarded provider in parallel.

    Releases are merged in provider order, then in each provider's own
    order, so discovery order is deterministic.
    """

    def __init__(
        self, providers: Sequence[GuardedSearchProvider], *, max_concurrent: int = 5
    ) -> None:
        self._providers = list(providers)
        self._max_concurrent = max(1, max_concurrent)

    @property
    def provider_ids(self) -> list[str]:
        return [p.provider_id for p in self._providers]

    async def search(self, query: SearchQuery) -> AggregatedSearch:
        semaphore = asyncio.Semaphore(self._max_concurrent)

        async def _search_one(provider: GuardedSearchProvider) -> ProviderSearchResult:
            async with semaphore:
                return await provider.search(query)

        results = await asyncio.gather(*(_search_one(p) for p in self._providers))

        releases: list[ReleaseCandidate] = []
        for result in results:
            releases.extend(result.releases)
        return AggregatedSearch(releases=tuple(releases), results=tuple(results))
