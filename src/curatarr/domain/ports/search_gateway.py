"""Ports for searching across providers and reading their health."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from curatarr.domain.entities.health import CircuitBreakerStatus
from curatarr.domain.entities.search import AggregatedSearch, SearchQuery


@runtime_checkable
class SearchGatewayPort(Protocol):
    """Fans a query out to all configured providers.

    Never raises for provider failures; those are reported per provider
    in the returned ``AggregatedSearch``.
    """

    @property
    def provider_ids(self) -> list[str]: ...

    async def search(self, query: SearchQuery) -> AggregatedSearch: ...


@runtime_checkable
class ProviderHealthPort(Protocol):
    def get_status(self, provider_id: str) -> CircuitBreakerStatus: ...

    def reset(self, provider_id: str) -> bool: ...

    def snapshot(self) -> dict[str, dict[str, object]]: ...
