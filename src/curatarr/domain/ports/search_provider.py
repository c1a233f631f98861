"""Port for release search providers (indexers)."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from curatarr.domain.entities.release import ReleaseCandidate
from curatarr.domain.entities.search import SearchQuery


@runtime_checkable
class SearchProviderPort(Protocol):
    """Async interface to one indexer.

    Implementations raise ``ProviderError`` (or time out) on failure;
    the circuit breaker wrapper turns that into a provider outcome.
    """

    @property
    def provider_id(self) -> str: ...

    async def search(self, query: SearchQuery) -> list[ReleaseCandidate]: ...
