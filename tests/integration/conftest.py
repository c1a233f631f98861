"""Shared fixtures for integration tests.

These tests wire real infrastructure components (config loading, YAML
config store, circuit breaker, provider pool) and fake only the outer
ports: search providers, content store and grabber.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Sequence

import pytest

from curatarr.domain.entities import ReleaseCandidate, SearchQuery
from curatarr.domain.exceptions import ProviderError


class ScriptedProvider:
    """SearchProviderPort answering from a callable, optionally failing."""

    def __init__(
        self,
        provider_id: str,
        respond: Callable[[SearchQuery], Sequence[str]] | None = None,
        *,
        fail: bool = False,
        delay: float = 0.0,
    ) -> None:
        self._id = provider_id
        self._respond = respond or (lambda query: [])
        self.fail = fail
        self._delay = delay
        self.queries: list[SearchQuery] = []

    @property
    def provider_id(self) -> str:
        return self._id

    async def search(self, query: SearchQuery) -> list[ReleaseCandidate]:
        self.queries.append(query)
        if self._delay:
            await asyncio.sleep(self._delay)
        if self.fail:
            raise ProviderError(self._id, "indexer returned 503")
        return [
            ReleaseCandidate(title=title, indexer_id=self._id)
            for title in self._respond(query)
        ]


@pytest.fixture()
def scripted_provider() -> type[ScriptedProvider]:
    return ScriptedProvider
