"""Port for releases held back by a delay profile."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Protocol, runtime_checkable

from curatarr.domain.entities.delay import PendingRelease, PendingStatus


@runtime_checkable
class PendingReleasePort(Protocol):
    async def add(self, pending: PendingRelease) -> None: ...

    async def best_for(self, key: str) -> PendingRelease | None:
        """Highest-scoring entry still pending under *key*."""
        ...

    async def ready(self, now: datetime) -> list[PendingRelease]:
        """Pending entries whose delay has run out, best score first."""
        ...

    async def mark(
        self, pending_id: str, status: PendingStatus, *, superseded_by: str | None = None
    ) -> None:
        """Raises ``NotFoundError`` for an unknown id."""
        ...

    async def cleanup(self, max_age: timedelta, now: datetime) -> int:
        """Drop every entry added more than *max_age* ago, pending or not.

        Returns the number of entries dropped.
        """
        ...
