"""Port for releases that must never be grabbed again."""

from __future__ import annotations

from datetime import timedelta
from typing import Protocol, runtime_checkable

from curatarr.domain.entities.release import ReleaseCandidate


@runtime_checkable
class BlocklistPort(Protocol):
    async def find(self, candidate: ReleaseCandidate) -> str | None:
        """Return the block reason if *candidate* is blocklisted, else None."""
        ...

    async def block(
        self, candidate: ReleaseCandidate, reason: str, *, ttl: timedelta | None = None
    ) -> None:
        """Blocklist *candidate*; ``ttl=None`` blocks it permanently."""
        ...
