"""Port for handing accepted releases to a download client."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from curatarr.domain.entities.release import ReleaseCandidate
from curatarr.domain.entities.search import GrabReceipt


@runtime_checkable
class GrabberPort(Protocol):
    async def submit(self, candidate: ReleaseCandidate) -> GrabReceipt:
        """Submit *candidate* for download. Raises ``GrabError`` on failure."""
        ...
