"""In-process queue of releases waiting out a delay profile."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable

import structlog

from curatarr.domain.entities.delay import PendingRelease, PendingStatus
from curatarr.domain.exceptions import NotFoundError

log = structlog.get_logger(__name__)


class InMemoryPendingReleases:
    """PendingReleasePort kept in a dict keyed by entry id."""

    def __init__(self, entries: Iterable[PendingRelease] = ()) -> None:
        self._entries: dict[str, PendingRelease] = {e.id: e for e in entries}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, pending_id: str) -> PendingRelease | None:
        return self._entries.get(pending_id)

    def entries(self, status: PendingStatus | None = None) -> list[PendingRelease]:
        return [e for e in self._entries.values() if status is None or e.status is status]

    async def add(self, pending: PendingRelease) -> None:
        self._entries[pending.id] = pending
        log.debug("pending_release_added", pending_id=pending.id, key=pending.key)

    async def best_for(self, key: str) -> PendingRelease | None:
        waiting = [
            e
            for e in self._entries.values()
            if e.key == key and e.status is PendingStatus.PENDING
        ]
        return max(waiting, key=lambda e: e.score, default=None)

    async def ready(self, now: datetime) -> list[PendingRelease]:
        due = [
            e
            for e in self._entries.values()
            if e.status is PendingStatus.PENDING and e.process_at <= now
        ]
        return sorted(due, key=lambda e: e.score, reverse=True)

    async def mark(
        self, pending_id: str, status: PendingStatus, *, superseded_by: str | None = None
    ) -> None:
        entry = self._entries.get(pending_id)
        if entry is None:
            raise NotFoundError(f"Pending release '{pending_id}' not found")
        entry.status = status
        if superseded_by is not None:
            entry.superseded_by = superseded_by

    async def cleanup(self, max_age: timedelta, now: datetime) -> int:
        cutoff = now - max_age
        old = [e for e in self._entries.values() if e.added_at <= cutoff]
        for entry in old:
            if entry.status is PendingStatus.PENDING:
                log.info("pending_release_expired", pending_id=entry.id, title=entry.title)
            del self._entries[entry.id]
        return len(old)
