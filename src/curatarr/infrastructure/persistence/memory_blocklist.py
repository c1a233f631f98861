"""In-process blocklist of releases that failed or were rejected."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from curatarr.domain.entities.release import ReleaseCandidate


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class BlocklistEntry:
    title: str
    reason: str
    info_hash: str | None = None
    expires_at: datetime | None = None  # None = permanent

    def expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now


class InMemoryBlocklist:
    """BlocklistPort matching on info hash (case-insensitive) or exact title.

    Expired entries are dropped whenever the list is read or written.
    """

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._entries: list[BlocklistEntry] = []
        self._clock = clock

    def __len__(self) -> int:
        return len(self._entries)

    def _prune(self, now: datetime) -> None:
        if any(e.expired(now) for e in self._entries):
            self._entries = [e for e in self._entries if not e.expired(now)]

    def add(
        self,
        candidate: ReleaseCandidate,
        reason: str,
        *,
        ttl: timedelta | None = None,
    ) -> BlocklistEntry:
        now = self._clock()
        self._prune(now)
        entry = BlocklistEntry(
            title=candidate.title,
            reason=reason,
            info_hash=candidate.info_hash.lower() if candidate.info_hash else None,
            expires_at=now + ttl if ttl else None,
        )
        self._entries.append(entry)
        return entry

    async def block(
        self, candidate: ReleaseCandidate, reason: str, *, ttl: timedelta | None = None
    ) -> None:
        self.add(candidate, reason, ttl=ttl)

    async def find(self, candidate: ReleaseCandidate) -> str | None:
        self._prune(self._clock())
        info_hash = candidate.info_hash.lower() if candidate.info_hash else None
        for entry in self._entries:
            if (info_hash and entry.info_hash == info_hash) or entry.title == candidate.title:
                return entry.reason
        return None
