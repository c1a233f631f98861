"""Delay profiles and the releases held back while they run."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Mapping

from .release import DownloadProtocol, ScoredRelease


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DelayProfile:
    """How long to wait for a better release before grabbing.

    ``quality_delays`` maps a resolution tag to minutes; when it names the
    release's resolution the longer of it and the protocol delay applies.
    """

    id: str
    name: str = ""
    enabled: bool = True
    sort_order: int = 0
    usenet_delay_minutes: int = 0
    torrent_delay_minutes: int = 0
    quality_delays: Mapping[str, int] = field(default_factory=dict)
    preferred_protocol: DownloadProtocol | None = None
    bypass_if_highest_quality: bool = True
    bypass_if_above_score: int | None = None


@dataclass(frozen=True)
class DelayVerdict:
    delay_minutes: int = 0
    process_at: datetime | None = None
    reason: str | None = None
    bypass_reason: str | None = None

    @property
    def should_delay(self) -> bool:
        return self.process_at is not None


class PendingStatus(StrEnum):
    PENDING = "pending"
    GRABBED = "grabbed"
    EXPIRED = "expired"
    SUPERSEDED = "superseded"


@dataclass
class PendingRelease:
    """A release waiting out its delay.

    ``key`` names what the release is for (a movie id, or a series id plus
    episode tags) so that a better release for the same thing replaces it.
    """

    id: str
    key: str
    item_ids: tuple[str, ...]
    release: ScoredRelease
    process_at: datetime
    added_at: datetime = field(default_factory=_utcnow)
    movie_id: str | None = None
    series_id: str | None = None
    delay_profile_id: str | None = None
    # scene name of the file held when queued; None for missing content
    replaces: str | None = None
    status: PendingStatus = PendingStatus.PENDING
    superseded_by: str | None = None

    @property
    def score(self) -> int:
        return self.release.total_score

    @property
    def title(self) -> str:
        return self.release.title
