"""Release candidates and their scored form.

Pure value objects with no framework dependencies and no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from .formats import FormatCategory

DownloadProtocol = Literal["torrent", "usenet"]
MediaType = Literal["movie", "episode"]

UNKNOWN = "unknown"


@dataclass(frozen=True)
class QualityDescriptor:
    """Quality hints supplied by the provider (may be empty)."""

    resolution: str | None = None
    source: str | None = None
    codec: str | None = None
    hdr: str | None = None


@dataclass(frozen=True)
class ReleaseCandidate:
    """A raw release as returned by a search provider."""

    title: str
    size: int | None = None  # bytes
    quality: QualityDescriptor = field(default_factory=QualityDescriptor)
    indexer_id: str | None = None
    info_hash: str | None = None
    download_url: str | None = None
    magnet_url: str | None = None
    protocol: DownloadProtocol = "torrent"


@dataclass(frozen=True)
class ReleaseAttributes:
    """Attributes parsed from a release title.

    ``seasons`` and ``episodes`` are ascending. A season pack has seasons
    but no episode numbers, so it covers every episode of its seasons.
    """

    title: str
    resolution: str = UNKNOWN
    source: str = UNKNOWN
    codec: str = UNKNOWN
    hdr: str | None = None
    release_group: str | None = None
    streaming_service: str | None = None
    indexer_id: str | None = None
    seasons: tuple[int, ...] = ()
    episodes: tuple[int, ...] = ()
    is_complete_series: bool = False
    is_repack: bool = False
    is_proper: bool = False

    @property
    def is_season_pack(self) -> bool:
        return bool(self.seasons) and not self.episodes

    @property
    def is_multi_season(self) -> bool:
        return len(self.seasons) > 1

    @property
    def is_pack(self) -> bool:
        return self.is_complete_series or self.is_season_pack or len(self.episodes) > 1

    def covers(self, season: int, episode: int) -> bool:
        """Return True if this release contains the given episode."""
        if self.is_complete_series and not self.seasons:
            return True
        if season not in self.seasons:
            return False
        return not self.episodes or episode in self.episodes


@dataclass(frozen=True)
class FormatContribution:
    """One entry of a score breakdown."""

    format_id: str
    name: str
    category: FormatCategory
    score: int


@dataclass(frozen=True)
class ScoredRelease:
    """A candidate annotated with its score under one profile."""

    candidate: ReleaseCandidate
    total_score: int
    matched_formats: tuple[FormatContribution, ...] = ()
    is_banned: bool = False
    banned_reasons: tuple[str, ...] = ()
    resolution: str = UNKNOWN
    size_rejected: bool = False
    size_rejection_reason: str | None = None
    attributes: ReleaseAttributes | None = None

    @property
    def title(self) -> str:
        return self.candidate.title

    @property
    def format_ids(self) -> tuple[str, ...]:
        return tuple(c.format_id for c in self.matched_formats)

    @classmethod
    def from_score(cls, score: int, title: str = "") -> ScoredRelease:
        """Build a bare scored release for decisions on plain scores."""
        return cls(candidate=ReleaseCandidate(title=title), total_score=score)
