"""Monitored content and specification results."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum, StrEnum

from .profile import ScoringProfile


class RejectionReason(StrEnum):
    # item gating
    NOT_MONITORED = "not_monitored"
    SERIES_NOT_MONITORED = "series_not_monitored"
    SEASON_NOT_MONITORED = "season_not_monitored"
    ALREADY_HAS_FILE = "already_has_file"
    NOT_YET_AIRED = "not_yet_aired"
    NO_AIR_DATE = "no_air_date"
    AIRED_TOO_LONG_AGO = "aired_too_long_ago"
    NOT_YET_AVAILABLE = "not_yet_available"
    UNKNOWN_AVAILABILITY = "unknown_availability"
    NO_PROFILE = "no_profile"
    NO_EXISTING_FILE = "no_existing_file"
    ITEM_REMOVED = "item_removed"
    # release decisions
    BANNED = "banned"
    BELOW_MINIMUM = "below_minimum"
    SIZE_REJECTED = "size_rejected"
    BLOCKLISTED = "blocklisted"
    UPGRADES_NOT_ALLOWED = "upgrades_not_allowed"
    ALREADY_AT_CUTOFF = "already_at_cutoff"
    IMPROVEMENT_TOO_SMALL = "improvement_too_small"


class Availability(IntEnum):
    """Release stage of a movie, ordered."""

    ANNOUNCED = 0
    IN_CINEMAS = 1
    RELEASED = 2

    @classmethod
    def parse(cls, value: str | None) -> Availability | None:
        """Map a label (``inCinemas``, ``in_cinemas``, ...) to a stage."""
        if not value:
            return None
        key = value.replace("-", "_").lower()
        return {
            "announced": cls.ANNOUNCED,
            "incinemas": cls.IN_CINEMAS,
            "in_cinemas": cls.IN_CINEMAS,
            "released": cls.RELEASED,
        }.get(key)


@dataclass(frozen=True)
class MediaFile:
    """A file already held for an item."""

    scene_name: str
    score: int | None = None
    size: int | None = None


@dataclass(frozen=True)
class Movie:
    id: str
    title: str
    year: int | None = None
    added: datetime | None = None
    monitored: bool = True
    minimum_availability: str | None = "released"
    profile_id: str | None = None
    file: MediaFile | None = None

    @property
    def has_file(self) -> bool:
        return self.file is not None


@dataclass(frozen=True)
class Series:
    id: str
    title: str
    monitored: bool = True
    profile_id: str | None = None


@dataclass(frozen=True)
class Season:
    series_id: str
    season_number: int
    monitored: bool = True


@dataclass(frozen=True)
class Episode:
    id: str
    series_id: str
    season_number: int
    episode_number: int
    title: str = ""
    monitored: bool = True
    air_date: datetime | None = None
    file: MediaFile | None = None

    @property
    def has_file(self) -> bool:
        return self.file is not None


@dataclass(frozen=True)
class MovieContext:
    movie: Movie
    profile: ScoringProfile | None = None

    @property
    def item_id(self) -> str:
        return self.movie.id

    @property
    def existing_file(self) -> MediaFile | None:
        return self.movie.file


@dataclass(frozen=True)
class EpisodeContext:
    series: Series
    episode: Episode
    profile: ScoringProfile | None = None

    @property
    def item_id(self) -> str:
        return self.episode.id

    @property
    def existing_file(self) -> MediaFile | None:
        return self.episode.file


MonitoringContext = MovieContext | EpisodeContext


@dataclass(frozen=True)
class SpecificationResult:
    accepted: bool
    reason: RejectionReason | None = None
    detail: str | None = None

    @classmethod
    def accept(cls) -> SpecificationResult:
        return _ACCEPTED

    @classmethod
    def reject(
        cls, reason: RejectionReason, detail: str | None = None
    ) -> SpecificationResult:
        return cls(accepted=False, reason=reason, detail=detail)


_ACCEPTED = SpecificationResult(accepted=True)
