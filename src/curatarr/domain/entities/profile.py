"""Scoring profiles."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from curatarr.domain.exceptions import ConfigurationError

from .formats import CustomFormat

DEFAULT_RESOLUTION_ORDER: tuple[str, ...] = ("2160p", "1080p", "720p", "480p", "unknown")

# upgrade_until_score value meaning "no cutoff".
UNBOUNDED = -1


@dataclass(frozen=True)
class PackPreference:
    """Bonuses applied to season and series packs."""

    enabled: bool = True
    complete_series_bonus: int = 100
    multi_season_bonus: int = 75
    single_season_bonus: int = 50
    min_wanted_episodes_percent: int = 50


@dataclass(frozen=True)
class ScoringProfile:
    """Per-format score overrides, thresholds and size bounds.

    Profiles are immutable snapshots for the duration of one evaluation.
    """

    id: str
    name: str = ""
    base_profile_id: str | None = None
    resolution_order: tuple[str, ...] = DEFAULT_RESOLUTION_ORDER
    format_scores: Mapping[str, int] = field(default_factory=dict)
    upgrades_allowed: bool = True
    min_score: int = 0
    upgrade_until_score: int = UNBOUNDED
    min_score_increment: int = 0
    movie_min_size_gb: float | None = None
    movie_max_size_gb: float | None = None
    episode_min_size_mb: float | None = None
    episode_max_size_mb: float | None = None
    pack_preference: PackPreference | None = None

    def __post_init__(self) -> None:
        if self.min_score_increment < 0:
            raise ConfigurationError(
                f"Profile '{self.id}': min_score_increment must be >= 0"
            )
        if self.upgrade_until_score != UNBOUNDED and (
            self.upgrade_until_score < self.min_score
        ):
            raise ConfigurationError(
                f"Profile '{self.id}': upgrade_until_score "
                f"({self.upgrade_until_score}) must be -1 or >= min_score "
                f"({self.min_score})"
            )
        for low, high, label in (
            (self.movie_min_size_gb, self.movie_max_size_gb, "movie size"),
            (self.episode_min_size_mb, self.episode_max_size_mb, "episode size"),
        ):
            if low is not None and high is not None and low > high:
                raise ConfigurationError(
                    f"Profile '{self.id}': {label} minimum exceeds maximum"
                )

    @property
    def has_cutoff(self) -> bool:
        return self.upgrade_until_score != UNBOUNDED

    def effective_score(self, fmt: CustomFormat) -> int:
        return self.format_scores.get(fmt.id, fmt.default_score)

    def resolution_rank(self, resolution: str) -> int | None:
        """Index of *resolution* in the preference order, None if unlisted."""
        try:
            return self.resolution_order.index(resolution)
        except ValueError:
            return None
