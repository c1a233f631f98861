"""Monitoring specifications.

Each rule is an async callable ``(context, candidate) -> SpecificationResult``
over the ``MovieContext | EpisodeContext`` union. Rules that need a
collaborator (content store, clock, blocklist) are built by factories.
A ``SpecificationChain`` runs rules in order and stops at the first
rejection.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Sequence

import structlog

from curatarr.domain.entities.monitoring import (
    Availability,
    EpisodeContext,
    MonitoringContext,
    Movie,
    MovieContext,
    RejectionReason,
    SpecificationResult,
)
from curatarr.domain.entities.release import ScoredRelease
from curatarr.domain.ports.blocklist import BlocklistPort
from curatarr.domain.ports.content_store import ContentStorePort

log = structlog.get_logger(__name__)

Rule = Callable[[MonitoringContext, ScoredRelease | None], Awaitable[SpecificationResult]]
ReleaseRule = Callable[[ScoredRelease], Awaitable[SpecificationResult]]
Clock = Callable[[], datetime]
AvailabilityEstimator = Callable[[Movie, datetime], Availability | None]

# A current-year movie added longer ago than this counts as released.
RELEASED_AFTER_DAYS = 120

_accept = SpecificationResult.accept
_reject = SpecificationResult.reject


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def estimate_availability(movie: Movie, now: datetime) -> Availability | None:
    """Heuristic release stage from year and days since the movie was added."""
    if movie.year is None:
        return Availability.ANNOUNCED
    if movie.year > now.year:
        return Availability.ANNOUNCED
    if movie.year < now.year:
        return Availability.RELEASED
    if movie.added is None:
        return Availability.IN_CINEMAS
    if now - movie.added > timedelta(days=RELEASED_AFTER_DAYS):
        return Availability.RELEASED
    return Availability.IN_CINEMAS


# ----------------------------------------------------------------------
# Item rules
# ----------------------------------------------------------------------


async def monitored(
    context: MonitoringContext, candidate: ScoredRelease | None = None
) -> SpecificationResult:
    if isinstance(context, MovieContext):
        item_monitored = context.movie.monitored
    else:
        item_monitored = context.episode.monitored
    return _accept() if item_monitored else _reject(RejectionReason.NOT_MONITORED)


async def series_monitored(
    context: MonitoringContext, candidate: ScoredRelease | None = None
) -> SpecificationResult:
    if isinstance(context, EpisodeContext) and not context.series.monitored:
        return _reject(RejectionReason.SERIES_NOT_MONITORED)
    return _accept()


def season_monitored(content_store: ContentStorePort) -> Rule:
    """Reject episodes of an unmonitored season; an unknown season passes."""

    async def rule(
        context: MonitoringContext, candidate: ScoredRelease | None = None
    ) -> SpecificationResult:
        if not isinstance(context, EpisodeContext):
            return _accept()
        season = await content_store.get_season(
            context.series.id, context.episode.season_number
        )
        if season is not None and not season.monitored:
            return _reject(RejectionReason.SEASON_NOT_MONITORED)
        return _accept()

    return rule


def missing_content(clock: Clock = _utcnow) -> Rule:
    """Accept items without a file; episodes must also have aired."""

    async def rule(
        context: MonitoringContext, candidate: ScoredRelease | None = None
    ) -> SpecificationResult:
        if context.existing_file is not None:
            return _reject(RejectionReason.ALREADY_HAS_FILE)
        if isinstance(context, EpisodeContext):
            air_date = context.episode.air_date
            if air_date is not None and air_date > clock():
                return _reject(RejectionReason.NOT_YET_AIRED)
        return _accept()

    return rule


def availability(
    clock: Clock = _utcnow,
    estimator: AvailabilityEstimator = estimate_availability,
) -> Rule:
    """Gate movies on their minimum availability."""

    async def rule(
        context: MonitoringContext, candidate: ScoredRelease | None = None
    ) -> SpecificationResult:
        if not isinstance(context, MovieContext):
            return _accept()
        movie = context.movie
        minimum = Availability.parse(movie.minimum_availability or "released")
        if minimum is None:
            return _accept()
        current = estimator(movie, clock())
        if current is None:
            return _reject(RejectionReason.UNKNOWN_AVAILABILITY)
        if current < minimum:
            return _reject(
                RejectionReason.NOT_YET_AVAILABLE,
                f"{current.name.lower()} < {minimum.name.lower()}",
            )
        return _accept()

    return rule


def newly_aired(interval_hours: float, clock: Clock = _utcnow) -> Rule:
    """Accept episodes that aired within the last *interval_hours*."""

    async def rule(
        context: MonitoringContext, candidate: ScoredRelease | None = None
    ) -> SpecificationResult:
        if not isinstance(context, EpisodeContext):
            return _accept()
        air_date = context.episode.air_date
        if air_date is None:
            return _reject(RejectionReason.NO_AIR_DATE)
        now = clock()
        if air_date > now:
            return _reject(RejectionReason.NOT_YET_AIRED)
        if air_date < now - timedelta(hours=interval_hours):
            return _reject(RejectionReason.AIRED_TOO_LONG_AGO)
        return _accept()

    return rule


async def cutoff_unmet(
    context: MonitoringContext, candidate: ScoredRelease | None = None
) -> SpecificationResult:
    """Accept items whose existing file may still be upgraded."""
    existing = context.existing_file
    if existing is None:
        return _reject(RejectionReason.NO_EXISTING_FILE)
    profile = context.profile
    if profile is None:
        return _reject(RejectionReason.NO_PROFILE)
    if not profile.upgrades_allowed:
        return _reject(RejectionReason.UPGRADES_NOT_ALLOWED)
    if (
        profile.has_cutoff
        and existing.score is not None
        and existing.score >= profile.upgrade_until_score
    ):
        return _reject(RejectionReason.ALREADY_AT_CUTOFF)
    return _accept()


# ----------------------------------------------------------------------
# Release rules
# ----------------------------------------------------------------------


def not_blocklisted(blocklist: BlocklistPort) -> ReleaseRule:
    """Reject releases that match a live blocklist entry."""

    async def rule(release: ScoredRelease) -> SpecificationResult:
        reason = await blocklist.find(release.candidate)
        if reason is not None:
            return _reject(RejectionReason.BLOCKLISTED, reason)
        return _accept()

    return rule


def release_rules(blocklist: BlocklistPort | None) -> list[tuple[str, ReleaseRule]]:
    """Rules every scored release passes before it can be decided on."""
    if blocklist is None:
        return []
    return [("not_blocklisted", not_blocklisted(blocklist))]


# ----------------------------------------------------------------------
# Chains
# ----------------------------------------------------------------------


class SpecificationChain:
    """Short-circuit AND over named rules."""

    def __init__(self, rules: Sequence[tuple[str, Rule]]) -> None:
        self._rules = list(rules)

    @property
    def rule_names(self) -> list[str]:
        return [name for name, _ in self._rules]

    async def evaluate(
        self, context: MonitoringContext, candidate: ScoredRelease | None = None
    ) -> SpecificationResult:
        for name, rule in self._rules:
            result = await rule(context, candidate)
            if not result.accepted:
                log.debug(
                    "specification_rejected",
                    rule=name,
                    item_id=context.item_id,
                    reason=result.reason,
                )
                return result
        return _accept()


def movie_chain(
    *,
    clock: Clock = _utcnow,
    estimator: AvailabilityEstimator = estimate_availability,
) -> SpecificationChain:
    return SpecificationChain(
        [
            ("monitored", monitored),
            ("missing_content", missing_content(clock)),
            ("availability", availability(clock, estimator)),
        ]
    )


def episode_chain(
    content_store: ContentStorePort,
    *,
    clock: Clock = _utcnow,
    new_episode_interval_hours: float | None = None,
) -> SpecificationChain:
    rules: list[tuple[str, Rule]] = [
        ("series_monitored", series_monitored),
        ("season_monitored", season_monitored(content_store)),
        ("monitored", monitored),
        ("missing_content", missing_content(clock)),
    ]
    if new_episode_interval_hours is not None:
        rules.append(("newly_aired", newly_aired(new_episode_interval_hours, clock)))
    return SpecificationChain(rules)


def upgrade_chain(content_store: ContentStorePort | None = None) -> SpecificationChain:
    """Monitoring gates followed by the cutoff-unmet check."""
    rules: list[tuple[str, Rule]] = [("series_monitored", series_monitored)]
    if content_store is not None:
        rules.append(("season_monitored", season_monitored(content_store)))
    rules += [("monitored", monitored), ("cutoff_unmet", cutoff_unmet)]
    return SpecificationChain(rules)


def chain_for(
    context: MonitoringContext,
    content_store: ContentStorePort,
    *,
    clock: Clock = _utcnow,
) -> SpecificationChain:
    """The missing-content chain matching the context's variant."""
    if isinstance(context, MovieContext):
        return movie_chain(clock=clock)
    return episode_chain(content_store, clock=clock)
