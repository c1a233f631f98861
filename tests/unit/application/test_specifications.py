"""Tests for the monitoring specification rules and chains."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import pytest

from curatarr.application.monitoring import (
    cutoff_unmet,
    episode_chain,
    estimate_availability,
    movie_chain,
    not_blocklisted,
    release_rules,
    upgrade_chain,
)
from curatarr.application.monitoring.specifications import (
    availability,
    chain_for,
    missing_content,
    newly_aired,
)
from curatarr.domain.entities import (
    Availability,
    Episode,
    EpisodeContext,
    MediaFile,
    Movie,
    MovieContext,
    RejectionReason,
    ReleaseCandidate,
    ScoredRelease,
    ScoringProfile,
    Season,
    Series,
)
from curatarr.infrastructure.persistence.memory_blocklist import InMemoryBlocklist

NOW = datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


def _episode(
    number: int = 1,
    *,
    air_date: datetime | None = NOW - timedelta(days=5),
    monitored: bool = True,
    file: MediaFile | None = None,
) -> Episode:
    return Episode(
        id=f"ep-{number}",
        series_id="show",
        season_number=1,
        episode_number=number,
        monitored=monitored,
        air_date=air_date,
        file=file,
    )


_SHOW = Series(id="show", title="Show")


class TestEstimateAvailability:
    def test_no_year_is_announced(self) -> None:
        movie = Movie(id="m", title="M")
        assert estimate_availability(movie, NOW) is Availability.ANNOUNCED

    def test_future_year_is_announced(self) -> None:
        movie = Movie(id="m", title="M", year=NOW.year + 1)
        assert estimate_availability(movie, NOW) is Availability.ANNOUNCED

    def test_past_year_is_released(self) -> None:
        movie = Movie(id="m", title="M", year=NOW.year - 1)
        assert estimate_availability(movie, NOW) is Availability.RELEASED

    def test_current_year_recently_added_is_in_cinemas(self) -> None:
        movie = Movie(id="m", title="M", year=NOW.year, added=NOW - timedelta(days=40))
        assert estimate_availability(movie, NOW) is Availability.IN_CINEMAS

    def test_current_year_added_long_ago_is_released(self) -> None:
        movie = Movie(id="m", title="M", year=NOW.year, added=NOW - timedelta(days=121))
        assert estimate_availability(movie, NOW) is Availability.RELEASED

    def test_partial_day_past_the_window_is_released(self) -> None:
        added = NOW - timedelta(days=120, hours=12)
        movie = Movie(id="m", title="M", year=NOW.year, added=added)
        assert estimate_availability(movie, NOW) is Availability.RELEASED

    def test_current_year_without_added_date_is_in_cinemas(self) -> None:
        movie = Movie(id="m", title="M", year=NOW.year)
        assert estimate_availability(movie, NOW) is Availability.IN_CINEMAS


class TestAvailability:
    async def test_recent_movie_not_yet_available(self, clock: Callable) -> None:
        movie = Movie(id="m", title="M", year=NOW.year, added=NOW - timedelta(days=40))
        result = await availability(clock)(MovieContext(movie=movie))
        assert result.accepted is False
        assert result.reason is RejectionReason.NOT_YET_AVAILABLE
        assert result.detail == "in_cinemas < released"

    async def test_lower_minimum_accepts(self, clock: Callable) -> None:
        movie = Movie(
            id="m",
            title="M",
            year=NOW.year,
            added=NOW - timedelta(days=40),
            minimum_availability="inCinemas",
        )
        assert (await availability(clock)(MovieContext(movie=movie))).accepted

    async def test_unrecognised_minimum_accepts(self, clock: Callable) -> None:
        movie = Movie(id="m", title="M", year=NOW.year + 3, minimum_availability="tba")
        assert (await availability(clock)(MovieContext(movie=movie))).accepted

    async def test_unknown_stage_rejects(self, clock: Callable) -> None:
        rule = availability(clock, estimator=lambda movie, now: None)
        result = await rule(MovieContext(movie=Movie(id="m", title="M")))
        assert result.reason is RejectionReason.UNKNOWN_AVAILABILITY

    async def test_episodes_pass(self, clock: Callable) -> None:
        context = EpisodeContext(series=_SHOW, episode=_episode())
        assert (await availability(clock)(context)).accepted


class TestMissingContent:
    async def test_held_file_rejects(self, clock: Callable, held_file: MediaFile) -> None:
        context = EpisodeContext(series=_SHOW, episode=_episode(file=held_file))
        result = await missing_content(clock)(context)
        assert result.reason is RejectionReason.ALREADY_HAS_FILE

    async def test_future_air_date_rejects(self, clock: Callable) -> None:
        context = EpisodeContext(
            series=_SHOW, episode=_episode(air_date=NOW + timedelta(days=5))
        )
        result = await missing_content(clock)(context)
        assert result.reason is RejectionReason.NOT_YET_AIRED

    async def test_aired_episode_accepts(self, clock: Callable) -> None:
        context = EpisodeContext(series=_SHOW, episode=_episode())
        assert (await missing_content(clock)(context)).accepted

    async def test_missing_air_date_accepts(self, clock: Callable) -> None:
        context = EpisodeContext(series=_SHOW, episode=_episode(air_date=None))
        assert (await missing_content(clock)(context)).accepted


class TestNewlyAired:
    @pytest.mark.parametrize(
        ("air_date", "reason"),
        [
            (NOW - timedelta(hours=2), None),
            (NOW - timedelta(hours=30), RejectionReason.AIRED_TOO_LONG_AGO),
            (NOW + timedelta(hours=2), RejectionReason.NOT_YET_AIRED),
            (None, RejectionReason.NO_AIR_DATE),
        ],
    )
    async def test_window(
        self, clock: Callable, air_date: datetime | None, reason: RejectionReason | None
    ) -> None:
        context = EpisodeContext(series=_SHOW, episode=_episode(air_date=air_date))
        result = await newly_aired(24, clock)(context)
        assert result.reason is reason


class TestCutoffUnmet:
    async def test_no_file(self, profile: ScoringProfile, movie: Movie) -> None:
        result = await cutoff_unmet(MovieContext(movie=movie, profile=profile))
        assert result.reason is RejectionReason.NO_EXISTING_FILE

    async def test_no_profile(self, movie: Movie, held_file: MediaFile) -> None:
        movie = Movie(id=movie.id, title=movie.title, file=held_file)
        result = await cutoff_unmet(MovieContext(movie=movie))
        assert result.reason is RejectionReason.NO_PROFILE

    async def test_upgrades_disabled(self, profile: ScoringProfile) -> None:
        locked = ScoringProfile(id="locked", upgrades_allowed=False)
        movie = Movie(id="m", title="M", file=MediaFile("M.720p", score=10))
        result = await cutoff_unmet(MovieContext(movie=movie, profile=locked))
        assert result.reason is RejectionReason.UPGRADES_NOT_ALLOWED

    @pytest.mark.parametrize(("score", "accepted"), [(50, True), (80, False), (95, False)])
    async def test_cutoff(
        self, profile: ScoringProfile, score: int, accepted: bool
    ) -> None:
        movie = Movie(id="m", title="M", file=MediaFile("M.720p", score=score))
        result = await cutoff_unmet(MovieContext(movie=movie, profile=profile))
        assert result.accepted is accepted

    async def test_unknown_file_score_may_upgrade(self, profile: ScoringProfile) -> None:
        movie = Movie(id="m", title="M", file=MediaFile("M.720p"))
        assert (await cutoff_unmet(MovieContext(movie=movie, profile=profile))).accepted


class TestNotBlocklisted:
    async def test_blocked_release_rejected(self) -> None:
        blocklist = InMemoryBlocklist()
        blocked = ReleaseCandidate(title="Inception.2010.1080p-BAD")
        blocklist.add(blocked, "failed download")
        rule = not_blocklisted(blocklist)

        result = await rule(ScoredRelease(candidate=blocked, total_score=0))
        assert result.reason is RejectionReason.BLOCKLISTED
        assert result.detail == "failed download"

        other = ScoredRelease.from_score(0, "Inception.2010.1080p-OK")
        assert (await rule(other)).accepted

    def test_release_rules_follow_the_blocklist(self) -> None:
        assert release_rules(None) == []
        assert [name for name, _ in release_rules(InMemoryBlocklist())] == [
            "not_blocklisted"
        ]


class TestChains:
    async def test_movie_chain_stops_at_first_rejection(self, clock: Callable) -> None:
        movie = Movie(id="m", title="M", monitored=False, file=MediaFile("x"))
        result = await movie_chain(clock=clock).evaluate(MovieContext(movie=movie))
        assert result.reason is RejectionReason.NOT_MONITORED

    async def test_movie_chain_accepts_missing_released_movie(
        self, clock: Callable, movie: Movie
    ) -> None:
        assert (await movie_chain(clock=clock).evaluate(MovieContext(movie=movie))).accepted

    async def test_chain_is_idempotent(self, clock: Callable) -> None:
        movie = Movie(id="m", title="M", year=NOW.year, added=NOW - timedelta(days=40))
        chain = movie_chain(clock=clock)
        context = MovieContext(movie=movie)
        assert await chain.evaluate(context) == await chain.evaluate(context)

    async def test_episode_chain_unmonitored_season(
        self, clock: Callable, content_store: Any
    ) -> None:
        store = content_store
        store.add_series(_SHOW, [_episode()], [Season("show", 1, monitored=False)])
        context = EpisodeContext(series=_SHOW, episode=_episode())
        result = await episode_chain(store, clock=clock).evaluate(context)
        assert result.reason is RejectionReason.SEASON_NOT_MONITORED

    async def test_episode_chain_unmonitored_series_checked_first(
        self, clock: Callable, content_store: Any
    ) -> None:
        store = content_store
        paused = Series(id="show", title="Show", monitored=False)
        context = EpisodeContext(series=paused, episode=_episode(monitored=False))
        result = await episode_chain(store, clock=clock).evaluate(context)
        assert result.reason is RejectionReason.SERIES_NOT_MONITORED

    async def test_episode_chain_with_new_episode_window(
        self, clock: Callable, content_store: Any
    ) -> None:
        store = content_store
        chain = episode_chain(store, clock=clock, new_episode_interval_hours=24)
        assert chain.rule_names[-1] == "newly_aired"
        context = EpisodeContext(series=_SHOW, episode=_episode())
        result = await chain.evaluate(context)
        assert result.reason is RejectionReason.AIRED_TOO_LONG_AGO

    async def test_upgrade_chain(self, profile: ScoringProfile, content_store: Any) -> None:
        movie = Movie(id="m", title="M", file=MediaFile("M.720p", score=50))
        chain = upgrade_chain()
        assert (await chain.evaluate(MovieContext(movie=movie, profile=profile))).accepted
        assert "season_monitored" not in chain.rule_names
        assert "season_monitored" in upgrade_chain(content_store).rule_names

    def test_chain_for_selects_variant(self, movie: Movie, content_store: Any) -> None:
        store = content_store
        assert "availability" in chain_for(MovieContext(movie=movie), store).rule_names
        episode_context = EpisodeContext(series=_SHOW, episode=_episode())
        assert "season_monitored" in chain_for(episode_context, store).rule_names
