"""Shared test fixtures for the Curatarr test suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Sequence
from unittest.mock import AsyncMock, MagicMock

import pytest

from curatarr.application.decision_service import ReleaseDecisionService
from curatarr.application.release_selector import ReleaseSelector
from curatarr.domain.entities import (
    AggregatedSearch,
    Episode,
    EpisodeContext,
    GrabReceipt,
    MediaFile,
    Movie,
    MovieContext,
    ProviderOutcome,
    ProviderSearchResult,
    ReleaseCandidate,
    ScoringProfile,
    SearchQuery,
    Season,
    Series,
)
from curatarr.domain.exceptions import NotFoundError
from curatarr.infrastructure.scoring import ScoringProfileEvaluator
from curatarr.infrastructure.scoring.defaults import DEFAULT_FORMATS

NOW = datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Fakes for ports
# ---------------------------------------------------------------------------


class FakeContentStore:
    """In-memory ContentStorePort."""

    def __init__(self) -> None:
        self.movies: dict[str, Movie] = {}
        self.series: dict[str, Series] = {}
        self.seasons: dict[tuple[str, int], Season] = {}
        self.episodes: dict[str, Episode] = {}

    def add_movie(self, movie: Movie) -> Movie:
        self.movies[movie.id] = movie
        return movie

    def add_series(
        self,
        series: Series,
        episodes: Sequence[Episode] = (),
        seasons: Sequence[Season] = (),
    ) -> Series:
        self.series[series.id] = series
        for episode in episodes:
            self.episodes[episode.id] = episode
        for season in seasons:
            self.seasons[(season.series_id, season.season_number)] = season
        return series

    async def get_monitoring_context(self, item_id: str) -> MovieContext | EpisodeContext:
        if item_id in self.movies:
            return MovieContext(movie=self.movies[item_id])
        if item_id in self.episodes:
            episode = self.episodes[item_id]
            return EpisodeContext(series=self.series[episode.series_id], episode=episode)
        raise NotFoundError(f"Item '{item_id}' not found")

    async def get_series(self, series_id: str) -> Series:
        try:
            return self.series[series_id]
        except KeyError:
            raise NotFoundError(f"Series '{series_id}' not found") from None

    async def get_season(self, series_id: str, season_number: int) -> Season | None:
        return self.seasons.get((series_id, season_number))

    async def list_episodes(self, series_id: str) -> list[Episode]:
        return [e for e in self.episodes.values() if e.series_id == series_id]

    async def list_movie_ids(self) -> list[str]:
        return list(self.movies)

    async def list_series_ids(self) -> list[str]:
        return list(self.series)


class FakeSearchGateway:
    """SearchGatewayPort answering from a callable, recording queries."""

    def __init__(
        self,
        respond: Callable[[SearchQuery], Sequence[ReleaseCandidate]] | None = None,
        *,
        outcome: ProviderOutcome = ProviderOutcome.OK,
        error: str | None = None,
    ) -> None:
        self._respond = respond or (lambda query: [])
        self._outcome = outcome
        self._error = error
        self.queries: list[SearchQuery] = []

    @property
    def provider_ids(self) -> list[str]:
        return ["fake"]

    async def search(self, query: SearchQuery) -> AggregatedSearch:
        self.queries.append(query)
        if self._outcome is not ProviderOutcome.OK:
            result = ProviderSearchResult(
                provider_id="fake", outcome=self._outcome, error=self._error
            )
            return AggregatedSearch(releases=(), results=(result,))
        releases = tuple(self._respond(query))
        result = ProviderSearchResult(
            provider_id="fake", outcome=ProviderOutcome.OK, releases=releases
        )
        return AggregatedSearch(releases=releases, results=(result,))


# ---------------------------------------------------------------------------
# Domain entity fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def now() -> datetime:
    return NOW


@pytest.fixture()
def clock() -> Callable[[], datetime]:
    return lambda: NOW


@pytest.fixture()
def profile() -> ScoringProfile:
    """Profile from the upgrade scenario: floor 40, step 10, cutoff 80."""
    return ScoringProfile(
        id="test",
        name="Test",
        min_score=40,
        min_score_increment=10,
        upgrade_until_score=80,
    )


@pytest.fixture()
def open_profile() -> ScoringProfile:
    """Permissive profile used for search flows over the built-in formats."""
    return ScoringProfile(id="open", name="Open", min_score=0, min_score_increment=1)


@pytest.fixture()
def formats() -> list:
    return list(DEFAULT_FORMATS)


@pytest.fixture()
def movie() -> Movie:
    return Movie(
        id="movie-1",
        title="Inception",
        year=2010,
        added=NOW - timedelta(days=400),
        monitored=True,
    )


@pytest.fixture()
def held_file() -> MediaFile:
    return MediaFile(scene_name="Inception.2010.720p.HDTV.x264-OLD", score=800)


# ---------------------------------------------------------------------------
# Port fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def content_store() -> FakeContentStore:
    return FakeContentStore()


@pytest.fixture()
def config_store(open_profile: ScoringProfile, formats: list) -> MagicMock:
    store = MagicMock()
    store.get_profile.return_value = open_profile
    store.list_profiles.return_value = [open_profile]
    store.get_custom_formats.return_value = formats
    store.get_delay_profile.return_value = None
    return store


@pytest.fixture()
def grabber() -> AsyncMock:
    mock = AsyncMock()
    mock.submit.side_effect = lambda candidate: GrabReceipt(
        title=candidate.title, download_id="dl-1"
    )
    return mock


@pytest.fixture()
def selector() -> ReleaseSelector:
    return ReleaseSelector(ScoringProfileEvaluator(), ReleaseDecisionService())


@pytest.fixture()
def make_gateway() -> type[FakeSearchGateway]:
    return FakeSearchGateway
