"""Tests for MovieSearchUseCase."""

from __future__ import annotations

import dataclasses
from datetime import datetime, timedelta
from typing import Any, Callable
from unittest.mock import AsyncMock

import pytest

from curatarr.application.monitoring import ReleaseDelayGate
from curatarr.application.release_selector import ReleaseSelector
from curatarr.application.use_cases import MovieSearchUseCase
from curatarr.domain.entities import (
    DelayProfile,
    MediaFile,
    Movie,
    MovieContext,
    ProviderOutcome,
    RejectionReason,
    ReleaseCandidate,
    ScoringProfile,
    SearchQuery,
    SearchStatus,
)
from curatarr.domain.exceptions import GrabError
from curatarr.infrastructure.persistence.memory_pending_releases import (
    InMemoryPendingReleases,
)

_RELEASES = [
    ReleaseCandidate(title="Inception.2010.720p.WEB-DL.x264-GRP"),
    ReleaseCandidate(title="Inception.2010.1080p.BluRay.x264-GRP"),
]


def _respond(query: SearchQuery) -> list[ReleaseCandidate]:
    return list(_RELEASES)


@pytest.fixture()
def context(movie: Movie, open_profile: ScoringProfile) -> MovieContext:
    return MovieContext(movie=movie, profile=open_profile)


def _use_case(gateway: Any, grabber: Any, selector: ReleaseSelector) -> MovieSearchUseCase:
    return MovieSearchUseCase(search=gateway, grabber=grabber, selector=selector)


class TestMovieSearch:
    async def test_grabs_best_release(
        self,
        make_gateway: Any,
        grabber: AsyncMock,
        selector: ReleaseSelector,
        context: MovieContext,
        formats: list,
    ) -> None:
        gateway = make_gateway(_respond)
        outcome = await _use_case(gateway, grabber, selector).execute(context, formats)

        assert outcome.status is SearchStatus.GRABBED
        assert outcome.grabbed_title == "Inception.2010.1080p.BluRay.x264-GRP"
        assert outcome.releases_found == 2
        assert gateway.queries[0].term == "Inception 2010"
        assert gateway.queries[0].kind == "movie"
        grabber.submit.assert_awaited_once_with(_RELEASES[1])

    async def test_upgrade_over_held_file(
        self,
        make_gateway: Any,
        grabber: AsyncMock,
        selector: ReleaseSelector,
        context: MovieContext,
        held_file: MediaFile,
        formats: list,
    ) -> None:
        movie = dataclasses.replace(context.movie, file=held_file)
        upgrade = dataclasses.replace(context, movie=movie)
        outcome = await _use_case(make_gateway(_respond), grabber, selector).execute(
            upgrade, formats
        )
        assert outcome.status is SearchStatus.GRABBED
        assert outcome.is_resolved

    async def test_held_file_already_best(
        self,
        make_gateway: Any,
        grabber: AsyncMock,
        selector: ReleaseSelector,
        context: MovieContext,
        formats: list,
    ) -> None:
        movie = dataclasses.replace(
            context.movie, file=MediaFile("Inception.2010.2160p.BluRay.REMUX-OLD", score=2000)
        )
        outcome = await _use_case(make_gateway(_respond), grabber, selector).execute(
            dataclasses.replace(context, movie=movie), formats
        )
        assert outcome.status is SearchStatus.FOUND
        assert outcome.rejection is RejectionReason.IMPROVEMENT_TOO_SMALL
        grabber.submit.assert_not_awaited()

    async def test_no_results(
        self,
        make_gateway: Any,
        grabber: AsyncMock,
        selector: ReleaseSelector,
        context: MovieContext,
        formats: list,
    ) -> None:
        outcome = await _use_case(make_gateway(), grabber, selector).execute(context, formats)
        assert outcome.status is SearchStatus.NO_RESULTS

    async def test_unavailable(
        self,
        make_gateway: Any,
        grabber: AsyncMock,
        selector: ReleaseSelector,
        context: MovieContext,
        formats: list,
    ) -> None:
        gateway = make_gateway(outcome=ProviderOutcome.UNAVAILABLE)
        outcome = await _use_case(gateway, grabber, selector).execute(context, formats)
        assert outcome.status is SearchStatus.UNAVAILABLE

    async def test_grab_error_becomes_error_outcome(
        self,
        make_gateway: Any,
        selector: ReleaseSelector,
        context: MovieContext,
        formats: list,
    ) -> None:
        grabber = AsyncMock()
        grabber.submit.side_effect = GrabError("client offline")
        outcome = await _use_case(make_gateway(_respond), grabber, selector).execute(
            context, formats
        )
        assert outcome.status is SearchStatus.ERROR
        assert outcome.error == "client offline"

    async def test_without_profile(
        self,
        make_gateway: Any,
        grabber: AsyncMock,
        selector: ReleaseSelector,
        movie: Movie,
        formats: list,
    ) -> None:
        gateway = make_gateway(_respond)
        outcome = await _use_case(gateway, grabber, selector).execute(
            MovieContext(movie=movie), formats
        )
        assert outcome.status is SearchStatus.SKIPPED
        assert outcome.rejection is RejectionReason.NO_PROFILE
        assert gateway.queries == []


class TestDelayedGrab:
    @pytest.fixture()
    def pending(self) -> InMemoryPendingReleases:
        return InMemoryPendingReleases()

    def _delayed(
        self,
        gateway: Any,
        grabber: Any,
        selector: ReleaseSelector,
        pending: InMemoryPendingReleases,
        clock: Callable[[], datetime],
    ) -> MovieSearchUseCase:
        gate = ReleaseDelayGate(
            delay_profile=lambda: DelayProfile(id="wait", torrent_delay_minutes=90),
            pending=pending,
            clock=clock,
        )
        return MovieSearchUseCase(
            search=gateway, grabber=grabber, selector=selector, delay=gate
        )

    async def test_chosen_release_is_parked(
        self,
        make_gateway: Any,
        grabber: AsyncMock,
        selector: ReleaseSelector,
        context: MovieContext,
        formats: list,
        pending: InMemoryPendingReleases,
        clock: Callable[[], datetime],
        now: datetime,
    ) -> None:
        use_case = self._delayed(make_gateway(_respond), grabber, selector, pending, clock)

        outcome = await use_case.execute(context, formats)

        assert outcome.status is SearchStatus.PENDING
        assert outcome.held_until == now + timedelta(minutes=90)
        assert outcome.releases_found == 2
        assert not outcome.is_resolved
        grabber.submit.assert_not_awaited()
        [entry] = pending.entries()
        assert entry.key == "movie:movie-1"
        assert entry.title == "Inception.2010.1080p.BluRay.x264-GRP"
        assert entry.replaces is None

    async def test_parked_upgrade_remembers_the_held_file(
        self,
        make_gateway: Any,
        grabber: AsyncMock,
        selector: ReleaseSelector,
        context: MovieContext,
        held_file: MediaFile,
        formats: list,
        pending: InMemoryPendingReleases,
        clock: Callable[[], datetime],
    ) -> None:
        movie = dataclasses.replace(context.movie, file=held_file)
        upgrade = dataclasses.replace(context, movie=movie)
        use_case = self._delayed(make_gateway(_respond), grabber, selector, pending, clock)

        outcome = await use_case.execute(upgrade, formats)

        assert outcome.status is SearchStatus.PENDING
        assert pending.entries()[0].replaces == held_file.scene_name
