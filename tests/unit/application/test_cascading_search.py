"""Tests for CascadingSearchUseCase (episode search, then season packs)."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable
from unittest.mock import AsyncMock

import pytest

from curatarr.application.monitoring import ReleaseDelayGate
from curatarr.application.release_selector import ReleaseSelector
from curatarr.application.use_cases import CascadingSearchUseCase
from curatarr.domain.entities import (
    CascadeState,
    DelayProfile,
    Episode,
    EpisodeContext,
    GrabReceipt,
    MediaFile,
    PackPreference,
    ProviderOutcome,
    RejectionReason,
    ReleaseCandidate,
    ScoringProfile,
    SearchQuery,
    SearchStatus,
    Season,
    Series,
)
from curatarr.domain.exceptions import GrabError
from curatarr.infrastructure.persistence.memory_pending_releases import (
    InMemoryPendingReleases,
)

NOW = datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc)

_SHOW = Series(id="show", title="Show")
_PACK_1_8 = "Show.S01E01-E08.1080p.WEB-DL.x264-GRP"


def _episodes(count: int = 10, *, with_files: int = 2) -> list[Episode]:
    return [
        Episode(
            id=f"show-s01e{n:02d}",
            series_id="show",
            season_number=1,
            episode_number=n,
            air_date=NOW - timedelta(days=7),
            file=MediaFile(f"Show.S01E{n:02d}.720p.HDTV.x264-OLD") if n <= with_files else None,
        )
        for n in range(1, count + 1)
    ]


def _pack_only(query: SearchQuery) -> list[ReleaseCandidate]:
    if query.kind == "season":
        return [ReleaseCandidate(title=_PACK_1_8)]
    return []


def _whole_season(query: SearchQuery) -> list[ReleaseCandidate]:
    if query.kind == "season":
        return [ReleaseCandidate(title="Show.S01.1080p.WEB-DL.x264-GRP")]
    return []


def _single_episodes(query: SearchQuery) -> list[ReleaseCandidate]:
    if query.kind != "episode":
        return []
    return [
        ReleaseCandidate(title="Show.S01.1080p.WEB-DL.x264-GRP"),
        ReleaseCandidate(title=f"Show.S01E{query.episode:02d}.1080p.WEB-DL.x264-GRP"),
    ]


@pytest.fixture()
def make_cascade(
    content_store: Any,
    config_store: Any,
    grabber: AsyncMock,
    selector: ReleaseSelector,
    clock: Callable[[], datetime],
) -> Callable[..., CascadingSearchUseCase]:
    def _make(search: Any, **kwargs: Any) -> CascadingSearchUseCase:
        return CascadingSearchUseCase(
            content_store=content_store,
            config_store=config_store,
            search=search,
            grabber=kwargs.pop("grabber", grabber),
            selector=selector,
            clock=clock,
            **kwargs,
        )

    return _make


class TestCascade:
    async def test_season_pack_resolves_missing_episodes(
        self, content_store: Any, make_gateway: Any, make_cascade: Callable, grabber: AsyncMock
    ) -> None:
        content_store.add_series(_SHOW, _episodes())
        gateway = make_gateway(_pack_only)

        summary = await make_cascade(gateway).execute("show")

        statuses = {o.episode: o.status for o in summary.outcomes}
        assert statuses[1] is SearchStatus.SKIPPED
        assert statuses[2] is SearchStatus.SKIPPED
        assert all(statuses[n] is SearchStatus.RESOLVED_BY_PACK for n in range(3, 9))
        assert statuses[9] is SearchStatus.NO_RESULTS
        assert statuses[10] is SearchStatus.NO_RESULTS

        plan = summary.plans[1]
        assert plan.pack_search_attempted is True
        assert plan.pack_grabbed == _PACK_1_8
        assert plan.resolved_episodes == [3, 4, 5, 6, 7, 8]
        assert plan.missing_episodes == [9, 10]
        assert summary.season_packs_grabbed == 1
        assert summary.episodes_resolved_by_pack == 6
        assert summary.state is CascadeState.CYCLE_COMPLETE

        assert [q.kind for q in gateway.queries] == ["episode"] * 8 + ["season"]
        assert gateway.queries[0].term == "Show S01E03"
        assert gateway.queries[-1].term == "Show S01"
        grabber.submit.assert_awaited_once()

    async def test_episodes_are_searched_in_order(
        self, content_store: Any, make_gateway: Any, make_cascade: Callable
    ) -> None:
        content_store.add_series(_SHOW, list(reversed(_episodes(4, with_files=0))))
        gateway = make_gateway()
        await make_cascade(gateway, season_pack_threshold=1.0).execute("show")
        assert [q.episode for q in gateway.queries] == [1, 2, 3, 4]

    async def test_individual_grabs_skip_pack_search(
        self, content_store: Any, make_gateway: Any, make_cascade: Callable, grabber: AsyncMock
    ) -> None:
        content_store.add_series(_SHOW, _episodes())
        gateway = make_gateway(_single_episodes)

        summary = await make_cascade(gateway).execute("show")

        assert summary.episodes_grabbed == 8
        assert summary.plans[1].missing_episodes == []
        assert summary.plans[1].pack_search_attempted is False
        assert all(q.kind == "episode" for q in gateway.queries)
        grabbed = [call.args[0].title for call in grabber.submit.await_args_list]
        assert "Show.S01.1080p.WEB-DL.x264-GRP" not in grabbed
        assert grabbed[0] == "Show.S01E03.1080p.WEB-DL.x264-GRP"

    async def test_below_threshold_no_pack_search(
        self, content_store: Any, make_gateway: Any, make_cascade: Callable
    ) -> None:
        content_store.add_series(_SHOW, _episodes(with_files=5))
        gateway = make_gateway(_pack_only)

        summary = await make_cascade(gateway).execute("show")

        assert summary.plans[1].missing_fraction == 0.5
        assert summary.plans[1].pack_search_attempted is False
        assert all(q.kind == "episode" for q in gateway.queries)

    async def test_grab_failure_does_not_stop_cascade(
        self, content_store: Any, make_gateway: Any, make_cascade: Callable
    ) -> None:
        content_store.add_series(_SHOW, _episodes(4, with_files=0))

        async def _submit(candidate: ReleaseCandidate) -> GrabReceipt:
            if "S01E02" in candidate.title:
                raise GrabError("download client offline")
            return GrabReceipt(title=candidate.title)

        grabber = AsyncMock()
        grabber.submit.side_effect = _submit
        summary = await make_cascade(
            make_gateway(_single_episodes), grabber=grabber, season_pack_threshold=1.0
        ).execute("show")

        statuses = [o.status for o in summary.outcomes]
        assert statuses == [
            SearchStatus.GRABBED,
            SearchStatus.ERROR,
            SearchStatus.GRABBED,
            SearchStatus.GRABBED,
        ]
        assert summary.outcomes[1].error == "download client offline"
        assert summary.plans[1].missing_episodes == [2]

    async def test_unavailable_providers(
        self, content_store: Any, make_gateway: Any, make_cascade: Callable
    ) -> None:
        content_store.add_series(_SHOW, _episodes())
        gateway = make_gateway(outcome=ProviderOutcome.UNAVAILABLE)

        summary = await make_cascade(gateway).execute("show")

        searched = [o for o in summary.outcomes if o.status is not SearchStatus.SKIPPED]
        assert {o.status for o in searched} == {SearchStatus.UNAVAILABLE}
        plan = summary.plans[1]
        assert plan.pack_search_attempted is True
        assert plan.pack_grabbed is None

    async def test_failed_providers_report_error(
        self, content_store: Any, make_gateway: Any, make_cascade: Callable
    ) -> None:
        content_store.add_series(_SHOW, _episodes(1, with_files=0))
        gateway = make_gateway(outcome=ProviderOutcome.FAILED, error="timeout")

        summary = await make_cascade(gateway).execute("show")

        assert summary.outcomes[0].status is SearchStatus.ERROR
        assert summary.outcomes[0].error == "timeout"
        assert summary.episodes_errored == 1

    async def test_failing_pack_search_counts_as_no_pack(
        self, content_store: Any, make_gateway: Any, make_cascade: Callable
    ) -> None:
        content_store.add_series(_SHOW, _episodes())

        def _respond(query: SearchQuery) -> list[ReleaseCandidate]:
            if query.kind == "season":
                raise RuntimeError("indexer exploded")
            return []

        summary = await make_cascade(make_gateway(_respond)).execute("show")

        assert summary.state is CascadeState.CYCLE_COMPLETE
        assert summary.plans[1].pack_search_attempted is True
        assert summary.plans[1].pack_grabbed is None
        assert summary.episodes_resolved_by_pack == 0

    async def test_pack_with_too_few_wanted_episodes_is_passed_over(
        self,
        content_store: Any,
        config_store: Any,
        make_gateway: Any,
        make_cascade: Callable,
        grabber: AsyncMock,
    ) -> None:
        config_store.get_profile.return_value = ScoringProfile(
            id="packs",
            min_score=0,
            min_score_increment=1,
            pack_preference=PackPreference(min_wanted_episodes_percent=90),
        )
        content_store.add_series(_SHOW, _episodes())

        # E01-E08 carries 6 wanted episodes out of 8.
        summary = await make_cascade(make_gateway(_pack_only)).execute("show")

        plan = summary.plans[1]
        assert plan.pack_search_attempted is True
        assert plan.pack_grabbed is None
        assert plan.missing_episodes == [3, 4, 5, 6, 7, 8, 9, 10]
        grabber.submit.assert_not_awaited()

    async def test_whole_season_pack_meets_a_strict_wanted_share(
        self,
        content_store: Any,
        config_store: Any,
        make_gateway: Any,
        make_cascade: Callable,
    ) -> None:
        config_store.get_profile.return_value = ScoringProfile(
            id="packs",
            min_score=0,
            min_score_increment=1,
            pack_preference=PackPreference(min_wanted_episodes_percent=80),
        )
        content_store.add_series(_SHOW, _episodes())

        summary = await make_cascade(make_gateway(_whole_season)).execute("show")

        assert summary.plans[1].pack_grabbed == "Show.S01.1080p.WEB-DL.x264-GRP"
        assert summary.episodes_resolved_by_pack == 8

    async def test_unmonitored_season_is_skipped(
        self, content_store: Any, make_gateway: Any, make_cascade: Callable
    ) -> None:
        content_store.add_series(
            _SHOW, _episodes(3, with_files=0), [Season("show", 1, monitored=False)]
        )
        gateway = make_gateway(_pack_only)

        summary = await make_cascade(gateway).execute("show")

        assert {o.rejection for o in summary.outcomes} == {
            RejectionReason.SEASON_NOT_MONITORED
        }
        assert summary.plans[1].missing_episodes == []
        assert gateway.queries == []

    async def test_unknown_series_is_an_error_outcome(
        self, make_gateway: Any, make_cascade: Callable, grabber: AsyncMock
    ) -> None:
        gateway = make_gateway(_pack_only)

        summary = await make_cascade(gateway).execute("ghost")

        assert summary.state is CascadeState.CYCLE_COMPLETE
        assert "ghost" in (summary.error or "")
        [outcome] = summary.outcomes
        assert outcome.item_id == "ghost"
        assert outcome.status is SearchStatus.ERROR
        assert summary.plans == {}
        assert gateway.queries == []
        grabber.submit.assert_not_awaited()

    async def test_episode_listing_failure_is_an_error_outcome(
        self, content_store: Any, make_gateway: Any, make_cascade: Callable
    ) -> None:
        content_store.add_series(_SHOW, _episodes())
        content_store.list_episodes = AsyncMock(side_effect=RuntimeError("store offline"))

        summary = await make_cascade(make_gateway(_pack_only)).execute("show")

        assert summary.error == "store offline"
        assert summary.episodes_errored == 1

    async def test_failed_eligibility_checks_never_trigger_a_pack(
        self,
        content_store: Any,
        make_gateway: Any,
        make_cascade: Callable,
        grabber: AsyncMock,
    ) -> None:
        content_store.add_series(_SHOW, _episodes(with_files=0))
        content_store.get_season = AsyncMock(side_effect=RuntimeError("season lookup down"))
        gateway = make_gateway(_whole_season)

        summary = await make_cascade(gateway).execute("show")

        assert [o.status for o in summary.outcomes] == [SearchStatus.ERROR] * 10
        assert summary.episodes_errored == 10
        assert summary.plans[1].missing_episodes == []
        assert summary.plans[1].pack_search_attempted is False
        assert gateway.queries == []
        grabber.submit.assert_not_awaited()

    def test_threshold_is_validated(self, make_gateway: Any, make_cascade: Callable) -> None:
        with pytest.raises(ValueError):
            make_cascade(make_gateway(), season_pack_threshold=1.5)


class TestDelayedGrabs:
    @pytest.fixture()
    def pending(self) -> InMemoryPendingReleases:
        return InMemoryPendingReleases()

    @pytest.fixture()
    def gate(
        self, pending: InMemoryPendingReleases, clock: Callable[[], datetime]
    ) -> ReleaseDelayGate:
        return ReleaseDelayGate(
            delay_profile=lambda: DelayProfile(id="wait", torrent_delay_minutes=60),
            pending=pending,
            clock=clock,
        )

    async def test_parked_episodes_do_not_trigger_a_pack(
        self,
        content_store: Any,
        make_gateway: Any,
        make_cascade: Callable,
        grabber: AsyncMock,
        gate: ReleaseDelayGate,
        pending: InMemoryPendingReleases,
    ) -> None:
        content_store.add_series(_SHOW, _episodes())
        gateway = make_gateway(_single_episodes)

        summary = await make_cascade(gateway, delay=gate).execute("show")

        assert summary.episodes_pending == 8
        assert summary.as_dict()["pending"] == 8
        assert summary.plans[1].missing_episodes == []
        assert summary.plans[1].pack_search_attempted is False
        grabber.submit.assert_not_awaited()
        assert sorted(e.key for e in pending.entries())[0] == "series:show:S01E03"
        held = [o for o in summary.outcomes if o.status is SearchStatus.PENDING]
        assert all(o.held_until == NOW + timedelta(minutes=60) for o in held)

    async def test_season_pack_can_be_parked(
        self,
        content_store: Any,
        make_gateway: Any,
        make_cascade: Callable,
        grabber: AsyncMock,
        gate: ReleaseDelayGate,
        pending: InMemoryPendingReleases,
    ) -> None:
        content_store.add_series(_SHOW, _episodes())

        summary = await make_cascade(make_gateway(_pack_only), delay=gate).execute("show")

        plan = summary.plans[1]
        assert plan.pack_pending == _PACK_1_8
        assert plan.pack_grabbed is None
        assert plan.missing_episodes == [3, 4, 5, 6, 7, 8, 9, 10]
        grabber.submit.assert_not_awaited()
        [entry] = pending.entries()
        assert entry.key == "series:show:S01"
        assert entry.series_id == "show"
        assert entry.item_ids == tuple(f"show-s01e{n:02d}" for n in range(3, 9))


class TestSearchEpisode:
    async def test_without_profile_is_skipped(
        self, make_gateway: Any, make_cascade: Callable, formats: list
    ) -> None:
        gateway = make_gateway()
        context = EpisodeContext(series=_SHOW, episode=_episodes(1, with_files=0)[0])
        outcome = await make_cascade(gateway).search_episode(context, formats)
        assert outcome.status is SearchStatus.SKIPPED
        assert outcome.rejection is RejectionReason.NO_PROFILE
        assert gateway.queries == []

    async def test_found_but_not_better_than_held_file(
        self, make_gateway: Any, make_cascade: Callable, formats: list, open_profile: Any
    ) -> None:
        episode = Episode(
            id="e",
            series_id="show",
            season_number=1,
            episode_number=3,
            file=MediaFile("Show.S01E03.2160p.WEB-DL.x265-OLD", score=5000),
        )
        context = EpisodeContext(series=_SHOW, episode=episode, profile=open_profile)
        outcome = await make_cascade(make_gateway(_single_episodes)).search_episode(
            context, formats
        )
        assert outcome.status is SearchStatus.FOUND
        assert outcome.releases_found == 1
        assert outcome.rejection is RejectionReason.IMPROVEMENT_TOO_SMALL
