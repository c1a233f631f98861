"""Cascading series search: individual episodes first, then season packs."""

from __future__ import annotations

import dataclasses
from collections import Counter
from datetime import datetime, timezone
from typing import Callable, Sequence

import structlog

from curatarr.application.monitoring.delay import ReleaseDelayGate
from curatarr.application.monitoring.specifications import (
    SpecificationChain,
    episode_chain,
)
from curatarr.application.release_selector import ReleaseSelector
from curatarr.domain.entities.formats import CustomFormat
from curatarr.domain.entities.monitoring import (
    Episode,
    EpisodeContext,
    RejectionReason,
    Series,
)
from curatarr.domain.entities.profile import ScoringProfile
from curatarr.domain.entities.release import ScoredRelease
from curatarr.domain.entities.search import (
    CascadeState,
    CascadeSummary,
    ItemSearchOutcome,
    SearchQuery,
    SearchStatus,
    SeasonSearchPlan,
)
from curatarr.domain.ports.config_store import ConfigStorePort
from curatarr.domain.ports.content_store import ContentStorePort
from curatarr.domain.ports.grabber import GrabberPort
from curatarr.domain.ports.search_gateway import SearchGatewayPort

log = structlog.get_logger(__name__)

DEFAULT_SEASON_PACK_THRESHOLD = 0.6


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _episode_tag(season: int, episode: int) -> str:
    return f"S{season:02d}E{episode:02d}"


def episode_key(series_id: str, season: int, episode: int) -> str:
    """Pending-release key for one episode."""
    return f"series:{series_id}:{_episode_tag(season, episode)}"


def season_key(series_id: str, season: int) -> str:
    """Pending-release key for a season pack."""
    return f"series:{series_id}:S{season:02d}"


def _still_missing(outcome: ItemSearchOutcome) -> bool:
    # a parked release counts as found; it must not pull in a pack
    return not outcome.is_resolved and outcome.status is not SearchStatus.PENDING


class CascadingSearchUseCase:
    """Searches the missing episodes of one series.

    Flow:
        1. Gate every episode through the episode specification chain
        2. Search eligible episodes one by one, ascending (season, episode)
        3. Seasons whose still-missing fraction exceeds the threshold get a
           season pack search
        4. A grabbed pack resolves the missing episodes it covers

    With a delay gate any chosen release may be parked instead of grabbed;
    a parked episode counts as found when deciding on packs.

    One episode failing never stops the cascade; a failing pack search
    counts as "no pack available".
    """

    def __init__(
        self,
        *,
        content_store: ContentStorePort,
        config_store: ConfigStorePort,
        search: SearchGatewayPort,
        grabber: GrabberPort,
        selector: ReleaseSelector,
        season_pack_threshold: float = DEFAULT_SEASON_PACK_THRESHOLD,
        delay: ReleaseDelayGate | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not 0.0 <= season_pack_threshold <= 1.0:
            raise ValueError("season_pack_threshold must be between 0 and 1")
        self._content = content_store
        self._config = config_store
        self._search = search
        self._grabber = grabber
        self._selector = selector
        self._threshold = season_pack_threshold
        self._delay = delay
        self._clock = clock

    async def execute(self, series_id: str) -> CascadeSummary:
        """Run one cascade cycle. Never raises; failures become outcomes."""
        summary = CascadeSummary(series_id=series_id)
        try:
            series = await self._content.get_series(series_id)
            profile = self._config.get_profile(series.profile_id)
            formats = self._config.get_custom_formats()
            episodes = sorted(
                await self._content.list_episodes(series_id),
                key=lambda e: (e.season_number, e.episode_number),
            )
        except Exception as e:
            log.warning("cascade_setup_failed", series_id=series_id, exc_info=True)
            summary.error = str(e) or type(e).__name__
            summary.outcomes.append(
                ItemSearchOutcome(
                    item_id=series_id, status=SearchStatus.ERROR, error=summary.error
                )
            )
            summary.state = CascadeState.CYCLE_COMPLETE
            return summary
        chain = episode_chain(self._content, clock=self._clock)

        log.info(
            "cascade_started",
            series_id=series_id,
            episodes=len(episodes),
            profile=profile.id,
        )

        # --- Episode search ---
        still_missing: dict[int, list[int]] = {}
        for episode in episodes:
            context = EpisodeContext(series=series, episode=episode, profile=profile)
            outcome, eligible = await self._evaluate_episode(context, chain, formats)
            summary.outcomes.append(outcome)
            if eligible and _still_missing(outcome):
                still_missing.setdefault(episode.season_number, []).append(
                    episode.episode_number
                )

        season_sizes = Counter(e.season_number for e in episodes)
        for season_number in sorted(season_sizes):
            summary.plans[season_number] = SeasonSearchPlan(
                season_number=season_number,
                total_episodes=season_sizes[season_number],
                missing_episodes=still_missing.get(season_number, []),
            )

        # --- Season pack search ---
        pack_plans = [
            plan
            for plan in summary.plans.values()
            if plan.missing_episodes and plan.missing_fraction > self._threshold
        ]
        if pack_plans:
            summary.state = CascadeState.SEASON_PACK_SEARCH
            for plan in pack_plans:
                await self._search_season_pack(series, plan, profile, formats, summary)

        summary.state = CascadeState.CYCLE_COMPLETE
        log.info("cascade_completed", **summary.as_dict())
        return summary

    # ------------------------------------------------------------------
    # Episodes
    # ------------------------------------------------------------------

    async def _evaluate_episode(
        self,
        context: EpisodeContext,
        chain: SpecificationChain,
        formats: Sequence[CustomFormat],
    ) -> tuple[ItemSearchOutcome, bool]:
        """Gate then search one episode. The flag is True only when the chain
        accepted it, so failed or rejected checks never reach a season pack."""
        episode = context.episode
        try:
            verdict = await chain.evaluate(context)
        except Exception as e:
            log.warning(
                "cascade_episode_check_failed",
                episode_id=episode.id,
                exc_info=True,
            )
            return self._outcome(episode, SearchStatus.ERROR, error=str(e)), False
        if not verdict.accepted:
            return (
                self._outcome(episode, SearchStatus.SKIPPED, rejection=verdict.reason),
                False,
            )
        return await self.search_episode(context, formats), True

    async def search_episode(
        self, context: EpisodeContext, formats: Sequence[CustomFormat]
    ) -> ItemSearchOutcome:
        """Search one already-eligible episode and grab the best release.

        Errors are caught here and reported as an ``error`` outcome.
        """
        series, episode, profile = context.series, context.episode, context.profile
        if profile is None:
            return self._outcome(
                episode, SearchStatus.SKIPPED, rejection=RejectionReason.NO_PROFILE
            )

        season, number = episode.season_number, episode.episode_number
        try:
            search = await self._search.search(
                SearchQuery(
                    kind="episode",
                    term=f"{series.title} {_episode_tag(season, number)}",
                    series_id=series.id,
                    season=season,
                    episode=number,
                )
            )
            if search.all_unavailable:
                return self._outcome(episode, SearchStatus.UNAVAILABLE)
            if search.all_failed:
                return self._outcome(
                    episode, SearchStatus.ERROR, error="; ".join(search.errors)
                )

            def _single_episode(s: ScoredRelease) -> bool:
                attrs = s.attributes
                return attrs is not None and not attrs.is_pack and attrs.covers(season, number)

            existing = self._selector.existing_score(
                context.existing_file, formats, profile, media="episode"
            )
            decision, scored = await self._selector.choose(
                search.releases,
                formats,
                profile,
                existing_score=existing,
                media="episode",
                keep=_single_episode,
            )
            if not scored:
                return self._outcome(episode, SearchStatus.NO_RESULTS)
            if decision is None or not decision.is_actionable:
                return self._outcome(
                    episode,
                    SearchStatus.FOUND,
                    releases_found=len(scored),
                    rejection=decision.reason if decision else None,
                )

            chosen = decision.chosen()
            if self._delay is not None:
                held = await self._delay.hold(
                    chosen,
                    key=episode_key(series.id, season, number),
                    item_ids=(episode.id,),
                    series_id=series.id,
                    replaces=episode.file.scene_name if episode.file else None,
                )
                if held is not None:
                    return self._outcome(
                        episode,
                        SearchStatus.PENDING,
                        releases_found=len(scored),
                        held_until=held.process_at,
                    )
            await self._grabber.submit(chosen.candidate)
        except Exception as e:
            log.warning(
                "cascade_episode_search_failed",
                series_id=series.id,
                episode=_episode_tag(season, number),
                exc_info=True,
            )
            return self._outcome(episode, SearchStatus.ERROR, error=str(e))

        log.info(
            "episode_grabbed",
            series_id=series.id,
            episode=_episode_tag(season, number),
            title=chosen.title,
            score=chosen.total_score,
        )
        return self._outcome(
            episode,
            SearchStatus.GRABBED,
            releases_found=len(scored),
            grabbed_title=chosen.title,
        )

    # ------------------------------------------------------------------
    # Season packs
    # ------------------------------------------------------------------

    async def _search_season_pack(
        self,
        series: Series,
        plan: SeasonSearchPlan,
        profile: ScoringProfile,
        formats: Sequence[CustomFormat],
        summary: CascadeSummary,
    ) -> None:
        season = plan.season_number
        missing = set(plan.missing_episodes)
        plan.pack_search_attempted = True
        pref = profile.pack_preference
        min_percent = pref.min_wanted_episodes_percent if pref and pref.enabled else 0

        def _covered(s: ScoredRelease) -> list[int]:
            attrs = s.attributes
            return sorted(e for e in missing if attrs is not None and attrs.covers(season, e))

        def _covers_missing(s: ScoredRelease) -> bool:
            attrs = s.attributes
            if attrs is None or not attrs.is_pack:
                return False
            wanted = len(_covered(s))
            if wanted == 0:
                return False
            # Episodes the pack carries for this season.
            in_season = len(attrs.episodes) if attrs.episodes else plan.total_episodes
            return wanted * 100 >= min_percent * in_season

        try:
            search = await self._search.search(
                SearchQuery(
                    kind="season",
                    term=f"{series.title} S{season:02d}",
                    series_id=series.id,
                    season=season,
                )
            )
            decision, _ = await self._selector.choose(
                search.releases,
                formats,
                profile,
                existing_score=None,
                media="episode",
                episode_count=plan.total_episodes,
                keep=_covers_missing,
            )
            if decision is None or not decision.is_actionable:
                log.info("season_pack_not_found", series_id=series.id, season=season)
                return
            pack = decision.chosen()
            if self._delay is not None:
                covered = _covered(pack)
                wanted = [
                    o.item_id
                    for o in summary.outcomes
                    if o.season == season and o.episode in covered
                ]
                held = await self._delay.hold(
                    pack,
                    key=season_key(series.id, season),
                    item_ids=wanted,
                    series_id=series.id,
                )
                if held is not None:
                    plan.pack_pending = held.title
                    log.info(
                        "season_pack_delayed",
                        series_id=series.id,
                        season=season,
                        title=held.title,
                    )
                    return
            await self._grabber.submit(pack.candidate)
        except Exception:
            log.warning(
                "cascade_season_pack_failed",
                series_id=series.id,
                season=season,
                exc_info=True,
            )
            return

        covered = _covered(pack)
        plan.pack_grabbed = pack.title
        plan.resolved_episodes = covered
        plan.missing_episodes = [e for e in plan.missing_episodes if e not in covered]

        for i, outcome in enumerate(summary.outcomes):
            if outcome.season == season and outcome.episode in covered:
                summary.outcomes[i] = dataclasses.replace(
                    outcome,
                    status=SearchStatus.RESOLVED_BY_PACK,
                    grabbed_title=pack.title,
                    error=None,
                )

        log.info(
            "season_pack_grabbed",
            series_id=series.id,
            season=season,
            title=pack.title,
            resolved=len(covered),
            still_missing=len(plan.missing_episodes),
        )

    @staticmethod
    def _outcome(
        episode: Episode, status: SearchStatus, **kwargs: object
    ) -> ItemSearchOutcome:
        return ItemSearchOutcome(
            item_id=episode.id,
            status=status,
            season=episode.season_number,
            episode=episode.episode_number,
            **kwargs,  # type: ignore[arg-type]
        )
