"""Batch monitoring tasks: missing content, upgrades, new episodes and
pending releases.

Each task runs under a ``TaskRunGuard`` so at most one run per task id is
in progress. Failures are caught per item and recorded as ``error``
outcomes; a task always returns a ``BatchSummary``.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Sequence

import structlog

from curatarr.application.monitoring.contexts import with_profile
from curatarr.application.monitoring.specifications import (
    SpecificationChain,
    episode_chain,
    movie_chain,
    upgrade_chain,
)
from curatarr.application.task_guard import TaskRunGuard
from curatarr.application.use_cases.cascading_search import CascadingSearchUseCase
from curatarr.application.use_cases.movie_search import MovieSearchUseCase
from curatarr.domain.entities.delay import PendingRelease, PendingStatus
from curatarr.domain.entities.formats import CustomFormat
from curatarr.domain.entities.monitoring import (
    EpisodeContext,
    MonitoringContext,
    MovieContext,
    RejectionReason,
)
from curatarr.domain.entities.search import (
    BatchSummary,
    ItemSearchOutcome,
    SearchStatus,
)
from curatarr.domain.exceptions import GrabError, NotFoundError
from curatarr.domain.ports.blocklist import BlocklistPort
from curatarr.domain.ports.config_store import ConfigStorePort
from curatarr.domain.ports.content_store import ContentStorePort
from curatarr.domain.ports.grabber import GrabberPort
from curatarr.domain.ports.pending_releases import PendingReleasePort

log = structlog.get_logger(__name__)

MISSING_CONTENT_TASK = "missing"
UPGRADE_TASK = "upgrade"
NEW_EPISODE_TASK = "new_episodes"
PENDING_RELEASE_TASK = "pending_releases"

DEFAULT_NEW_EPISODE_INTERVAL_HOURS = 24.0
# entries older than this are dropped whatever their status
PENDING_MAX_AGE = timedelta(hours=72)
# a failed grab keeps the release out only for a day
FAILED_GRAB_BLOCK_TTL = timedelta(hours=24)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MonitoringTasks:
    """The periodic monitoring tasks."""

    def __init__(
        self,
        *,
        content_store: ContentStorePort,
        config_store: ConfigStorePort,
        movie_search: MovieSearchUseCase,
        cascade: CascadingSearchUseCase,
        guard: TaskRunGuard,
        new_episode_interval_hours: float = DEFAULT_NEW_EPISODE_INTERVAL_HOURS,
        pending: PendingReleasePort | None = None,
        grabber: GrabberPort | None = None,
        blocklist: BlocklistPort | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._content = content_store
        self._config = config_store
        self._movie_search = movie_search
        self._cascade = cascade
        self._guard = guard
        self._new_episode_hours = new_episode_interval_hours
        self._pending = pending
        self._grabber = grabber
        self._blocklist = blocklist
        self._clock = clock

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    async def run_missing_content(self) -> BatchSummary:
        """Search missing movies, then cascade through every series."""
        async with self._guard.run(MISSING_CONTENT_TASK) as run:
            summary = BatchSummary(task_id=MISSING_CONTENT_TASK)
            formats = self._config.get_custom_formats()
            await self._search_movies(summary, movie_chain(clock=self._clock), formats)

            for series_id in await self._content.list_series_ids():
                try:
                    cascade = await self._cascade.execute(series_id)
                except Exception as e:
                    log.warning("series_search_failed", series_id=series_id, exc_info=True)
                    summary.add(
                        ItemSearchOutcome(
                            item_id=series_id, status=SearchStatus.ERROR, error=str(e)
                        )
                    )
                    continue
                for outcome in cascade.outcomes:
                    summary.add(outcome)

            run.results = summary.as_dict()
            run.errors = list(summary.errors)
            return summary

    async def run_upgrades(self) -> BatchSummary:
        """Search better releases for items below their profile's cutoff."""
        async with self._guard.run(UPGRADE_TASK) as run:
            summary = BatchSummary(task_id=UPGRADE_TASK)
            formats = self._config.get_custom_formats()
            chain = upgrade_chain(self._content)
            await self._search_movies(summary, chain, formats)
            await self._search_episodes(summary, chain, formats)
            run.results = summary.as_dict()
            run.errors = list(summary.errors)
            return summary

    async def run_new_episodes(self) -> BatchSummary:
        """Search missing episodes that aired within the configured window."""
        async with self._guard.run(NEW_EPISODE_TASK) as run:
            summary = BatchSummary(task_id=NEW_EPISODE_TASK)
            formats = self._config.get_custom_formats()
            chain = episode_chain(
                self._content,
                clock=self._clock,
                new_episode_interval_hours=self._new_episode_hours,
            )
            await self._search_episodes(summary, chain, formats)
            run.results = summary.as_dict()
            run.errors = list(summary.errors)
            return summary

    async def run_pending_releases(self) -> BatchSummary:
        """Grab parked releases whose delay has run out.

        An entry is expired instead when its items are gone, hold a newer
        file, are no longer monitored, or the release got blocklisted. A
        failed grab blocklists the release for a day. Old entries are
        cleaned up at the end of each run.
        """
        async with self._guard.run(PENDING_RELEASE_TASK) as run:
            summary = BatchSummary(task_id=PENDING_RELEASE_TASK)
            dropped = 0
            pending = self._pending
            if pending is not None:
                now = self._clock()
                for entry in await pending.ready(now):
                    summary.add(
                        await self._guarded_item(
                            entry.key,
                            lambda entry=entry: self._process_pending(pending, entry),
                        )
                    )
                dropped = await pending.cleanup(PENDING_MAX_AGE, now)
            run.results = {**summary.as_dict(), "dropped": dropped}
            run.errors = list(summary.errors)
            return summary

    # ------------------------------------------------------------------
    # Item loops
    # ------------------------------------------------------------------

    async def _search_movies(
        self,
        summary: BatchSummary,
        chain: SpecificationChain,
        formats: Sequence[CustomFormat],
    ) -> None:
        for movie_id in await self._content.list_movie_ids():

            async def _search(movie_id: str = movie_id) -> ItemSearchOutcome:
                context = await self._content.get_monitoring_context(movie_id)
                if not isinstance(context, MovieContext):
                    raise TypeError(f"'{movie_id}' is not a movie")
                context = with_profile(context, self._config)
                verdict = await chain.evaluate(context)
                if not verdict.accepted:
                    return ItemSearchOutcome(
                        item_id=movie_id,
                        status=SearchStatus.SKIPPED,
                        rejection=verdict.reason,
                    )
                return await self._movie_search.execute(context, formats)

            summary.add(await self._guarded_item(movie_id, _search))

    async def _search_episodes(
        self,
        summary: BatchSummary,
        chain: SpecificationChain,
        formats: Sequence[CustomFormat],
    ) -> None:
        for series_id in await self._content.list_series_ids():
            try:
                series = await self._content.get_series(series_id)
                profile = self._config.get_profile(series.profile_id)
                episodes = sorted(
                    await self._content.list_episodes(series_id),
                    key=lambda e: (e.season_number, e.episode_number),
                )
            except Exception as e:
                log.warning("series_lookup_failed", series_id=series_id, exc_info=True)
                summary.add(
                    ItemSearchOutcome(
                        item_id=series_id, status=SearchStatus.ERROR, error=str(e)
                    )
                )
                continue

            for episode in episodes:
                context = EpisodeContext(series=series, episode=episode, profile=profile)

                async def _search(context: EpisodeContext = context) -> ItemSearchOutcome:
                    verdict = await chain.evaluate(context)
                    if not verdict.accepted:
                        return ItemSearchOutcome(
                            item_id=context.item_id,
                            status=SearchStatus.SKIPPED,
                            rejection=verdict.reason,
                            season=context.episode.season_number,
                            episode=context.episode.episode_number,
                        )
                    return await self._cascade.search_episode(context, formats)

                summary.add(await self._guarded_item(episode.id, _search))

    # ------------------------------------------------------------------
    # Pending releases
    # ------------------------------------------------------------------

    async def _process_pending(
        self, pending: PendingReleasePort, entry: PendingRelease
    ) -> ItemSearchOutcome:
        reason, detail = await self._obsolete(entry)
        if reason is not None:
            await pending.mark(entry.id, PendingStatus.EXPIRED)
            log.info(
                "pending_release_expired",
                pending_id=entry.id,
                title=entry.title,
                reason=reason,
                detail=detail,
            )
            return ItemSearchOutcome(
                item_id=entry.key, status=SearchStatus.SKIPPED, rejection=reason
            )

        if self._grabber is None:
            raise GrabError("no grabber configured for pending releases")
        try:
            await self._grabber.submit(entry.release.candidate)
        except GrabError as e:
            log.warning(
                "pending_release_grab_failed",
                pending_id=entry.id,
                title=entry.title,
                exc_info=True,
            )
            if self._blocklist is not None:
                await self._blocklist.block(
                    entry.release.candidate, "download_failed", ttl=FAILED_GRAB_BLOCK_TTL
                )
            await pending.mark(entry.id, PendingStatus.EXPIRED)
            return ItemSearchOutcome(
                item_id=entry.key, status=SearchStatus.ERROR, error=str(e)
            )

        await pending.mark(entry.id, PendingStatus.GRABBED)
        log.info(
            "pending_release_grabbed",
            pending_id=entry.id,
            title=entry.title,
            score=entry.score,
        )
        return ItemSearchOutcome(
            item_id=entry.key, status=SearchStatus.GRABBED, grabbed_title=entry.title
        )

    async def _obsolete(
        self, entry: PendingRelease
    ) -> tuple[RejectionReason | None, str | None]:
        """Why *entry* should no longer be grabbed, if it should not."""
        contexts: list[MonitoringContext] = []
        for item_id in entry.item_ids:
            try:
                contexts.append(await self._content.get_monitoring_context(item_id))
            except NotFoundError:
                continue
        if not contexts:
            return RejectionReason.ITEM_REMOVED, None

        if all(_holds_newer_file(c, entry.replaces) for c in contexts):
            return RejectionReason.ALREADY_HAS_FILE, None
        if not any(_monitored(c) for c in contexts):
            return RejectionReason.NOT_MONITORED, None

        if self._blocklist is not None:
            blocked = await self._blocklist.find(entry.release.candidate)
            if blocked is not None:
                return RejectionReason.BLOCKLISTED, blocked
        return None, None

    @staticmethod
    async def _guarded_item(
        item_id: str, search: Callable[[], Awaitable[ItemSearchOutcome]]
    ) -> ItemSearchOutcome:
        try:
            return await search()
        except Exception as e:
            log.warning("item_search_failed", item_id=item_id, exc_info=True)
            return ItemSearchOutcome(item_id=item_id, status=SearchStatus.ERROR, error=str(e))


def _holds_newer_file(context: MonitoringContext, replaces: str | None) -> bool:
    held = context.existing_file
    return held is not None and held.scene_name != replaces


def _monitored(context: MonitoringContext) -> bool:
    if isinstance(context, MovieContext):
        return context.movie.monitored
    return context.series.monitored and context.episode.monitored
