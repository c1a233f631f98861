"""Direct movie search for missing movies and upgrades."""

from __future__ import annotations

from typing import Sequence

import structlog

from curatarr.application.monitoring.delay import ReleaseDelayGate
from curatarr.application.release_selector import ReleaseSelector
from curatarr.domain.entities.formats import CustomFormat
from curatarr.domain.entities.monitoring import MovieContext, RejectionReason
from curatarr.domain.entities.search import (
    ItemSearchOutcome,
    SearchQuery,
    SearchStatus,
)
from curatarr.domain.ports.grabber import GrabberPort
from curatarr.domain.ports.search_gateway import SearchGatewayPort

log = structlog.get_logger(__name__)


def movie_key(movie_id: str) -> str:
    """Pending-release key for a movie."""
    return f"movie:{movie_id}"


class MovieSearchUseCase:
    """Searches one movie and grabs the best acceptable release.

    The caller gates the movie first (missing-content or upgrade chain).
    When the movie already has a file its score is the baseline, so only a
    sufficient upgrade is grabbed. With a delay gate the chosen release may
    be parked instead, and the outcome is ``pending``.
    """

    def __init__(
        self,
        *,
        search: SearchGatewayPort,
        grabber: GrabberPort,
        selector: ReleaseSelector,
        delay: ReleaseDelayGate | None = None,
    ) -> None:
        self._search = search
        self._grabber = grabber
        self._selector = selector
        self._delay = delay

    async def execute(
        self, context: MovieContext, formats: Sequence[CustomFormat]
    ) -> ItemSearchOutcome:
        movie, profile = context.movie, context.profile
        if profile is None:
            return ItemSearchOutcome(
                item_id=movie.id,
                status=SearchStatus.SKIPPED,
                rejection=RejectionReason.NO_PROFILE,
            )

        term = f"{movie.title} {movie.year}" if movie.year else movie.title
        try:
            search = await self._search.search(
                SearchQuery(kind="movie", term=term, movie_id=movie.id, year=movie.year)
            )
            if search.all_unavailable:
                return ItemSearchOutcome(item_id=movie.id, status=SearchStatus.UNAVAILABLE)
            if search.all_failed:
                return ItemSearchOutcome(
                    item_id=movie.id,
                    status=SearchStatus.ERROR,
                    error="; ".join(search.errors),
                )

            existing = self._selector.existing_score(
                context.existing_file, formats, profile, media="movie"
            )
            decision, scored = await self._selector.choose(
                search.releases,
                formats,
                profile,
                existing_score=existing,
                media="movie",
            )
            if not scored:
                return ItemSearchOutcome(item_id=movie.id, status=SearchStatus.NO_RESULTS)
            if decision is None or not decision.is_actionable:
                return ItemSearchOutcome(
                    item_id=movie.id,
                    status=SearchStatus.FOUND,
                    releases_found=len(scored),
                    rejection=decision.reason if decision else None,
                )

            chosen = decision.chosen()
            held_file = context.existing_file
            if self._delay is not None:
                held = await self._delay.hold(
                    chosen,
                    key=movie_key(movie.id),
                    item_ids=(movie.id,),
                    movie_id=movie.id,
                    replaces=held_file.scene_name if held_file else None,
                )
                if held is not None:
                    return ItemSearchOutcome(
                        item_id=movie.id,
                        status=SearchStatus.PENDING,
                        releases_found=len(scored),
                        held_until=held.process_at,
                    )
            await self._grabber.submit(chosen.candidate)
        except Exception as e:
            log.warning("movie_search_failed", movie_id=movie.id, exc_info=True)
            return ItemSearchOutcome(
                item_id=movie.id, status=SearchStatus.ERROR, error=str(e)
            )

        log.info(
            "movie_grabbed",
            movie_id=movie.id,
            title=chosen.title,
            decision=decision.kind,
            score=chosen.total_score,
            existing_score=existing,
        )
        return ItemSearchOutcome(
            item_id=movie.id,
            status=SearchStatus.GRABBED,
            releases_found=len(scored),
            grabbed_title=chosen.title,
        )
