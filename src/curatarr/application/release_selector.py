"""Score raw search results and pick the release to grab."""

from __future__ import annotations

from typing import Callable, Sequence

import structlog

from curatarr.application.decision_service import ReleaseDecisionService
from curatarr.application.monitoring.specifications import ReleaseRule, release_rules
from curatarr.domain.entities.decision import Decision
from curatarr.domain.entities.formats import CustomFormat
from curatarr.domain.entities.monitoring import MediaFile
from curatarr.domain.entities.profile import ScoringProfile
from curatarr.domain.entities.release import MediaType, ReleaseCandidate, ScoredRelease
from curatarr.domain.ports.blocklist import BlocklistPort
from curatarr.domain.ports.release_evaluator import ReleaseEvaluatorPort

log = structlog.get_logger(__name__)


class ReleaseSelector:
    """Evaluator + release rules + decision service, in that order.

    The release rules default to ``release_rules(blocklist)``.
    """

    def __init__(
        self,
        evaluator: ReleaseEvaluatorPort,
        decisions: ReleaseDecisionService,
        blocklist: BlocklistPort | None = None,
        *,
        rules: Sequence[tuple[str, ReleaseRule]] | None = None,
    ) -> None:
        self._evaluator = evaluator
        self._decisions = decisions
        self._rules = list(rules) if rules is not None else release_rules(blocklist)

    @property
    def decisions(self) -> ReleaseDecisionService:
        return self._decisions

    @property
    def rule_names(self) -> list[str]:
        return [name for name, _ in self._rules]

    def existing_score(
        self,
        existing: MediaFile | None,
        formats: Sequence[CustomFormat],
        profile: ScoringProfile,
        *,
        media: MediaType,
    ) -> int | None:
        """Score of the held file, scoring its scene name when not stored."""
        if existing is None:
            return None
        if existing.score is not None:
            return existing.score
        scored = self._evaluator.evaluate(
            ReleaseCandidate(title=existing.scene_name, size=existing.size),
            formats,
            profile,
            media=media,
        )
        return scored.total_score

    async def choose(
        self,
        releases: Sequence[ReleaseCandidate],
        formats: Sequence[CustomFormat],
        profile: ScoringProfile,
        *,
        existing_score: int | None,
        media: MediaType,
        episode_count: int | None = None,
        keep: Callable[[ScoredRelease], bool] | None = None,
    ) -> tuple[Decision | None, list[ScoredRelease]]:
        """Return the best decision and the scored releases it was drawn from."""
        scored = [
            self._evaluator.evaluate(
                release, formats, profile, media=media, episode_count=episode_count
            )
            for release in releases
        ]
        if keep is not None:
            scored = [s for s in scored if keep(s)]

        if self._rules:
            scored = [s for s in scored if await self._passes(s)]

        return self._decisions.select_best(existing_score, scored, profile), scored

    async def _passes(self, release: ScoredRelease) -> bool:
        for name, rule in self._rules:
            result = await rule(release)
            if not result.accepted:
                log.debug(
                    "release_rejected",
                    rule=name,
                    title=release.title,
                    reason=result.reason,
                    detail=result.detail,
                )
                return False
        return True
