"""Release decision service: grab, skip or upgrade."""

from __future__ import annotations

from typing import Sequence

import structlog

from curatarr.domain.entities.decision import Decision
from curatarr.domain.entities.monitoring import RejectionReason
from curatarr.domain.entities.profile import ScoringProfile
from curatarr.domain.entities.release import ScoredRelease
from curatarr.domain.exceptions import DecisionAmbiguityError

log = structlog.get_logger(__name__)


class ReleaseDecisionService:
    """Applies the ordered decision rules to scored releases.

    Rules, first match wins:

    1. banned -> skip
    2. total below ``profile.min_score`` -> skip
    3. size outside the profile bounds -> skip
    4. nothing held yet -> grab
    5. upgrades disabled -> skip
    6. existing score at or above the cutoff -> skip
    7. improvement below ``min_score_increment`` (or not positive) -> skip
    8. otherwise -> upgrade
    """

    def decide(
        self,
        existing_score: int | None,
        candidate: ScoredRelease,
        profile: ScoringProfile,
    ) -> Decision:
        if candidate.is_banned:
            return Decision.skip(
                RejectionReason.BANNED,
                ", ".join(candidate.banned_reasons) or None,
                candidate,
            )

        if candidate.total_score < profile.min_score:
            return Decision.skip(
                RejectionReason.BELOW_MINIMUM,
                f"score {candidate.total_score} < minimum {profile.min_score}",
                candidate,
            )

        if candidate.size_rejected:
            return Decision.skip(
                RejectionReason.SIZE_REJECTED, candidate.size_rejection_reason, candidate
            )

        if existing_score is None:
            return Decision.grab(candidate)

        if not profile.upgrades_allowed:
            return Decision.skip(RejectionReason.UPGRADES_NOT_ALLOWED, candidate=candidate)

        if profile.has_cutoff and existing_score >= profile.upgrade_until_score:
            return Decision.skip(
                RejectionReason.ALREADY_AT_CUTOFF,
                f"existing {existing_score} >= cutoff {profile.upgrade_until_score}",
                candidate,
            )

        improvement = candidate.total_score - existing_score
        if improvement <= 0 or improvement < profile.min_score_increment:
            return Decision.skip(
                RejectionReason.IMPROVEMENT_TOO_SMALL,
                f"delta {improvement} < {max(profile.min_score_increment, 1)}",
                candidate,
            )

        # NaN scores fail every comparison above and land here
        if improvement > 0:
            return Decision.upgrade(improvement, candidate)

        raise DecisionAmbiguityError(
            f"No decision for '{candidate.title}' (existing={existing_score}, "
            f"candidate={candidate.total_score}, profile={profile.id})"
        )

    def rank(
        self, candidates: Sequence[ScoredRelease], profile: ScoringProfile
    ) -> list[ScoredRelease]:
        """Order by score descending, then by the profile's resolution order.

        Unlisted resolutions sort after listed ones; the sort is stable so
        remaining ties keep discovery order.
        """
        unlisted = len(profile.resolution_order)

        def _key(release: ScoredRelease) -> tuple[int, int]:
            rank = profile.resolution_rank(release.resolution)
            return (-release.total_score, unlisted if rank is None else rank)

        return sorted(candidates, key=_key)

    def select_best(
        self,
        existing_score: int | None,
        candidates: Sequence[ScoredRelease],
        profile: ScoringProfile,
    ) -> Decision | None:
        """First actionable decision in rank order.

        When nothing is actionable, the top-ranked candidate's skip decision
        is returned; None when there are no candidates at all.
        """
        first_skip: Decision | None = None
        for candidate in self.rank(candidates, profile):
            decision = self.decide(existing_score, candidate, profile)
            if decision.is_actionable:
                log.debug(
                    "release_selected",
                    title=candidate.title,
                    decision=decision.kind,
                    score=candidate.total_score,
                )
                return decision
            if first_skip is None:
                first_skip = decision
        return first_skip
