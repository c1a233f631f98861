"""Port for turning raw releases into scored releases."""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from curatarr.domain.entities.formats import CustomFormat
from curatarr.domain.entities.profile import ScoringProfile
from curatarr.domain.entities.release import MediaType, ReleaseCandidate, ScoredRelease


@runtime_checkable
class ReleaseEvaluatorPort(Protocol):
    """Parse, match and score one release. Pure and synchronous."""

    def evaluate(
        self,
        release: ReleaseCandidate,
        formats: Sequence[CustomFormat],
        profile: ScoringProfile,
        *,
        media: MediaType = "movie",
        episode_count: int | None = None,
    ) -> ScoredRelease: ...
