"""Release decisions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from ..exceptions import DecisionAmbiguityError
from .monitoring import RejectionReason
from .release import ScoredRelease


class DecisionKind(StrEnum):
    GRAB = "grab"
    SKIP = "skip"
    UPGRADE = "upgrade"


@dataclass(frozen=True)
class Decision:
    kind: DecisionKind
    reason: RejectionReason | None = None
    detail: str | None = None
    candidate: ScoredRelease | None = None

    def chosen(self) -> ScoredRelease:
        """The release an actionable decision acts on."""
        if self.candidate is None:
            raise DecisionAmbiguityError(f"{self.kind.value} decision names no release")
        return self.candidate

    @property
    def is_actionable(self) -> bool:
        return self.kind is not DecisionKind.SKIP

    @classmethod
    def grab(cls, candidate: ScoredRelease | None = None) -> Decision:
        return cls(kind=DecisionKind.GRAB, candidate=candidate)

    @classmethod
    def upgrade(
        cls, improvement: int, candidate: ScoredRelease | None = None
    ) -> Decision:
        return cls(
            kind=DecisionKind.UPGRADE,
            detail=f"improves score by {improvement}",
            candidate=candidate,
        )

    @classmethod
    def skip(
        cls,
        reason: RejectionReason,
        detail: str | None = None,
        candidate: ScoredRelease | None = None,
    ) -> Decision:
        return cls(
            kind=DecisionKind.SKIP, reason=reason, detail=detail, candidate=candidate
        )
