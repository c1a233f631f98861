"""Search requests, provider outcomes and cascade summaries."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Literal

from .monitoring import RejectionReason
from .release import ReleaseCandidate

SearchKind = Literal["movie", "episode", "season"]


@dataclass(frozen=True)
class SearchQuery:
    kind: SearchKind
    term: str
    movie_id: str | None = None
    series_id: str | None = None
    season: int | None = None
    episode: int | None = None
    year: int | None = None


class ProviderOutcome(StrEnum):
    OK = "ok"
    FAILED = "failed"
    # short-circuited by an open breaker; the provider was not called
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class ProviderSearchResult:
    provider_id: str
    outcome: ProviderOutcome
    releases: tuple[ReleaseCandidate, ...] = ()
    error: str | None = None
    latency_ms: float | None = None


@dataclass(frozen=True)
class AggregatedSearch:
    """Merged results of one query across all providers."""

    releases: tuple[ReleaseCandidate, ...]
    results: tuple[ProviderSearchResult, ...]

    @property
    def all_unavailable(self) -> bool:
        return bool(self.results) and all(
            r.outcome is ProviderOutcome.UNAVAILABLE for r in self.results
        )

    @property
    def all_failed(self) -> bool:
        """True when no provider answered and at least one raised."""
        return any(r.outcome is ProviderOutcome.FAILED for r in self.results) and not any(
            r.outcome is ProviderOutcome.OK for r in self.results
        )

    @property
    def errors(self) -> list[str]:
        return [r.error for r in self.results if r.error]


@dataclass(frozen=True)
class GrabReceipt:
    """Acknowledgement returned by a grabber."""

    title: str
    download_id: str | None = None


class SearchStatus(StrEnum):
    GRABBED = "grabbed"
    FOUND = "found"
    NO_RESULTS = "no_results"
    UNAVAILABLE = "unavailable"
    ERROR = "error"
    SKIPPED = "skipped"
    RESOLVED_BY_PACK = "resolved_by_pack"
    # held back by a delay profile; the pending-release task grabs it later
    PENDING = "pending"


@dataclass(frozen=True)
class ItemSearchOutcome:
    """Result of searching for one movie or episode."""

    item_id: str
    status: SearchStatus
    releases_found: int = 0
    grabbed_title: str | None = None
    rejection: RejectionReason | None = None
    error: str | None = None
    season: int | None = None
    episode: int | None = None
    held_until: datetime | None = None

    @property
    def is_resolved(self) -> bool:
        return self.status in (SearchStatus.GRABBED, SearchStatus.RESOLVED_BY_PACK)


class CascadeState(StrEnum):
    EPISODE_SEARCH = "episode_search"
    SEASON_PACK_SEARCH = "season_pack_search"
    CYCLE_COMPLETE = "cycle_complete"


@dataclass
class SeasonSearchPlan:
    """Request-scoped bookkeeping for one season during a cascade."""

    season_number: int
    total_episodes: int
    missing_episodes: list[int] = field(default_factory=list)
    pack_search_attempted: bool = False
    pack_grabbed: str | None = None
    resolved_episodes: list[int] = field(default_factory=list)
    pack_pending: str | None = None

    @property
    def missing_fraction(self) -> float:
        if self.total_episodes <= 0:
            return 0.0
        return len(self.missing_episodes) / self.total_episodes


@dataclass
class CascadeSummary:
    series_id: str
    state: CascadeState = CascadeState.EPISODE_SEARCH
    outcomes: list[ItemSearchOutcome] = field(default_factory=list)
    plans: dict[int, SeasonSearchPlan] = field(default_factory=dict)
    # set when the series itself could not be loaded
    error: str | None = None

    @property
    def episodes_searched(self) -> int:
        return sum(1 for o in self.outcomes if o.status is not SearchStatus.SKIPPED)

    @property
    def episodes_grabbed(self) -> int:
        return sum(1 for o in self.outcomes if o.status is SearchStatus.GRABBED)

    @property
    def episodes_resolved_by_pack(self) -> int:
        return sum(1 for o in self.outcomes if o.status is SearchStatus.RESOLVED_BY_PACK)

    @property
    def episodes_pending(self) -> int:
        return sum(1 for o in self.outcomes if o.status is SearchStatus.PENDING)

    @property
    def episodes_errored(self) -> int:
        return sum(1 for o in self.outcomes if o.status is SearchStatus.ERROR)

    @property
    def season_packs_grabbed(self) -> int:
        return sum(1 for p in self.plans.values() if p.pack_grabbed)

    def as_dict(self) -> dict[str, object]:
        return {
            "series_id": self.series_id,
            "state": self.state.value,
            "searched": self.episodes_searched,
            "grabbed": self.episodes_grabbed,
            "resolved_by_pack": self.episodes_resolved_by_pack,
            "pending": self.episodes_pending,
            "errors": self.episodes_errored,
            "season_packs_grabbed": self.season_packs_grabbed,
            "error": self.error,
        }


@dataclass
class BatchSummary:
    """Totals for one run of a monitoring task."""

    task_id: str
    outcomes: list[ItemSearchOutcome] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def add(self, outcome: ItemSearchOutcome) -> None:
        self.outcomes.append(outcome)
        if outcome.status is SearchStatus.ERROR and outcome.error:
            self.errors.append(f"{outcome.item_id}: {outcome.error}")

    @property
    def searched(self) -> int:
        return sum(1 for o in self.outcomes if o.status is not SearchStatus.SKIPPED)

    @property
    def grabbed(self) -> int:
        return sum(1 for o in self.outcomes if o.is_resolved)

    @property
    def pending(self) -> int:
        return sum(1 for o in self.outcomes if o.status is SearchStatus.PENDING)

    def as_dict(self) -> dict[str, object]:
        return {
            "task_id": self.task_id,
            "searched": self.searched,
            "grabbed": self.grabbed,
            "pending": self.pending,
            "errors": len(self.errors),
        }
