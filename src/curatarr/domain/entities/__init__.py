from .decision import Decision, DecisionKind
from .delay import DelayProfile, DelayVerdict, PendingRelease, PendingStatus
from .formats import (
    BANNED_SCORE,
    ConditionType,
    CustomFormat,
    FormatCategory,
    FormatCondition,
    MatchedFormat,
)
from .health import CircuitBreakerStatus, CircuitState
from .monitoring import (
    Availability,
    Episode,
    EpisodeContext,
    MediaFile,
    MonitoringContext,
    Movie,
    MovieContext,
    RejectionReason,
    Season,
    Series,
    SpecificationResult,
)
from .profile import (
    DEFAULT_RESOLUTION_ORDER,
    UNBOUNDED,
    PackPreference,
    ScoringProfile,
)
from .release import (
    FormatContribution,
    QualityDescriptor,
    ReleaseAttributes,
    ReleaseCandidate,
    ScoredRelease,
)
from .search import (
    AggregatedSearch,
    BatchSummary,
    CascadeState,
    CascadeSummary,
    GrabReceipt,
    ItemSearchOutcome,
    ProviderOutcome,
    ProviderSearchResult,
    SearchQuery,
    SearchStatus,
    SeasonSearchPlan,
)

__all__ = [
    "AggregatedSearch",
    "Availability",
    "BANNED_SCORE",
    "BatchSummary",
    "CascadeState",
    "CascadeSummary",
    "CircuitBreakerStatus",
    "CircuitState",
    "ConditionType",
    "CustomFormat",
    "DEFAULT_RESOLUTION_ORDER",
    "Decision",
    "DecisionKind",
    "DelayProfile",
    "DelayVerdict",
    "Episode",
    "EpisodeContext",
    "FormatCategory",
    "FormatCondition",
    "FormatContribution",
    "GrabReceipt",
    "ItemSearchOutcome",
    "MatchedFormat",
    "MediaFile",
    "MonitoringContext",
    "Movie",
    "MovieContext",
    "PackPreference",
    "PendingRelease",
    "PendingStatus",
    "ProviderOutcome",
    "ProviderSearchResult",
    "QualityDescriptor",
    "RejectionReason",
    "ReleaseAttributes",
    "ReleaseCandidate",
    "ScoredRelease",
    "ScoringProfile",
    "SearchQuery",
    "SearchStatus",
    "Season",
    "SeasonSearchPlan",
    "Series",
    "SpecificationResult",
    "UNBOUNDED",
]
