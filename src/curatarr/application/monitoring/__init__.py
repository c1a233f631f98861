from .delay import ReleaseDelayGate, calculate_delay
from .specifications import (
    ReleaseRule,
    SpecificationChain,
    cutoff_unmet,
    episode_chain,
    estimate_availability,
    movie_chain,
    not_blocklisted,
    release_rules,
    upgrade_chain,
)

__all__ = [
    "ReleaseDelayGate",
    "ReleaseRule",
    "SpecificationChain",
    "calculate_delay",
    "cutoff_unmet",
    "episode_chain",
    "estimate_availability",
    "movie_chain",
    "not_blocklisted",
    "release_rules",
    "upgrade_chain",
]
