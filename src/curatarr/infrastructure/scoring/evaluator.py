"""Scoring profile evaluation.

Turns a release plus its matched custom formats into a ``ScoredRelease``
under one profile: summed format scores, hard-block bans, resolution tag
and size bounds. Deterministic and side-effect free.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Sequence

from curatarr.domain.entities.formats import (
    CustomFormat,
    FormatCategory,
    MatchedFormat,
)
from curatarr.domain.entities.profile import ScoringProfile
from curatarr.domain.entities.release import (
    FormatContribution,
    MediaType,
    ReleaseAttributes,
    ReleaseCandidate,
    ScoredRelease,
)

from .matcher import CustomFormatMatcher
from .release_parser import parse_release

# Only the first matching HDR format (in this order) contributes.
HDR_PRIORITY: tuple[str, ...] = (
    "hdr-dolby-vision",
    "hdr-dolby-vision-no-fallback",
    "hdr-hdr10plus",
    "hdr-hdr10",
    "hdr10-missing",
    "hdr-generic",
    "hdr-hlg",
    "hdr-pq",
    "hdr-missing",
    "hdr-sdr",
)
_UNLISTED_HDR_PRIORITY = 100

PACK_BONUS_ID = "pack-bonus"

_BYTES_PER_GB = 1024**3
_BYTES_PER_MB = 1024**2


def _hdr_priority(fmt: CustomFormat) -> int:
    try:
        return HDR_PRIORITY.index(fmt.id)
    except ValueError:
        return _UNLISTED_HDR_PRIORITY


def apply_hdr_exclusivity(matched: Sequence[MatchedFormat]) -> list[MatchedFormat]:
    """Drop all but the highest-priority HDR format, keeping order."""
    hdr = [m for m in matched if m.format.category is FormatCategory.HDR]
    if len(hdr) <= 1:
        return list(matched)
    winner = min(hdr, key=lambda m: _hdr_priority(m.format))
    return [
        m for m in matched if m.format.category is not FormatCategory.HDR or m is winner
    ]


def _pack_bonus(profile: ScoringProfile, attrs: ReleaseAttributes) -> int:
    pref = profile.pack_preference
    if pref is None or not pref.enabled:
        return 0
    if attrs.is_complete_series:
        return pref.complete_series_bonus
    if attrs.is_multi_season:
        return pref.multi_season_bonus
    if attrs.is_season_pack:
        return pref.single_season_bonus
    return 0


def check_size(
    size: int | None,
    profile: ScoringProfile,
    *,
    media: MediaType,
    attrs: ReleaseAttributes | None = None,
    episode_count: int | None = None,
) -> str | None:
    """Return a size rejection reason, or None when within bounds.

    Movies are measured in GB. Episodes are measured in MB; packs are
    averaged per episode, and skipped when the episode count is unknown.
    """
    if not size or size <= 0:
        return None

    if media == "movie":
        gb = size / _BYTES_PER_GB
        if profile.movie_min_size_gb is not None and gb < profile.movie_min_size_gb:
            return (
                f"Movie size {gb:.2f} GB is below minimum "
                f"{profile.movie_min_size_gb} GB"
            )
        if profile.movie_max_size_gb is not None and gb > profile.movie_max_size_gb:
            return (
                f"Movie size {gb:.2f} GB exceeds maximum "
                f"{profile.movie_max_size_gb} GB"
            )
        return None

    count = 1
    if attrs is not None and attrs.is_pack:
        if attrs.episodes and len(attrs.episodes) > 1:
            count = len(attrs.episodes)
        elif episode_count and attrs.is_season_pack and not attrs.is_multi_season:
            count = episode_count
        else:
            return None
    mb = size / _BYTES_PER_MB / count
    label = "Episode size" if count == 1 else "Average episode size"
    if profile.episode_min_size_mb is not None and mb < profile.episode_min_size_mb:
        return f"{label} {mb:.0f} MB is below minimum {profile.episode_min_size_mb} MB"
    if profile.episode_max_size_mb is not None and mb > profile.episode_max_size_mb:
        return f"{label} {mb:.0f} MB exceeds maximum {profile.episode_max_size_mb} MB"
    return None


class ScoringProfileEvaluator:
    """Scores releases under a scoring profile."""

    def __init__(self, matcher: CustomFormatMatcher | None = None) -> None:
        self._matcher = matcher or CustomFormatMatcher()

    def score(
        self,
        release: ReleaseCandidate,
        matched: Sequence[MatchedFormat],
        profile: ScoringProfile,
        *,
        media: MediaType = "movie",
        attributes: ReleaseAttributes | None = None,
        episode_count: int | None = None,
    ) -> ScoredRelease:
        attrs = attributes or parse_release(
            release.title, indexer_id=release.indexer_id, quality=release.quality
        )

        contributions: list[FormatContribution] = []
        banned_reasons: list[str] = []
        for m in apply_hdr_exclusivity(matched):
            fmt = m.format
            value = profile.effective_score(fmt)
            contributions.append(
                FormatContribution(
                    format_id=fmt.id, name=fmt.name, category=fmt.category, score=value
                )
            )
            if fmt.is_hard_block(value):
                banned_reasons.append(fmt.name)

        bonus = _pack_bonus(profile, attrs)
        if bonus:
            contributions.append(
                FormatContribution(
                    format_id=PACK_BONUS_ID,
                    name="Pack bonus",
                    category=FormatCategory.OTHER,
                    score=bonus,
                )
            )

        size_reason = check_size(
            release.size,
            profile,
            media=media,
            attrs=attrs,
            episode_count=episode_count,
        )

        return ScoredRelease(
            candidate=release,
            total_score=sum(c.score for c in contributions),
            matched_formats=tuple(contributions),
            is_banned=bool(banned_reasons),
            banned_reasons=tuple(banned_reasons),
            resolution=attrs.resolution,
            size_rejected=size_reason is not None,
            size_rejection_reason=size_reason,
            attributes=attrs,
        )

    def evaluate(
        self,
        release: ReleaseCandidate,
        formats: Sequence[CustomFormat],
        profile: ScoringProfile,
        *,
        media: MediaType = "movie",
        episode_count: int | None = None,
    ) -> ScoredRelease:
        """Parse, match and score *release* in one step."""
        attrs = parse_release(
            release.title, indexer_id=release.indexer_id, quality=release.quality
        )
        matched = self._matcher.match(attrs, formats)
        return self.score(
            release,
            matched,
            profile,
            media=media,
            attributes=attrs,
            episode_count=episode_count,
        )


def breakdown(scored: ScoredRelease) -> dict[str, int]:
    """Sum of contributions per format category."""
    totals: dict[str, int] = defaultdict(int)
    for c in scored.matched_formats:
        totals[c.category.value] += c.score
    return dict(totals)


def explain(scored: ScoredRelease, profile: ScoringProfile) -> str:
    """Human-readable score report for one release."""
    lines = [
        f"Release: {scored.title}",
        f"Profile: {profile.name or profile.id}",
        f"Resolution: {scored.resolution}",
        f"Total score: {scored.total_score}",
    ]
    if scored.is_banned:
        lines.append(f"BANNED: {', '.join(scored.banned_reasons)}")
    if scored.size_rejected:
        lines.append(f"SIZE REJECTED: {scored.size_rejection_reason}")
    if scored.matched_formats:
        lines.append("Matched formats:")
        for c in scored.matched_formats:
            lines.append(f"  {c.score:+d}  {c.name} [{c.category.value}]")
    else:
        lines.append("Matched formats: none")
    meets = (
        not scored.is_banned
        and not scored.size_rejected
        and scored.total_score >= profile.min_score
    )
    lines.append(f"Meets minimum ({profile.min_score}): {'yes' if meets else 'no'}")
    return "\n".join(lines)
