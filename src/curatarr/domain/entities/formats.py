"""Custom format definitions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

# Score at or below which a banned-category format hard-blocks a release.
BANNED_SCORE = -999_999


class FormatCategory(StrEnum):
    RESOLUTION = "resolution"
    RELEASE_GROUP_TIER = "release_group_tier"
    AUDIO = "audio"
    HDR = "hdr"
    STREAMING = "streaming"
    MICRO = "micro"
    LOW_QUALITY = "low_quality"
    BANNED = "banned"
    ENHANCEMENT = "enhancement"
    CODEC = "codec"
    OTHER = "other"


class ConditionType(StrEnum):
    RELEASE_TITLE = "release_title"
    RELEASE_GROUP = "release_group"
    INDEXER = "indexer"
    RESOLUTION = "resolution"
    SOURCE = "source"
    STREAMING_SERVICE = "streaming_service"


@dataclass(frozen=True)
class FormatCondition:
    """A single regex test against one attribute of a release.

    ``required`` conditions must all pass. Non-required conditions form an
    OR group: if a format has any, at least one must pass. ``negate``
    inverts the raw regex result.
    """

    name: str
    type: ConditionType
    pattern: str
    required: bool = True
    negate: bool = False


@dataclass(frozen=True)
class CustomFormat:
    id: str
    name: str
    category: FormatCategory
    default_score: int
    conditions: tuple[FormatCondition, ...]
    tags: tuple[str, ...] = ()
    description: str = ""
    # None = derive from category and effective score (see is_hard_block).
    hard_block: bool | None = None

    def is_hard_block(self, effective_score: int) -> bool:
        """Return True if matching this format must ban the release."""
        if self.hard_block is not None:
            return self.hard_block
        if self.category is not FormatCategory.BANNED:
            return False
        return effective_score == 0 or effective_score <= BANNED_SCORE


@dataclass(frozen=True)
class MatchedFormat:
    """A format that matched a release, with the condition names that passed."""

    format: CustomFormat
    matched_conditions: tuple[str, ...] = ()

    @property
    def id(self) -> str:
        return self.format.id
