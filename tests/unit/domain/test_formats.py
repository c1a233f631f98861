"""Tests for custom format value objects and hard-block semantics."""

from __future__ import annotations

from curatarr.domain.entities import (
    BANNED_SCORE,
    ConditionType,
    CustomFormat,
    FormatCategory,
    FormatCondition,
)

_COND = FormatCondition(name="cam", type=ConditionType.SOURCE, pattern="^cam$")


def _format(category: FormatCategory, hard_block: bool | None = None) -> CustomFormat:
    return CustomFormat(
        id="f",
        name="F",
        category=category,
        default_score=0,
        conditions=(_COND,),
        hard_block=hard_block,
    )


class TestHardBlock:
    def test_banned_category_with_zero_score_blocks(self) -> None:
        assert _format(FormatCategory.BANNED).is_hard_block(0) is True

    def test_banned_category_with_banned_score_blocks(self) -> None:
        fmt = _format(FormatCategory.BANNED)
        assert fmt.is_hard_block(BANNED_SCORE) is True
        assert fmt.is_hard_block(BANNED_SCORE - 1) is True

    def test_banned_category_with_ordinary_score_does_not_block(self) -> None:
        assert _format(FormatCategory.BANNED).is_hard_block(-500) is False

    def test_zero_scored_non_banned_format_does_not_block(self) -> None:
        assert _format(FormatCategory.CODEC).is_hard_block(0) is False

    def test_explicit_flag_wins_over_category(self) -> None:
        assert _format(FormatCategory.BANNED, hard_block=False).is_hard_block(0) is False
        assert _format(FormatCategory.AUDIO, hard_block=True).is_hard_block(50) is True
