"""Custom format matching.

Formats are validated once by ``compile_formats`` when configuration is
loaded; matching itself never raises.
"""

from __future__ import annotations

import functools
import re
from typing import Iterable, Sequence

import structlog

from curatarr.domain.entities.formats import (
    ConditionType,
    CustomFormat,
    FormatCondition,
    MatchedFormat,
)
from curatarr.domain.entities.release import ReleaseAttributes
from curatarr.domain.exceptions import ConfigurationError

log = structlog.get_logger(__name__)


@functools.lru_cache(maxsize=2048)
def _compiled(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


def compile_formats(formats: Iterable[CustomFormat]) -> list[CustomFormat]:
    """Validate *formats* and warm the pattern cache.

    Raises:
        ConfigurationError: on a format without conditions, a duplicate id
            or a pattern that does not compile.
    """
    seen: set[str] = set()
    validated: list[CustomFormat] = []
    for fmt in formats:
        if fmt.id in seen:
            raise ConfigurationError(f"Duplicate custom format id '{fmt.id}'")
        seen.add(fmt.id)
        if not fmt.conditions:
            raise ConfigurationError(f"Custom format '{fmt.id}' has no conditions")
        for condition in fmt.conditions:
            try:
                _compiled(condition.pattern)
            except re.error as e:
                raise ConfigurationError(
                    f"Custom format '{fmt.id}' condition '{condition.name}': "
                    f"invalid pattern {condition.pattern!r} ({e})"
                ) from e
        validated.append(fmt)
    log.debug("custom_formats_compiled", count=len(validated))
    return validated


def _field_value(condition_type: ConditionType, attrs: ReleaseAttributes) -> str | None:
    if condition_type is ConditionType.RELEASE_TITLE:
        return attrs.title
    if condition_type is ConditionType.RELEASE_GROUP:
        return attrs.release_group
    if condition_type is ConditionType.INDEXER:
        return attrs.indexer_id
    if condition_type is ConditionType.RESOLUTION:
        return attrs.resolution
    if condition_type is ConditionType.SOURCE:
        return attrs.source
    if condition_type is ConditionType.STREAMING_SERVICE:
        return attrs.streaming_service
    return None


def condition_passes(condition: FormatCondition, attrs: ReleaseAttributes) -> bool:
    """Evaluate one condition; a missing attribute never matches raw."""
    value = _field_value(condition.type, attrs)
    raw = value is not None and _compiled(condition.pattern).search(value) is not None
    return not raw if condition.negate else raw


def format_matches(
    fmt: CustomFormat, attrs: ReleaseAttributes
) -> tuple[bool, tuple[str, ...]]:
    """Return (matched, names of passing conditions) for one format."""
    if not fmt.conditions:
        return False, ()

    passed: list[str] = []
    optional_seen = False
    optional_passed = False
    for condition in fmt.conditions:
        ok = condition_passes(condition, attrs)
        if condition.required:
            if not ok:
                return False, ()
        else:
            optional_seen = True
            optional_passed = optional_passed or ok
        if ok:
            passed.append(condition.name)

    if optional_seen and not optional_passed:
        return False, ()
    return True, tuple(passed)


class CustomFormatMatcher:
    """Matches parsed releases against custom formats."""

    def match(
        self, attrs: ReleaseAttributes, formats: Sequence[CustomFormat]
    ) -> list[MatchedFormat]:
        """Return the formats *attrs* satisfies, in the order of *formats*."""
        matched: list[MatchedFormat] = []
        for fmt in formats:
            ok, conditions = format_matches(fmt, attrs)
            if ok:
                matched.append(MatchedFormat(format=fmt, matched_conditions=conditions))
        return matched

    def match_ids(
        self, attrs: ReleaseAttributes, formats: Sequence[CustomFormat]
    ) -> frozenset[str]:
        return frozenset(m.id for m in self.match(attrs, formats))
