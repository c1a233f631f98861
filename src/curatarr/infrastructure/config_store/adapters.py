"""Convert validated YAML models into domain entities."""

from __future__ import annotations

import dataclasses
from typing import Any, Mapping

from curatarr.domain.entities.delay import DelayProfile
from curatarr.domain.entities.formats import CustomFormat, FormatCondition
from curatarr.domain.entities.profile import PackPreference, ScoringProfile
from curatarr.domain.exceptions import ConfigurationError

from .validation_schema import CustomFormatModel, DelayProfileModel, ScoringProfileModel

# Profile fields a definition may set explicitly; everything else is inherited.
_SCALAR_FIELDS = (
    "upgrades_allowed",
    "min_score",
    "upgrade_until_score",
    "min_score_increment",
    "movie_min_size_gb",
    "movie_max_size_gb",
    "episode_min_size_mb",
    "episode_max_size_mb",
)


def to_domain_format(model: CustomFormatModel) -> CustomFormat:
    return CustomFormat(
        id=model.id,
        name=model.name,
        category=model.category,
        default_score=model.default_score,
        conditions=tuple(
            FormatCondition(
                name=c.name,
                type=c.type,
                pattern=c.pattern,
                required=c.required,
                negate=c.negate,
            )
            for c in model.conditions
        ),
        tags=tuple(model.tags),
        description=model.description,
        hard_block=model.hard_block,
    )


def _explicit_fields(model: ScoringProfileModel) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    for name in _SCALAR_FIELDS:
        if name in model.model_fields_set:
            fields[name] = getattr(model, name)
    if model.resolution_order is not None:
        fields["resolution_order"] = tuple(model.resolution_order)
    if model.pack_preference is not None:
        fields["pack_preference"] = PackPreference(**model.pack_preference.model_dump())
    return fields


def to_domain_profile(
    model: ScoringProfileModel, bases: Mapping[str, ScoringProfile]
) -> ScoringProfile:
    """Build a profile, inheriting unset fields from ``model.extends``.

    Raises:
        ConfigurationError: unknown base, multi-level inheritance, or a
            profile that violates the score ordering rules.
    """
    fields = _explicit_fields(model)
    if model.extends is None:
        return ScoringProfile(
            id=model.id,
            name=model.name or model.id,
            format_scores=dict(model.format_scores),
            **fields,
        )

    base = bases.get(model.extends)
    if base is None:
        raise ConfigurationError(
            f"Profile '{model.id}' extends unknown profile '{model.extends}'"
        )
    if base.base_profile_id is not None:
        raise ConfigurationError(
            f"Profile '{model.id}' extends '{base.id}', which itself extends "
            f"'{base.base_profile_id}' (only one level of inheritance)"
        )
    return dataclasses.replace(
        base,
        id=model.id,
        name=model.name or model.id,
        base_profile_id=base.id,
        format_scores={**base.format_scores, **model.format_scores},
        **fields,
    )


def to_domain_delay_profile(model: DelayProfileModel) -> DelayProfile:
    return DelayProfile(
        id=model.id,
        name=model.name or model.id,
        enabled=model.enabled,
        sort_order=model.sort_order,
        usenet_delay_minutes=model.usenet_delay_minutes,
        torrent_delay_minutes=model.torrent_delay_minutes,
        quality_delays=dict(model.quality_delays),
        preferred_protocol=model.preferred_protocol,
        bypass_if_highest_quality=model.bypass_if_highest_quality,
        bypass_if_above_score=model.bypass_if_above_score,
    )
