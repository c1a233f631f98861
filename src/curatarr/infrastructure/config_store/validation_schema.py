"""Pydantic validation models for custom format and profile YAML files."""

from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from curatarr.domain.entities.formats import ConditionType, FormatCategory

ID_RE = r"^[a-z0-9][a-z0-9._-]*$"


class FormatConditionModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    type: ConditionType
    pattern: str = Field(min_length=1)
    required: bool = True
    negate: bool = False


class CustomFormatModel(BaseModel):
    """
    Pydantic validation model for one custom format.

    After validation, this is converted to domain.entities.formats.CustomFormat.
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(pattern=ID_RE)
    name: str
    category: FormatCategory = FormatCategory.OTHER
    default_score: int = 0
    conditions: List[FormatConditionModel] = Field(min_length=1)
    tags: List[str] = Field(default_factory=list)
    description: str = ""
    hard_block: Optional[bool] = None


class FormatsFileModel(BaseModel):
    formats: List[CustomFormatModel] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_ids(self) -> "FormatsFileModel":
        seen: set[str] = set()
        for fmt in self.formats:
            if fmt.id in seen:
                raise ValueError(f"duplicate format id '{fmt.id}'")
            seen.add(fmt.id)
        return self


class PackPreferenceModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = True
    complete_series_bonus: int = 100
    multi_season_bonus: int = 75
    single_season_bonus: int = 50
    min_wanted_episodes_percent: int = Field(default=50, ge=0, le=100)


class ScoringProfileModel(BaseModel):
    """
    One profile definition. Fields left unset fall back to the base profile
    named by ``extends`` (or to the built-in defaults when there is none).
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    id: str = Field(pattern=ID_RE)
    name: Optional[str] = None
    extends: Optional[str] = Field(default=None, alias="base_profile_id")
    resolution_order: Optional[List[str]] = None
    format_scores: Dict[str, int] = Field(default_factory=dict)
    upgrades_allowed: Optional[bool] = None
    min_score: Optional[int] = None
    upgrade_until_score: Optional[int] = None
    min_score_increment: Optional[int] = None
    movie_min_size_gb: Optional[float] = None
    movie_max_size_gb: Optional[float] = None
    episode_min_size_mb: Optional[float] = None
    episode_max_size_mb: Optional[float] = None
    pack_preference: Optional[PackPreferenceModel] = None

    @field_validator("resolution_order")
    @classmethod
    def _validate_resolution_order(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return None
        if len(set(v)) != len(v):
            raise ValueError("resolution_order contains duplicates")
        return v

    @field_validator(
        "movie_min_size_gb",
        "movie_max_size_gb",
        "episode_min_size_mb",
        "episode_max_size_mb",
    )
    @classmethod
    def _validate_size(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError("size bounds must be >= 0")
        return v


class DelayProfileModel(BaseModel):
    """One delay profile; only the first enabled one by sort order is used."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(pattern=ID_RE)
    name: str = ""
    enabled: bool = True
    sort_order: int = 0
    usenet_delay_minutes: int = Field(default=0, ge=0)
    torrent_delay_minutes: int = Field(default=0, ge=0)
    quality_delays: Dict[str, int] = Field(default_factory=dict)
    preferred_protocol: Optional[Literal["torrent", "usenet"]] = None
    bypass_if_highest_quality: bool = True
    bypass_if_above_score: Optional[int] = None

    @field_validator("quality_delays")
    @classmethod
    def _validate_quality_delays(cls, v: Dict[str, int]) -> Dict[str, int]:
        for resolution, minutes in v.items():
            if minutes < 0:
                raise ValueError(f"delay for '{resolution}' must be >= 0")
        return v


class ProfilesFileModel(BaseModel):
    profiles: List[ScoringProfileModel] = Field(default_factory=list)
    delay_profiles: List[DelayProfileModel] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_ids(self) -> "ProfilesFileModel":
        seen: set[str] = set()
        for profile in self.profiles:
            if profile.id in seen:
                raise ValueError(f"duplicate profile id '{profile.id}'")
            seen.add(profile.id)
        delay_ids: set[str] = set()
        for delay in self.delay_profiles:
            if delay.id in delay_ids:
                raise ValueError(f"duplicate delay profile id '{delay.id}'")
            delay_ids.add(delay.id)
        return self
