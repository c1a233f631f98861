"""Pydantic configuration models with validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]


def _normalize_path(value: Any) -> Path:
    # expanduser only; the file is checked when it is read
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        return Path(value).expanduser()
    raise TypeError(f"Expected path-like value, got: {type(value)!r}")


class CircuitBreakerConfig(BaseModel):
    """Per-provider circuit breaker thresholds (YAML section: circuit_breaker)."""

    failure_threshold: int = Field(
        default=5,
        ge=1,
        description="Consecutive failures that open a provider's circuit.",
    )
    cooldown_seconds: float = Field(
        default=60.0,
        ge=0,
        description="Seconds an open circuit waits before admitting a trial.",
    )


class SearchConfig(BaseModel):
    """Search and cascade tuning (YAML section: search)."""

    season_pack_threshold: float = Field(
        default=0.6,
        description=(
            "Fraction of a season's episodes that must still be missing after "
            "episode search before a season pack is searched."
        ),
    )
    new_episode_interval_hours: float = Field(
        default=24.0,
        description="Window after air date in which an episode counts as new.",
    )
    provider_timeout_seconds: float = Field(
        default=30.0,
        description="Per-provider timeout for one search call.",
    )
    max_concurrent_providers: int = Field(
        default=5,
        ge=1,
        description="Max parallel provider calls for one query.",
    )

    @field_validator("season_pack_threshold")
    @classmethod
    def _validate_threshold(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("season_pack_threshold must be between 0 and 1")
        return v

    @field_validator("new_episode_interval_hours", "provider_timeout_seconds")
    @classmethod
    def _validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be > 0")
        return v


class ScoringConfig(BaseModel):
    """Custom format and profile sources (YAML section: scoring)."""

    formats_file: Optional[Path] = Field(
        default=None,
        description="YAML file with custom formats. Built-in formats if unset.",
    )
    profiles_file: Optional[Path] = Field(
        default=None,
        description="YAML file with scoring profiles. Built-in profiles if unset.",
    )
    default_profile_id: str = Field(
        default="best",
        description="Profile used for items that do not name one.",
    )
    include_builtin_formats: bool = Field(
        default=True,
        description="Keep the built-in formats alongside file-defined ones.",
    )

    @field_validator("formats_file", "profiles_file", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Any:
        if v is None:
            return None
        return _normalize_path(v)


class AppConfig(BaseModel):
    """
    Validated configuration for one process.

    Logging settings arrive either flat (`log_level`) or nested under the
    `logging` section; both spellings validate to the same field.
    """

    app_name: str = Field(default="curatarr", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="dev, test or prod. prod defaults to JSON logs.",
    )

    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description=(
            "console or json. Unset means json in prod, console elsewhere."
        ),
    )

    circuit_breaker: CircuitBreakerConfig = Field(default_factory=CircuitBreakerConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """Sectioned form, as written in config.yaml."""
        scoring = self.scoring.model_dump()
        for key in ("formats_file", "profiles_file"):
            if scoring[key] is not None:
                scoring[key] = str(scoring[key])
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "logging": {"level": self.log_level, "format": self.log_format},
            "circuit_breaker": self.circuit_breaker.model_dump(),
            "search": self.search.model_dump(),
            "scoring": scoring,
        }


class EnvOverrides(BaseSettings):
    """`CURATARR_*` variables. Every field is optional; unset ones do not override."""

    model_config = SettingsConfigDict(
        env_prefix="CURATARR_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    circuit_failure_threshold: Optional[int] = None
    circuit_cooldown_seconds: Optional[float] = None

    season_pack_threshold: Optional[float] = None
    new_episode_interval_hours: Optional[float] = None
    provider_timeout_seconds: Optional[float] = None
    max_concurrent_providers: Optional[int] = None

    formats_file: Optional[Path] = None
    profiles_file: Optional[Path] = None
    default_profile_id: Optional[str] = None

    @field_validator("formats_file", "profiles_file", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Any:
        if v is None:
            return None
        return _normalize_path(v)

    def to_update_dict(self) -> dict[str, Any]:
        """Flat dict of the variables that were set."""
        return self.model_dump(exclude_none=True)
