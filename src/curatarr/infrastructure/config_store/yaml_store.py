"""YAML-backed store for custom formats and scoring profiles."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Sequence

import structlog
import yaml
from pydantic import BaseModel, ValidationError

from curatarr.domain.entities.delay import DelayProfile
from curatarr.domain.entities.formats import CustomFormat
from curatarr.domain.entities.profile import ScoringProfile
from curatarr.domain.exceptions import ConfigurationError, NotFoundError
from curatarr.infrastructure.config.schema import ScoringConfig
from curatarr.infrastructure.scoring.defaults import DEFAULT_FORMATS, DEFAULT_PROFILES
from curatarr.infrastructure.scoring.matcher import compile_formats

from .adapters import to_domain_delay_profile, to_domain_format, to_domain_profile
from .validation_schema import FormatsFileModel, ProfilesFileModel

log = structlog.get_logger(__name__)


def _load_document(path: Path, model: type[BaseModel]) -> Any:
    """Read *path* and validate it against *model*."""
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"{path}: YAML root must be a mapping/object")
        return model.model_validate(data)
    except (OSError, UnicodeDecodeError) as e:
        log.error(
            "scoring_file_load_failed",
            file=str(path),
            error_type=type(e).__name__,
            error_message=str(e),
        )
        raise ConfigurationError(f"{path}: {e}") from e
    except ValidationError as e:
        log.error(
            "scoring_file_validation_failed",
            file=str(path),
            error_type="ValidationError",
            error_details=e.errors(),
        )
        raise ConfigurationError(f"{path}: {e}") from e
    except yaml.YAMLError as e:
        log.error(
            "scoring_file_validation_failed",
            file=str(path),
            error_type=type(e).__name__,
            error_message=str(e),
        )
        raise ConfigurationError(f"{path}: {e}") from e


def load_formats_file(path: Path) -> list[CustomFormat]:
    """Load and validate custom formats, compiling every pattern."""
    document: FormatsFileModel = _load_document(path, FormatsFileModel)
    return compile_formats(to_domain_format(m) for m in document.formats)


def load_profiles_file(
    path: Path, builtin: Iterable[ScoringProfile] = DEFAULT_PROFILES
) -> list[ScoringProfile]:
    """Load profiles; ``extends`` may name a built-in or a file profile."""
    return _build_profiles(_load_document(path, ProfilesFileModel), builtin)


def load_delay_profiles_file(path: Path) -> list[DelayProfile]:
    """Load the ``delay_profiles`` list of a profiles file."""
    document: ProfilesFileModel = _load_document(path, ProfilesFileModel)
    return [to_domain_delay_profile(m) for m in document.delay_profiles]


def _build_profiles(
    document: ProfilesFileModel, builtin: Iterable[ScoringProfile]
) -> list[ScoringProfile]:
    models = {m.id: m for m in document.profiles}

    bases: dict[str, ScoringProfile] = {p.id: p for p in builtin}
    profiles: list[ScoringProfile] = []
    for m in document.profiles:
        if m.extends is None:
            profile = to_domain_profile(m, bases)
            bases[profile.id] = profile
            profiles.append(profile)

    for m in document.profiles:
        if m.extends is None:
            continue
        parent = models.get(m.extends)
        if parent is not None and parent.extends is not None:
            raise ConfigurationError(
                f"Profile '{m.id}' extends '{parent.id}', which itself extends "
                f"'{parent.extends}' (only one level of inheritance)"
            )
        profiles.append(to_domain_profile(m, bases))
    return profiles


class YamlConfigStore:
    """In-memory snapshot of validated formats, profiles and delay profiles.

    File-defined profiles replace built-ins with the same id.
    """

    def __init__(
        self,
        formats: Sequence[CustomFormat],
        profiles: Sequence[ScoringProfile],
        *,
        default_profile_id: str = "best",
        delay_profiles: Sequence[DelayProfile] = (),
    ) -> None:
        self._formats = compile_formats(formats)
        self._profiles = {p.id: p for p in profiles}
        if default_profile_id not in self._profiles:
            raise ConfigurationError(
                f"Default profile '{default_profile_id}' is not defined"
            )
        self._default_profile_id = default_profile_id
        self._delay_profiles = sorted(delay_profiles, key=lambda d: d.sort_order)

    @classmethod
    def from_config(cls, config: ScoringConfig) -> YamlConfigStore:
        formats: list[CustomFormat] = []
        if config.formats_file is None or config.include_builtin_formats:
            formats.extend(DEFAULT_FORMATS)
        if config.formats_file is not None:
            file_formats = load_formats_file(config.formats_file)
            overridden = {f.id for f in file_formats}
            formats = [f for f in formats if f.id not in overridden] + file_formats

        profiles: dict[str, ScoringProfile] = {p.id: p for p in DEFAULT_PROFILES}
        delay_profiles: list[DelayProfile] = []
        if config.profiles_file is not None:
            document: ProfilesFileModel = _load_document(
                config.profiles_file, ProfilesFileModel
            )
            for profile in _build_profiles(document, DEFAULT_PROFILES):
                profiles[profile.id] = profile
            delay_profiles = [to_domain_delay_profile(m) for m in document.delay_profiles]

        store = cls(
            formats,
            list(profiles.values()),
            default_profile_id=config.default_profile_id,
            delay_profiles=delay_profiles,
        )
        log.info(
            "scoring_config_loaded",
            formats=len(store._formats),
            profiles=len(store._profiles),
            delay_profiles=len(delay_profiles),
            default_profile=config.default_profile_id,
        )
        return store

    @property
    def default_profile_id(self) -> str:
        return self._default_profile_id

    def get_profile(self, profile_id: str | None) -> ScoringProfile:
        """Return the profile, or the default one when *profile_id* is None."""
        key = profile_id or self._default_profile_id
        try:
            return self._profiles[key]
        except KeyError:
            raise NotFoundError(f"Scoring profile '{key}' not found") from None

    def list_profiles(self) -> list[ScoringProfile]:
        return list(self._profiles.values())

    def get_custom_formats(self) -> list[CustomFormat]:
        return list(self._formats)

    def list_delay_profiles(self) -> list[DelayProfile]:
        return list(self._delay_profiles)

    def get_delay_profile(self) -> DelayProfile | None:
        """The first enabled delay profile by sort order, if any."""
        return next((d for d in self._delay_profiles if d.enabled), None)
