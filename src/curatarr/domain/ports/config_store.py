"""Port for scoring profiles and custom formats."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from curatarr.domain.entities.delay import DelayProfile
from curatarr.domain.entities.formats import CustomFormat
from curatarr.domain.entities.profile import ScoringProfile


@runtime_checkable
class ConfigStorePort(Protocol):
    """Read access to validated scoring configuration.

    Returned objects are immutable snapshots; callers fetch them once per
    evaluation.
    """

    def get_profile(self, profile_id: str | None) -> ScoringProfile:
        """Return a profile by id; None selects the default profile.

        Raises ``NotFoundError`` for an unknown id.
        """
        ...

    def list_profiles(self) -> list[ScoringProfile]: ...

    def get_custom_formats(self) -> list[CustomFormat]: ...

    def get_delay_profile(self) -> DelayProfile | None:
        """The delay profile in force, or None when releases are never held."""
        ...
