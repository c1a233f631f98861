"""Engine-wide exceptions.

Short-circuits (an open circuit breaker, a rejected specification, a
skipped release) are reported as outcomes, never raised.
"""

from __future__ import annotations


class CuratarrError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(CuratarrError):
    """Raised when formats, profiles or app config fail validation at load."""


class NotFoundError(CuratarrError, LookupError):
    """Raised when a profile, item, season or series is unknown."""


class ProviderError(CuratarrError):
    """Raised by a search provider adapter when a call fails."""

    def __init__(self, provider_id: str, message: str = "") -> None:
        self.provider_id = provider_id
        super().__init__(f"{provider_id}: {message}" if message else provider_id)


class GrabError(CuratarrError):
    """Raised by a grabber adapter when submitting a release fails."""


class DecisionAmbiguityError(CuratarrError):
    """Raised when the decision rules produce no verdict."""


class TaskAlreadyRunningError(CuratarrError):
    """Raised when a task id already has a run in progress."""

    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"Task '{task_id}' is already running")
