"""Port for the library of monitored movies and series."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from curatarr.domain.entities.monitoring import (
    Episode,
    MonitoringContext,
    Season,
    Series,
)


@runtime_checkable
class ContentStorePort(Protocol):
    """Async read access to monitored content.

    Unknown ids raise ``NotFoundError``; ``get_season`` returns None for a
    season without a record.
    """

    async def get_monitoring_context(self, item_id: str) -> MonitoringContext: ...

    async def get_series(self, series_id: str) -> Series: ...

    async def get_season(
        self, series_id: str, season_number: int
    ) -> Season | None: ...

    async def list_episodes(self, series_id: str) -> list[Episode]: ...

    async def list_movie_ids(self) -> list[str]: ...

    async def list_series_ids(self) -> list[str]: ...
