"""Monitoring context helpers."""

from __future__ import annotations

import dataclasses

from curatarr.domain.entities.monitoring import MonitoringContext, MovieContext
from curatarr.domain.ports.config_store import ConfigStorePort


def with_profile(
    context: MonitoringContext, config_store: ConfigStorePort
) -> MonitoringContext:
    """Attach the item's scoring profile when the content store left it out.

    The movie's (or series') ``profile_id`` is looked up; None selects the
    default profile. Unknown ids raise ``NotFoundError``.
    """
    if context.profile is not None:
        return context
    if isinstance(context, MovieContext):
        profile_id = context.movie.profile_id
    else:
        profile_id = context.series.profile_id
    return dataclasses.replace(context, profile=config_store.get_profile(profile_id))
