"""Delay profiles: hold a chosen release back while a better one may appear.

``calculate_delay`` is pure. ``ReleaseDelayGate`` sits in front of the
grabber and parks delayed releases in a ``PendingReleasePort``, where a
higher-scoring release for the same item supersedes the one waiting.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Sequence

import structlog

from curatarr.domain.entities.delay import (
    DelayProfile,
    DelayVerdict,
    PendingRelease,
    PendingStatus,
)
from curatarr.domain.entities.release import ScoredRelease
from curatarr.domain.ports.pending_releases import PendingReleasePort

log = structlog.get_logger(__name__)

HIGHEST_RESOLUTION = "2160p"

_NO_DELAY = DelayVerdict(reason="no delay profile")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def calculate_delay(
    profile: DelayProfile | None, release: ScoredRelease, now: datetime
) -> DelayVerdict:
    """How long *release* should wait under *profile*.

    Bypasses, in order: highest resolution, score at or above the bypass
    threshold, preferred protocol. Otherwise the protocol delay applies,
    raised to the resolution's quality delay when one is configured.
    """
    if profile is None or not profile.enabled:
        return _NO_DELAY

    resolution = release.resolution
    if profile.bypass_if_highest_quality and resolution == HIGHEST_RESOLUTION:
        return DelayVerdict(bypass_reason=f"highest quality ({HIGHEST_RESOLUTION})")

    threshold = profile.bypass_if_above_score
    if threshold is not None and release.total_score >= threshold:
        return DelayVerdict(
            bypass_reason=f"score {release.total_score} >= bypass threshold {threshold}"
        )

    protocol = release.candidate.protocol
    minutes = (
        profile.usenet_delay_minutes
        if protocol == "usenet"
        else profile.torrent_delay_minutes
    )
    quality_delay = profile.quality_delays.get(resolution)
    if quality_delay is not None:
        minutes = max(minutes, quality_delay)

    if profile.preferred_protocol is not None and protocol == profile.preferred_protocol:
        return DelayVerdict(bypass_reason=f"preferred protocol {protocol}")

    if minutes <= 0:
        return DelayVerdict(reason="zero delay configured")

    return DelayVerdict(
        delay_minutes=minutes,
        process_at=now + timedelta(minutes=minutes),
        reason=f"delay profile '{profile.name or profile.id}': {minutes} minutes",
    )


class ReleaseDelayGate:
    """Decides whether a chosen release is grabbed now or parked."""

    def __init__(
        self,
        *,
        delay_profile: Callable[[], DelayProfile | None],
        pending: PendingReleasePort,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._delay_profile = delay_profile
        self._pending = pending
        self._clock = clock

    @property
    def pending(self) -> PendingReleasePort:
        return self._pending

    async def hold(
        self,
        release: ScoredRelease,
        *,
        key: str,
        item_ids: Sequence[str],
        movie_id: str | None = None,
        series_id: str | None = None,
        replaces: str | None = None,
    ) -> PendingRelease | None:
        """Park *release* under *key* if its delay has not run out.

        Returns the entry now waiting for *key*, or None when the release
        should be grabbed right away. A release scoring no higher than the
        one already waiting is dropped and the waiting entry returned.
        """
        profile = self._delay_profile()
        now = self._clock()
        verdict = calculate_delay(profile, release, now)
        if not verdict.should_delay or verdict.process_at is None:
            if verdict.bypass_reason:
                log.info(
                    "release_delay_bypassed",
                    key=key,
                    title=release.title,
                    reason=verdict.bypass_reason,
                )
            return None

        waiting = await self._pending.best_for(key)
        if waiting is not None and release.total_score <= waiting.score:
            log.debug(
                "pending_release_kept",
                key=key,
                waiting=waiting.title,
                offered=release.title,
            )
            return waiting

        entry = PendingRelease(
            id=uuid.uuid4().hex,
            key=key,
            item_ids=tuple(item_ids),
            release=release,
            process_at=verdict.process_at,
            added_at=now,
            movie_id=movie_id,
            series_id=series_id,
            delay_profile_id=profile.id if profile else None,
            replaces=replaces,
        )
        await self._pending.add(entry)
        if waiting is not None:
            await self._pending.mark(
                waiting.id, PendingStatus.SUPERSEDED, superseded_by=release.title
            )
            log.info(
                "pending_release_superseded",
                key=key,
                old=waiting.title,
                new=release.title,
                old_score=waiting.score,
                new_score=release.total_score,
            )
        log.info(
            "release_delayed",
            key=key,
            title=release.title,
            minutes=verdict.delay_minutes,
            process_at=verdict.process_at.isoformat(),
        )
        return entry
