"""Decision engine facade consumed by schedulers and user interfaces."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

import structlog

from curatarr.application.decision_service import ReleaseDecisionService
from curatarr.application.monitoring.specifications import chain_for
from curatarr.application.use_cases.cascading_search import CascadingSearchUseCase
from curatarr.application.use_cases.monitoring_tasks import MonitoringTasks
from curatarr.domain.entities.decision import Decision
from curatarr.domain.entities.health import CircuitBreakerStatus
from curatarr.domain.entities.monitoring import SpecificationResult
from curatarr.domain.entities.release import ScoredRelease
from curatarr.domain.entities.search import BatchSummary, CascadeSummary
from curatarr.domain.ports.config_store import ConfigStorePort
from curatarr.domain.ports.content_store import ContentStorePort
from curatarr.domain.ports.search_gateway import ProviderHealthPort
from curatarr.domain.ports.task_history import TaskHistoryPort

log = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DecisionEngine:
    """Entry point bundling gating, search, decisions and provider health.

    Built by ``curatarr.interfaces.composition.build_engine``; every
    collaborator is injected.
    """

    def __init__(
        self,
        *,
        content_store: ContentStorePort,
        config_store: ConfigStorePort,
        decisions: ReleaseDecisionService,
        cascade: CascadingSearchUseCase,
        tasks: MonitoringTasks,
        health: ProviderHealthPort,
        task_history: TaskHistoryPort,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._content = content_store
        self._config = config_store
        self._decisions = decisions
        self._cascade = cascade
        self._tasks = tasks
        self._health = health
        self._history = task_history
        self._clock = clock

    async def startup(self) -> int:
        """Fail task runs left running by a previous process."""
        stale = await self._history.reconcile_stale()
        log.info("engine_started", stale_task_runs=stale)
        return stale

    # ------------------------------------------------------------------
    # Gating and decisions
    # ------------------------------------------------------------------

    async def evaluate_item(self, item_id: str) -> SpecificationResult:
        """Run the missing-content chain for one item without searching.

        Raises ``NotFoundError`` for an unknown item.
        """
        context = await self._content.get_monitoring_context(item_id)
        return await chain_for(context, self._content, clock=self._clock).evaluate(
            context
        )

    def decide_release(
        self, existing_score: int | None, candidate_score: int, profile_id: str | None
    ) -> Decision:
        """Decide on plain scores; None means nothing is held yet."""
        profile = self._config.get_profile(profile_id)
        return self._decisions.decide(
            existing_score, ScoredRelease.from_score(candidate_score), profile
        )

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def run_cascading_search(self, series_id: str) -> CascadeSummary:
        return await self._cascade.execute(series_id)

    async def run_missing_content_search(self) -> BatchSummary:
        return await self._tasks.run_missing_content()

    async def run_upgrade_search(self) -> BatchSummary:
        return await self._tasks.run_upgrades()

    async def run_new_episode_search(self) -> BatchSummary:
        return await self._tasks.run_new_episodes()

    async def run_pending_release_processing(self) -> BatchSummary:
        """Grab delayed releases that are due and expire the obsolete ones."""
        return await self._tasks.run_pending_releases()

    # ------------------------------------------------------------------
    # Provider health
    # ------------------------------------------------------------------

    def get_provider_status(self, provider_id: str) -> CircuitBreakerStatus:
        return self._health.get_status(provider_id)

    def reset_circuit_breaker(self, provider_id: str) -> bool:
        return self._health.reset(provider_id)

    def provider_health(self) -> dict[str, dict[str, object]]:
        return self._health.snapshot()
