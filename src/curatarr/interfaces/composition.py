"""Composition root: wires infrastructure adapters into the engine."""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Sequence

import structlog

from curatarr.application.decision_service import ReleaseDecisionService
from curatarr.application.engine import DecisionEngine
from curatarr.application.monitoring.delay import ReleaseDelayGate
from curatarr.application.release_selector import ReleaseSelector
from curatarr.application.task_guard import TaskRunGuard
from curatarr.application.use_cases.cascading_search import CascadingSearchUseCase
from curatarr.application.use_cases.monitoring_tasks import MonitoringTasks
from curatarr.application.use_cases.movie_search import MovieSearchUseCase
from curatarr.domain.ports.blocklist import BlocklistPort
from curatarr.domain.ports.config_store import ConfigStorePort
from curatarr.domain.ports.content_store import ContentStorePort
from curatarr.domain.ports.grabber import GrabberPort
from curatarr.domain.ports.pending_releases import PendingReleasePort
from curatarr.domain.ports.search_provider import SearchProviderPort
from curatarr.domain.ports.task_history import TaskHistoryPort
from curatarr.infrastructure.circuit_breaker import ProviderCircuitBreaker
from curatarr.infrastructure.config.schema import AppConfig
from curatarr.infrastructure.config_store import YamlConfigStore
from curatarr.infrastructure.persistence.memory_pending_releases import (
    InMemoryPendingReleases,
)
from curatarr.infrastructure.persistence.memory_task_history import (
    InMemoryTaskHistory,
)
from curatarr.infrastructure.providers import GuardedSearchProvider, ProviderPool
from curatarr.infrastructure.scoring import ScoringProfileEvaluator

log = structlog.get_logger(__name__)


def build_provider_pool(
    config: AppConfig,
    providers: Sequence[SearchProviderPort],
    breaker: ProviderCircuitBreaker,
) -> ProviderPool:
    """Guard every provider with the shared breaker and the configured timeout."""
    guarded = [
        GuardedSearchProvider(
            provider,
            breaker,
            timeout_seconds=config.search.provider_timeout_seconds,
        )
        for provider in providers
    ]
    return ProviderPool(guarded, max_concurrent=config.search.max_concurrent_providers)


def build_engine(
    config: AppConfig,
    *,
    content_store: ContentStorePort,
    grabber: GrabberPort,
    providers: Sequence[SearchProviderPort],
    config_store: ConfigStorePort | None = None,
    task_history: TaskHistoryPort | None = None,
    blocklist: BlocklistPort | None = None,
    pending_releases: PendingReleasePort | None = None,
    breaker: ProviderCircuitBreaker | None = None,
    clock: Callable[[], datetime] | None = None,
) -> DecisionEngine:
    """Build a ``DecisionEngine`` from config and externally owned adapters.

    Scoring formats and profiles come from ``config.scoring`` unless a
    config store is passed in. One circuit breaker is shared by every
    provider and exposed through the engine's provider-health methods.
    Releases held back by the active delay profile wait in
    ``pending_releases`` (in memory unless one is passed in).
    """
    config_store = config_store or YamlConfigStore.from_config(config.scoring)
    task_history = task_history or InMemoryTaskHistory()
    if pending_releases is None:
        pending_releases = InMemoryPendingReleases()
    breaker = breaker or ProviderCircuitBreaker(
        failure_threshold=config.circuit_breaker.failure_threshold,
        cooldown_seconds=config.circuit_breaker.cooldown_seconds,
    )
    search = build_provider_pool(config, providers, breaker)

    decisions = ReleaseDecisionService()
    selector = ReleaseSelector(ScoringProfileEvaluator(), decisions, blocklist)
    clock_kwargs = {"clock": clock} if clock is not None else {}
    delay = ReleaseDelayGate(
        delay_profile=config_store.get_delay_profile,
        pending=pending_releases,
        **clock_kwargs,
    )

    cascade = CascadingSearchUseCase(
        content_store=content_store,
        config_store=config_store,
        search=search,
        grabber=grabber,
        selector=selector,
        season_pack_threshold=config.search.season_pack_threshold,
        delay=delay,
        **clock_kwargs,
    )
    movie_search = MovieSearchUseCase(
        search=search, grabber=grabber, selector=selector, delay=delay
    )
    tasks = MonitoringTasks(
        content_store=content_store,
        config_store=config_store,
        movie_search=movie_search,
        cascade=cascade,
        guard=TaskRunGuard(task_history),
        new_episode_interval_hours=config.search.new_episode_interval_hours,
        pending=pending_releases,
        grabber=grabber,
        blocklist=blocklist,
        **clock_kwargs,
    )

    log.info(
        "engine_built",
        providers=search.provider_ids,
        season_pack_threshold=config.search.season_pack_threshold,
        failure_threshold=config.circuit_breaker.failure_threshold,
    )
    return DecisionEngine(
        content_store=content_store,
        config_store=config_store,
        decisions=decisions,
        cascade=cascade,
        tasks=tasks,
        health=breaker,
        task_history=task_history,
        **clock_kwargs,
    )
