"""In-process task history.

Entries handed to the constructor play the role of records persisted by
an earlier process; ``reconcile_stale`` fails those still marked running.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Iterable

import structlog

from curatarr.domain.entities.tasks import TaskHistoryEntry, TaskStatus
from curatarr.domain.exceptions import NotFoundError, TaskAlreadyRunningError

log = structlog.get_logger(__name__)

STALE_RUN_ERROR = "Process restarted while task was running"


class InMemoryTaskHistory:
    """TaskHistoryPort kept in a dict, with a set of running task ids."""

    def __init__(self, entries: Iterable[TaskHistoryEntry] = ()) -> None:
        self._entries: dict[str, TaskHistoryEntry] = {e.id: e for e in entries}
        self._running: dict[str, str] = {}  # task_id -> history id

    def is_running(self, task_id: str) -> bool:
        return task_id in self._running

    async def start(self, task_id: str) -> str:
        if task_id in self._running:
            raise TaskAlreadyRunningError(task_id)
        entry = TaskHistoryEntry(id=uuid.uuid4().hex, task_id=task_id)
        self._entries[entry.id] = entry
        self._running[task_id] = entry.id
        log.debug("task_started", task_id=task_id, history_id=entry.id)
        return entry.id

    def _finish(self, history_id: str, status: TaskStatus) -> TaskHistoryEntry:
        entry = self._entries.get(history_id)
        if entry is None:
            raise NotFoundError(f"Task history entry '{history_id}' not found")
        entry.status = status
        entry.completed_at = datetime.now(timezone.utc)
        if self._running.get(entry.task_id) == history_id:
            del self._running[entry.task_id]
        return entry

    async def complete(self, history_id: str, results: dict[str, Any]) -> None:
        entry = self._finish(history_id, TaskStatus.COMPLETED)
        entry.results = dict(results)
        log.debug("task_completed", task_id=entry.task_id, history_id=history_id)

    async def fail(self, history_id: str, errors: list[str]) -> None:
        entry = self._finish(history_id, TaskStatus.FAILED)
        entry.errors = list(errors)
        log.debug("task_failed", task_id=entry.task_id, history_id=history_id)

    async def reconcile_stale(self) -> int:
        live = set(self._running.values())
        stale = [
            e
            for e in self._entries.values()
            if e.status is TaskStatus.RUNNING and e.id not in live
        ]
        for entry in stale:
            entry.status = TaskStatus.FAILED
            entry.completed_at = datetime.now(timezone.utc)
            entry.errors = [STALE_RUN_ERROR]
        if stale:
            log.warning("stale_task_runs_failed", count=len(stale))
        return len(stale)

    def get(self, history_id: str) -> TaskHistoryEntry | None:
        return self._entries.get(history_id)

    def entries(self, task_id: str | None = None) -> list[TaskHistoryEntry]:
        return [e for e in self._entries.values() if task_id is None or e.task_id == task_id]
