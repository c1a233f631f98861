"""At-most-one-run-per-task-id guard over the task history port."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

import structlog

from curatarr.domain.exceptions import TaskAlreadyRunningError
from curatarr.domain.ports.task_history import TaskHistoryPort

log = structlog.get_logger(__name__)


@dataclass
class TaskRun:
    """Handle for one guarded run; fill ``results`` before the scope exits."""

    task_id: str
    history_id: str
    results: dict[str, Any] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)


class TaskRunGuard:
    """Wraps a task run in start/complete/fail history bookkeeping.

    A second run of the same task id while one is in progress raises
    ``TaskAlreadyRunningError`` without touching the history. Cancellation
    and exceptions mark the run failed and propagate.
    """

    def __init__(self, history: TaskHistoryPort) -> None:
        self._history = history

    def is_running(self, task_id: str) -> bool:
        return self._history.is_running(task_id)

    @asynccontextmanager
    async def run(self, task_id: str) -> AsyncIterator[TaskRun]:
        if self._history.is_running(task_id):
            raise TaskAlreadyRunningError(task_id)
        history_id = await self._history.start(task_id)
        run = TaskRun(task_id=task_id, history_id=history_id)
        log.info("task_run_started", task_id=task_id, history_id=history_id)
        try:
            yield run
        except asyncio.CancelledError:
            log.warning("task_run_cancelled", task_id=task_id, history_id=history_id)
            await self._history.fail(history_id, [*run.errors, "cancelled"])
            raise
        except Exception as e:
            log.error(
                "task_run_failed",
                task_id=task_id,
                history_id=history_id,
                exc_info=True,
            )
            await self._history.fail(history_id, [*run.errors, str(e)])
            raise
        else:
            await self._history.complete(history_id, run.results)
            log.info(
                "task_run_completed",
                task_id=task_id,
                history_id=history_id,
                results=run.results,
            )
