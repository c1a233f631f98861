"""Port for task run bookkeeping."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class TaskHistoryPort(Protocol):
    """Records task runs and enforces one running entry per task id."""

    def is_running(self, task_id: str) -> bool: ...

    async def start(self, task_id: str) -> str:
        """Record a new running entry and return its history id.

        Raises ``TaskAlreadyRunningError`` if *task_id* is running.
        """
        ...

    async def complete(self, history_id: str, results: dict[str, Any]) -> None: ...

    async def fail(self, history_id: str, errors: list[str]) -> None: ...

    async def reconcile_stale(self) -> int:
        """Fail every entry left running by a previous process."""
        ...
