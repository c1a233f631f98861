"""Task run history records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TaskStatus(StrEnum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class TaskHistoryEntry:
    id: str
    task_id: str
    status: TaskStatus = TaskStatus.RUNNING
    started_at: datetime = field(default_factory=_utcnow)
    completed_at: datetime | None = None
    results: dict[str, Any] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
