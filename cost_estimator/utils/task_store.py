"""In-memory estimation task store with TTL expiry and a size bound.

Holds the status of submitted estimation runs so callers can poll them.
Entries expire ttl_seconds after their last update; when the store is full
the least recently updated entry is evicted.
"""

import time
from collections import OrderedDict
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from cost_estimator.models.costs import (
    CostEstimateReport,
    EstimationProgress,
    ValidationResult,
    utc_now,
)


class TaskNotFoundError(KeyError):
    """Raised when a task id is unknown or its entry has expired."""

    pass


class TaskState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    INVALID = "invalid"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset(
    {TaskState.COMPLETED, TaskState.INVALID, TaskState.FAILED, TaskState.CANCELLED}
)


class TaskStatus(BaseModel):
    """Snapshot of one estimation run."""

    model_config = ConfigDict(frozen=True)

    task_id: str
    state: TaskState = TaskState.PENDING
    progress: Optional[EstimationProgress] = None
    result: Optional[Union[CostEstimateReport, ValidationResult]] = None
    error: Optional[str] = None
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES


class TaskStore:
    """Bounded TTL map of task id to TaskStatus.

    Args:
        ttl_seconds: Lifetime of an entry after its last update
        max_entries: Maximum number of entries kept
        clock: Monotonic time source, injectable for tests
    """

    def __init__(
        self,
        ttl_seconds: float = 600.0,
        max_entries: int = 256,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, TaskStatus]] = OrderedDict()

    def put(self, status: TaskStatus) -> None:
        self._purge_expired()
        self._entries.pop(status.task_id, None)
        self._entries[status.task_id] = (self._clock(), status)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def get(self, task_id: str) -> TaskStatus:
        """
        Raises:
            TaskNotFoundError: If the task is unknown or expired
        """
        self._purge_expired()
        try:
            return self._entries[task_id][1]
        except KeyError:
            raise TaskNotFoundError(task_id) from None

    def update(self, task_id: str, **changes: object) -> TaskStatus:
        """Replace fields of an existing entry and refresh its expiry."""
        current = self.get(task_id)
        updated = current.model_copy(update={**changes, "updated_at": utc_now()})
        self.put(updated)
        return updated

    def delete(self, task_id: str) -> None:
        self._entries.pop(task_id, None)

    def __contains__(self, task_id: object) -> bool:
        self._purge_expired()
        return task_id in self._entries

    def __len__(self) -> int:
        self._purge_expired()
        return len(self._entries)

    def _purge_expired(self) -> None:
        cutoff = self._clock() - self.ttl_seconds
        # Entries are ordered by last update, oldest first
        while self._entries:
            task_id, (stamp, _) = next(iter(self._entries.items()))
            if stamp > cutoff:
                break
            del self._entries[task_id]
