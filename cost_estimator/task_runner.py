"""Background estimation runs.

EstimationTaskRunner submits runs as asyncio Tasks, records their progress
and outcome in a TaskStore and cancels them on timeout or on request.

Example Usage:
    runner = EstimationTaskRunner(lambda cid: EstimationCoordinator(oracle, params, cid))
    task_id = runner.submit(request)
    status = await runner.wait(task_id)
"""

import asyncio
import uuid
from typing import Any, Callable, Mapping, Optional, Union

from cost_estimator.coordinator import EstimationCoordinator, EstimationTimeoutError
from cost_estimator.models.config import SystemParams
from cost_estimator.models.costs import EstimationProgress, ValidationResult
from cost_estimator.models.user_input import UserInput
from cost_estimator.utils.logger import get_logger
from cost_estimator.utils.task_store import (
    TaskNotFoundError,
    TaskState,
    TaskStatus,
    TaskStore,
)

CoordinatorFactory = Callable[[str], EstimationCoordinator]


class EstimationTaskRunner:
    """Owns the asyncio Tasks of submitted estimation runs."""

    def __init__(
        self,
        coordinator_factory: CoordinatorFactory,
        store: Optional[TaskStore] = None,
        params: Optional[SystemParams] = None,
    ) -> None:
        self.params = params or SystemParams()
        self.coordinator_factory = coordinator_factory
        self.store = store or TaskStore(
            ttl_seconds=self.params.task_store.ttl_seconds,
            max_entries=self.params.task_store.max_entries,
        )
        self._tasks: dict[str, asyncio.Task] = {}
        self.logger = get_logger(
            correlation_id="task-runner",
            phase="coordination",
            component="task_runner",
        )

    def submit(
        self,
        request: Union[UserInput, Mapping[str, Any]],
        timeout: Optional[float] = None,
    ) -> str:
        """Start a run in the background and return its task id.

        Must be called from a running event loop.
        """
        task_id = str(uuid.uuid4())
        self.store.put(TaskStatus(task_id=task_id))

        task = asyncio.create_task(self._execute(task_id, request, timeout))
        self._tasks[task_id] = task
        task.add_done_callback(lambda _: self._tasks.pop(task_id, None))

        self.logger.info("Estimation submitted", task_id=task_id)
        return task_id

    def status(self, task_id: str) -> TaskStatus:
        """
        Raises:
            TaskNotFoundError: If the task is unknown or expired
        """
        return self.store.get(task_id)

    async def wait(self, task_id: str) -> TaskStatus:
        """Wait for a submitted run to finish and return its final status."""
        task = self._tasks.get(task_id)
        if task is not None:
            await asyncio.wait({task})
        return self.store.get(task_id)

    def cancel(self, task_id: str) -> bool:
        """Cancel a running task. Returns False if it already finished."""
        task = self._tasks.get(task_id)
        if task is None or task.done():
            return False
        task.cancel()
        self.logger.info("Estimation cancellation requested", task_id=task_id)
        return True

    async def _execute(
        self,
        task_id: str,
        request: Union[UserInput, Mapping[str, Any]],
        timeout: Optional[float],
    ) -> None:
        coordinator = self.coordinator_factory(task_id)
        self._record(task_id, state=TaskState.RUNNING)

        def on_progress(event: EstimationProgress) -> None:
            self._record(task_id, progress=event)

        try:
            result = await coordinator.run_with_timeout(
                request, on_progress=on_progress, timeout=timeout
            )
        except asyncio.CancelledError:
            self._record(task_id, state=TaskState.CANCELLED, error="Cancelled")
            raise
        except EstimationTimeoutError as e:
            self._record(task_id, state=TaskState.FAILED, error=str(e))
            return
        except Exception as e:
            self.logger.error(
                "Estimation failed", task_id=task_id, error_type=type(e).__name__, error=str(e)
            )
            self._record(task_id, state=TaskState.FAILED, error=str(e))
            return

        state = (
            TaskState.INVALID if isinstance(result, ValidationResult) else TaskState.COMPLETED
        )
        self._record(task_id, state=state, result=result)

    def _record(self, task_id: str, **changes: Any) -> None:
        try:
            self.store.update(task_id, **changes)
        except TaskNotFoundError:
            self.logger.warning("Task entry expired before update", task_id=task_id)
