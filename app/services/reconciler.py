"""
Task Reconciler

Syncs stored task statuses with the provider. One call to reconcile() is one
pass: it loads every unfinished task, asks the provider about each of them
with a bounded number of concurrent calls, and writes back what changed.
A failure on one task is recorded in that task's result and never stops the
pass.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from traceback import format_exc
from typing import Callable, Optional

from app.models.reconcile import ReconcileSummary, TaskResult
from app.models.shared import WAITING_STATES, TaskState, is_terminal, same_state
from app.models.tasks import TaskStatus
from app.services.errors import (
    ProviderUnavailable,
    TaskValidationError,
    TerminalStatusConflict,
    VideoTaskError,
)
from app.services.provider.common import VideoProviderService
from app.services.provider.kling_302 import get_provider_service
from app.services.status_mapper import map_provider_status
from app.services.task_repository import VideoTaskRepository, get_task_repository
from config import ReconcileSettings, get_reconcile_settings

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def _utc(dt: datetime) -> datetime:
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


class TaskReconciler:
    def __init__(
        self,
        repository: VideoTaskRepository,
        provider: VideoProviderService,
        settings: ReconcileSettings,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.repository = repository
        self.provider = provider
        self.settings = settings
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    async def reconcile(self) -> ReconcileSummary:
        """
        Run one reconciliation pass.

        Returns:
            ReconcileSummary with one TaskResult per unfinished task

        Raises:
            PersistenceError: if the unfinished tasks cannot be listed at all
        """
        tasks = await self.repository.list_non_terminal()
        logger.info(f"Found {len(tasks)} unfinished tasks")

        semaphore = asyncio.Semaphore(self.settings.max_concurrency)

        async def run(task: TaskStatus) -> TaskResult:
            async with semaphore:
                return await self._reconcile_guarded(task)

        results = await asyncio.gather(*(run(task) for task in tasks))

        succeeded = sum(1 for result in results if result.success)
        summary = ReconcileSummary(
            processed=len(results),
            succeeded=succeeded,
            failed=len(results) - succeeded,
            results=list(results),
        )
        logger.info(
            f"Reconciliation finished: {summary.processed} processed, "
            f"{summary.succeeded} succeeded, {summary.failed} failed"
        )
        return summary

    async def _reconcile_guarded(self, task: TaskStatus) -> TaskResult:
        try:
            return await self._reconcile_task(task)
        except TerminalStatusConflict as e:
            # Another writer finished the task after it was listed
            logger.info(f"Skipping task {task.id}: {str(e)}")
            return TaskResult(
                id=task.id,
                external_task_id=task.external_task_id,
                success=True,
                previous_status=task.status,
                new_status=e.stored_status,
                reason="already_terminal",
            )
        except VideoTaskError as e:
            logger.warning(
                f"Failed to reconcile task {task.id} "
                f"({task.external_task_id}): {type(e).__name__}: {str(e)}"
            )
            return self._failure(task, e)
        except Exception as e:
            logger.error(
                f"Unexpected error reconciling task {task.id}: {str(e)}\n{format_exc()}"
            )
            return self._failure(task, e)

    @staticmethod
    def _failure(task: TaskStatus, error: Exception) -> TaskResult:
        return TaskResult(
            id=task.id,
            external_task_id=task.external_task_id,
            success=False,
            previous_status=task.status,
            reason=type(error).__name__,
            error=str(error),
        )

    def _hours_since_update(self, task: TaskStatus) -> float:
        return (self.clock() - _utc(task.updated_at)) / timedelta(hours=1)

    async def _handle_unreachable(
        self, task: TaskStatus, result: TaskResult, error: ProviderUnavailable
    ) -> TaskResult:
        """
        Age out a task the provider could not report on.

        A processing task past the stale limit is failed and a waiting task
        past the promotion limit is assumed to have started. Anything younger
        is left for the next pass and the provider error is re-raised.
        """
        hours = self._hours_since_update(task)

        if (
            task.status == TaskState.PROCESSING.value
            and hours > self.settings.stale_processing_hours
        ):
            limit = self.settings.stale_processing_hours
            await self.repository.update_status(
                task.id,
                {
                    "status": TaskState.FAILED.value,
                    "error_message": f"Task did not finish within {limit:g} hours",
                },
            )
            logger.info(f"Task {task.id} timed out while processing: {str(error)}")
            result.new_status = TaskState.FAILED.value
            result.updated = True
            result.reason = "timeout"
            return result

        if (
            task.status in WAITING_STATES
            and hours > self.settings.queued_promotion_hours
        ):
            await self.repository.update_status(
                task.id, {"status": TaskState.PROCESSING.value}
            )
            logger.info(f"Task {task.id} assumed processing after {hours:.1f} hours")
            result.new_status = TaskState.PROCESSING.value
            result.updated = True
            result.reason = "assumed_processing"
            return result

        raise error

    async def _reconcile_task(self, task: TaskStatus) -> TaskResult:
        result = TaskResult(
            id=task.id,
            external_task_id=task.external_task_id,
            success=True,
            previous_status=task.status,
            new_status=task.status,
        )

        if is_terminal(task.status):
            result.reason = "terminal"
            return result

        if not task.external_task_id:
            raise TaskValidationError(f"Task status {task.id} has no external task ID")

        try:
            payload = await asyncio.to_thread(
                self.provider.fetch_status, task.external_task_id
            )
        except ProviderUnavailable as e:
            return await self._handle_unreachable(task, result, e)

        mapped = map_provider_status(payload)

        if same_state(mapped.status, task.status) and not mapped.result_url:
            result.reason = "unchanged"
            return result

        await self.repository.update_status(
            task.id,
            {
                "status": mapped.status.value,
                "result_url": mapped.result_url,
                "thumbnail_url": mapped.thumbnail_url,
                "error_message": mapped.error_message,
            },
        )
        logger.info(
            f"Task {task.id} ({task.external_task_id}) moved from {task.status} "
            f"to {mapped.status.value}"
        )
        result.new_status = mapped.status.value
        result.updated = True
        result.reason = "changed"
        return result


def get_task_reconciler() -> TaskReconciler:
    return TaskReconciler(
        repository=get_task_repository(),
        provider=get_provider_service(),
        settings=get_reconcile_settings(),
    )
