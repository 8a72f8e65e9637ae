import asyncio
import logging
from traceback import format_exc
from typing import Optional

from app.models.reconcile import RehostResult, RehostSummary
from app.models.shared import StorageStatus
from app.models.tasks import TaskStatus
from app.services.storage import (
    MediaStorageService,
    generate_storage_key,
    get_storage_service,
)
from app.services.task_repository import VideoTaskRepository, get_task_repository

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

REHOST_BATCH_SIZE = 10


class MediaRehoster:
    """Moves finished videos and covers from the provider into our bucket."""

    def __init__(
        self,
        repository: VideoTaskRepository,
        storage_service: MediaStorageService,
    ):
        self.repository = repository
        self.storage_service = storage_service

    async def rehost_completed(self, limit: int = REHOST_BATCH_SIZE) -> RehostSummary:
        """Rehost media of completed tasks whose upload is pending or failed."""
        tasks = await self.repository.list_completed(
            storage_statuses=[StorageStatus.PENDING.value, StorageStatus.FAILED.value],
            limit=limit,
        )
        logger.info(f"Found {len(tasks)} completed tasks to rehost")

        results = []
        for task in tasks:
            results.append(await self._rehost_task(task))

        succeeded = sum(1 for result in results if result.success)
        return RehostSummary(
            processed=len(results),
            succeeded=succeeded,
            failed=len(results) - succeeded,
            results=results,
        )

    async def _mark(self, task: TaskStatus, storage_status: StorageStatus, **fields):
        await self.repository.update_status(
            task.id, {"storage_status": storage_status.value, **fields}
        )

    async def _rehost_task(self, task: TaskStatus) -> RehostResult:
        try:
            if not task.result_url:
                await self._mark(task, StorageStatus.FAILED)
                return RehostResult(id=task.id, success=False, error="No result URL")

            await self._mark(task, StorageStatus.UPLOADING)

            definition = await self.repository.get_definition(task.task_id)
            user_id = definition.user_id if definition else "anonymous"

            video_url = await asyncio.to_thread(
                self.storage_service.rehost_from_url,
                task.result_url,
                generate_storage_key(user_id, task.task_id, "video", "mp4"),
                "video/mp4",
            )

            thumbnail_url: Optional[str] = task.thumbnail_url
            if thumbnail_url:
                thumbnail_url = await asyncio.to_thread(
                    self.storage_service.rehost_from_url,
                    thumbnail_url,
                    generate_storage_key(user_id, task.task_id, "thumbnail", "jpg"),
                    "image/jpeg",
                )

            await self._mark(
                task,
                StorageStatus.COMPLETED,
                result_url=video_url,
                thumbnail_url=thumbnail_url,
            )
            return RehostResult(
                id=task.id,
                success=True,
                result_url=video_url,
                thumbnail_url=thumbnail_url,
            )

        except Exception as e:
            logger.error(
                f"Failed to rehost media of task {task.id}: {str(e)}\n{format_exc()}"
            )
            try:
                await self._mark(task, StorageStatus.FAILED)
            except Exception as mark_error:
                logger.error(
                    f"Failed to mark task {task.id} as failed upload: {str(mark_error)}"
                )
            return RehostResult(id=task.id, success=False, error=str(e))


def get_media_rehoster() -> MediaRehoster:
    return MediaRehoster(
        repository=get_task_repository(),
        storage_service=get_storage_service(),
    )
