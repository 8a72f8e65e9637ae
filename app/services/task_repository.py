"""
Video Task Repository

Read/write access to the task definition and task status collections. The
reconciler only needs list_non_terminal and update_status; the remaining
operations serve the submission and status routes.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from traceback import format_exc
from typing import Any, Dict, List, Optional

from google.api_core.exceptions import NotFound

from app.models import TASK_DEFINITIONS, TASK_STATUSES
from app.models.shared import (
    NON_TERMINAL_STATES,
    StorageStatus,
    TaskState,
    is_terminal,
    same_state,
)
from app.models.tasks import TaskDefinition, TaskStatus
from app.services.errors import (
    PersistenceError,
    TaskStatusNotFound,
    TaskValidationError,
    TerminalStatusConflict,
)
from app.services.firestore import FirestoreService, get_firestore_service

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Fields fixed at creation time
IMMUTABLE_STATUS_FIELDS = frozenset(
    {"id", "task_id", "external_task_id", "created_at"}
)


class VideoTaskRepository:
    """Persistence gateway for video generation tasks."""

    def __init__(self, firestore_service: Optional[FirestoreService] = None):
        self.firestore_service = firestore_service or get_firestore_service()

    # Task definitions
    async def create_definition(self, definition_data: Dict[str, Any]) -> TaskDefinition:
        definition_data.setdefault("created_at", datetime.now(timezone.utc))
        definition_data.setdefault("additional_params", {})
        try:
            definition_id = await self.firestore_service.create_document(
                collection_name=TASK_DEFINITIONS,
                document_data=definition_data,
            )
        except Exception as e:
            raise PersistenceError(f"Failed to create task definition: {str(e)}")

        return TaskDefinition(id=definition_id, **definition_data)

    async def get_definition(self, definition_id: str) -> Optional[TaskDefinition]:
        return await self.firestore_service.get_document(
            collection_name=TASK_DEFINITIONS,
            document_id=definition_id,
            model_class=TaskDefinition,
        )

    async def list_user_definitions(self, user_id: str) -> List[TaskDefinition]:
        return await self.firestore_service.get_user_documents(
            collection_name=TASK_DEFINITIONS,
            user_id=user_id,
            model_class=TaskDefinition,
        )

    # Task statuses
    async def create_status(
        self,
        task_id: str,
        external_task_id: str,
        status: TaskState = TaskState.PENDING,
    ) -> TaskStatus:
        if not external_task_id:
            raise TaskValidationError("Cannot track a task without an external task ID")

        status_data = {
            "task_id": task_id,
            "external_task_id": external_task_id,
            "status": status.value,
            "result_url": None,
            "thumbnail_url": None,
            "error_message": None,
            "storage_status": StorageStatus.PENDING.value,
        }
        try:
            status_id = await self.firestore_service.create_document(
                collection_name=TASK_STATUSES,
                document_data=status_data,
            )
        except Exception as e:
            raise PersistenceError(f"Failed to create task status: {str(e)}")

        return TaskStatus(id=status_id, **status_data)

    async def get_status(self, status_id: str) -> Optional[TaskStatus]:
        return await self.firestore_service.get_document(
            collection_name=TASK_STATUSES,
            document_id=status_id,
            model_class=TaskStatus,
        )

    async def get_status_by_external_id(
        self, external_task_id: str
    ) -> Optional[TaskStatus]:
        statuses = await self.firestore_service.query_collection(
            collection_name=TASK_STATUSES,
            filters=[("external_task_id", "==", external_task_id)],
            limit=1,
            model_class=TaskStatus,
        )
        return statuses[0] if statuses else None

    async def get_status_for_task(self, task_id: str) -> Optional[TaskStatus]:
        """Most recently updated status of a task definition."""
        statuses = await self.firestore_service.query_collection(
            collection_name=TASK_STATUSES,
            filters=[("task_id", "==", task_id)],
            order_by="updated_at",
            descending=True,
            limit=1,
            model_class=TaskStatus,
        )
        return statuses[0] if statuses else None

    async def list_non_terminal(self) -> List[TaskStatus]:
        """All unfinished tasks, the ones waiting longest first."""
        try:
            return await self.firestore_service.query_collection(
                collection_name=TASK_STATUSES,
                filters=[("status", "in", sorted(NON_TERMINAL_STATES))],
                order_by="updated_at",
                model_class=TaskStatus,
            )
        except Exception as e:
            logger.error(f"Failed to list unfinished tasks: {str(e)}\n{format_exc()}")
            raise PersistenceError(f"Failed to list unfinished tasks: {str(e)}")

    async def list_completed(
        self,
        storage_statuses: Optional[List[str]] = None,
        limit: int = 10,
        newest_first: bool = False,
    ) -> List[TaskStatus]:
        filters = [("status", "==", TaskState.COMPLETED.value)]
        if storage_statuses:
            filters.append(("storage_status", "in", storage_statuses))

        try:
            return await self.firestore_service.query_collection(
                collection_name=TASK_STATUSES,
                filters=filters,
                order_by="updated_at",
                descending=newest_first,
                limit=limit,
                model_class=TaskStatus,
            )
        except Exception as e:
            raise PersistenceError(f"Failed to list completed tasks: {str(e)}")

    async def update_status(self, status_id: str, fields: Dict[str, Any]) -> TaskStatus:
        """
        Apply an update to a task status row.

        Args:
            status_id: ID of the task status document
            fields: Columns to write

        Returns:
            The task status as stored after the write

        Raises:
            TaskValidationError: when fields name an immutable column
            TaskStatusNotFound: when no such row exists
            TerminalStatusConflict: when the row is already terminal and the
                update would change its status
            PersistenceError: when the store fails
        """
        immutable = IMMUTABLE_STATUS_FIELDS.intersection(fields)
        if immutable:
            raise TaskValidationError(
                f"Cannot update immutable fields: {', '.join(sorted(immutable))}"
            )

        # Firestore stores plain strings
        update_data = {
            key: value.value if isinstance(value, Enum) else value
            for key, value in fields.items()
        }

        try:
            current = await self.get_status(status_id)
        except Exception as e:
            raise PersistenceError(f"Failed to read task status {status_id}: {str(e)}")

        if current is None:
            raise TaskStatusNotFound(status_id)

        new_status = update_data.get("status")
        if (
            new_status is not None
            and is_terminal(current.status)
            and not same_state(current.status, new_status)
        ):
            raise TerminalStatusConflict(status_id, current.status)

        try:
            await self.firestore_service.update_document(
                collection_name=TASK_STATUSES,
                document_id=status_id,
                update_data=update_data,
            )
        except NotFound:
            raise TaskStatusNotFound(status_id)
        except Exception as e:
            raise PersistenceError(f"Failed to update task status {status_id}: {str(e)}")

        return TaskStatus(**{**current.model_dump(), **update_data})


# Global repository instance
_task_repository = None


def get_task_repository() -> VideoTaskRepository:
    global _task_repository
    if _task_repository is None:
        _task_repository = VideoTaskRepository()
    return _task_repository
