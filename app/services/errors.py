"""
Error taxonomy for video task processing.

Every error raised while reconciling a task is scoped to that task: the
reconciler records it and moves on, route handlers turn it into an
HTTPException.
"""

from typing import Optional


class VideoTaskError(Exception):
    """Base class for task processing errors."""


class ProviderUnavailable(VideoTaskError):
    """The provider could not be reached or did not answer usefully.

    The stored task status must be left untouched; the next pass retries.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SchemaMismatch(ProviderUnavailable):
    """The provider answered with JSON that does not match the documented schema."""


class PersistenceError(VideoTaskError):
    """A read or write against the document store failed."""


class TaskStatusNotFound(PersistenceError):
    def __init__(self, status_id: str):
        super().__init__(f"Task status {status_id} not found")
        self.status_id = status_id


class TerminalStatusConflict(PersistenceError):
    """An update tried to change the status of a completed or failed task."""

    def __init__(self, status_id: str, stored_status: str):
        super().__init__(f"Task status {status_id} is already {stored_status}")
        self.status_id = status_id
        self.stored_status = stored_status


class StorageUploadError(VideoTaskError):
    """Media could not be downloaded from its source or uploaded to the bucket."""


class TaskValidationError(VideoTaskError):
    """A task row or request is malformed, e.g. it has no external task ID."""
