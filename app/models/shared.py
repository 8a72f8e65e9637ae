"""
Shared Data Models

This module contains the base Firestore model and the enumerations that are
used across task, account and API response schemas.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class FirestoreBaseModel(BaseModel):
    """Base model for all Firestore documents with common configuration."""

    model_config = ConfigDict(
        # Allow population by field name or alias
        populate_by_name=True,
        # Convert datetime objects to timestamps for Firestore
        json_encoders={
            datetime: lambda dt: dt,  # Firestore handles datetime conversion
        },
        # Validate assignments
        validate_assignment=True,
        # Use enum values instead of names
        use_enum_values=True,
    )


# Enums
class TaskState(str, Enum):
    """Lifecycle state of a video generation task.

    PENDING and QUEUED are synonyms: both mean the provider accepted the task
    but has not started it yet.
    """

    PENDING = "pending"
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


WAITING_STATES = frozenset({TaskState.PENDING.value, TaskState.QUEUED.value})
NON_TERMINAL_STATES = WAITING_STATES | {TaskState.PROCESSING.value}
TERMINAL_STATES = frozenset({TaskState.COMPLETED.value, TaskState.FAILED.value})


def _state_value(status) -> str:
    return status.value if isinstance(status, Enum) else status


def is_terminal(status) -> bool:
    return _state_value(status) in TERMINAL_STATES


def same_state(a, b) -> bool:
    """Compare two task states, treating pending and queued as equal."""
    a, b = _state_value(a), _state_value(b)
    if a in WAITING_STATES and b in WAITING_STATES:
        return True
    return a == b


class StorageStatus(str, Enum):
    """Progress of copying provider media into our own bucket."""

    PENDING = "pending"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    FAILED = "failed"


class TaskType(str, Enum):
    """Kind of generation requested."""

    TEXT_TO_VIDEO = "video"
    IMAGE_TO_VIDEO = "i2v"
    IMAGE = "image"
