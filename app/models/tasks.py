"""
Task Data Models

This module contains the two records that describe a video generation job:
the immutable request (task definition) and its mutable tracking record
(task status).
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from app.models.shared import FirestoreBaseModel, StorageStatus, TaskState


class BaseTaskDefinition(BaseModel):
    """Generation request as submitted by a user. Never mutated after creation."""

    user_id: str = Field(..., description="Owning user ID")
    task_type: str = Field(..., description="Task type (video, i2v, image)")
    model: str = Field(..., description="Model identifier")
    high_quality: bool = Field(False, description="Whether the HQ variant was used")
    prompt: Optional[str] = Field(None, description="Prompt text")
    negative_prompt: Optional[str] = Field(None, description="Negative prompt text")
    aspect_ratio: Optional[str] = Field(None, description="Output aspect ratio")
    cfg: Optional[float] = Field(
        None, ge=0, le=1, description="Creativity parameter (0..1)"
    )
    credits: int = Field(..., ge=0, description="Credit cost of the task")
    start_img_path: Optional[str] = Field(None, description="Source image reference")
    end_img_path: Optional[str] = Field(None, description="End image reference")
    created_at: datetime = Field(..., description="Submission timestamp")
    additional_params: Dict[str, Any] = Field(
        default_factory=dict, description="Free-form parameters (duration, endpoint)"
    )


class TaskDefinition(BaseTaskDefinition, FirestoreBaseModel):
    """Document model for the video_generation_task_definitions collection."""

    id: str = Field(..., description="Document ID")


class BaseTaskStatus(BaseModel):
    """Tracking record of a submitted task."""

    task_id: str = Field(..., description="Owning task definition ID")
    external_task_id: Optional[str] = Field(
        None, description="Task ID assigned by the provider"
    )
    status: TaskState = Field(TaskState.PENDING, description="Lifecycle state")
    result_url: Optional[str] = Field(None, description="Generated video URL")
    thumbnail_url: Optional[str] = Field(None, description="Video cover URL")
    error_message: Optional[str] = Field(None, description="Failure reason")
    storage_status: StorageStatus = Field(
        StorageStatus.PENDING, description="Media rehost progress"
    )
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")


class TaskStatus(BaseTaskStatus, FirestoreBaseModel):
    """Document model for the video_generation_task_statuses collection."""

    id: str = Field(..., description="Document ID")


class TaskStatusDetail(BaseModel):
    """Task status joined with its definition, for status endpoints."""

    status: TaskStatus
    definition: Optional[TaskDefinition] = None
