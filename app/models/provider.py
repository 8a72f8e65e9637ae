"""
Provider Data Models

Response schema of the Kling gateway (302.ai) and the internal shapes the
status mapper produces. Payloads are decoded strictly: a body that does not
match these models is a schema mismatch, not a guess at another layout.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.shared import TaskState


class ProviderResource(BaseModel):
    model_config = ConfigDict(extra="ignore")

    resource: Optional[str] = None
    duration: Optional[float] = None
    height: Optional[int] = None
    width: Optional[int] = None


class ProviderWork(BaseModel):
    model_config = ConfigDict(extra="ignore")

    resource: Optional[ProviderResource] = None
    cover: Optional[ProviderResource] = None
    status: Optional[int] = None


class ProviderTask(BaseModel):
    model_config = ConfigDict(extra="ignore")

    # Fetch responses may omit the id; submissions must carry it
    id: Optional[str] = None
    status: Optional[int] = None


class ProviderTaskData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    task: Optional[ProviderTask] = None
    status: Optional[int] = None
    message: Optional[str] = None
    works: List[ProviderWork] = Field(default_factory=list)


class ProviderTaskPayload(BaseModel):
    """Body of GET /klingai/task/{id}/fetch and of submission responses."""

    model_config = ConfigDict(extra="ignore")

    data: ProviderTaskData
    message: Optional[str] = None

    @property
    def status_code(self) -> Optional[int]:
        """Provider status code, taken from the task and falling back to data."""
        if self.data.task is not None and self.data.task.status is not None:
            return self.data.task.status
        return self.data.status


class MappedStatus(BaseModel):
    """Internal view of a provider payload."""

    status: TaskState
    result_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    error_message: Optional[str] = None


class GenerationModel(BaseModel):
    """An entry of the generation model catalogue."""

    name: str
    endpoint: str
    task_type: str
    duration: int
    high_quality: bool
    credits: int
