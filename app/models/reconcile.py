"""
Reconciliation Data Models

Per-task outcomes and aggregate summaries of reconciliation and media
rehost passes.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TaskResult(BaseModel):
    """Outcome of reconciling a single task status row."""

    id: str = Field(..., description="Task status ID")
    external_task_id: Optional[str] = Field(None, description="Provider task ID")
    success: bool
    previous_status: Optional[str] = None
    new_status: Optional[str] = None
    updated: bool = Field(False, description="Whether the row was written")
    reason: Optional[str] = Field(None, description="Why the row took this path")
    error: Optional[str] = None


class ReconcileSummary(BaseModel):
    processed: int
    succeeded: int
    failed: int
    results: List[TaskResult] = Field(default_factory=list)


class ReconcileResponse(BaseModel):
    """Body returned to the cron trigger."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    processed: int
    success_count: int = Field(..., alias="successCount")
    fail_count: int = Field(..., alias="failCount")
    timestamp: datetime


class RehostResult(BaseModel):
    """Outcome of copying one completed task's media into our bucket."""

    id: str = Field(..., description="Task status ID")
    success: bool
    result_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    error: Optional[str] = None


class RehostSummary(BaseModel):
    processed: int
    succeeded: int
    failed: int
    results: List[RehostResult] = Field(default_factory=list)
