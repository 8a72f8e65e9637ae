"""
Translate provider payloads into internal task states.

Provider codes:
    5   -> queued
    10  -> processing
    99  -> completed (as does any payload carrying a result URL)
    -1  -> failed, as does every other code
"""

from typing import Optional

from app.models.provider import MappedStatus, ProviderTaskPayload, ProviderWork
from app.models.shared import TaskState

PROVIDER_QUEUED = 5
PROVIDER_PROCESSING = 10
PROVIDER_COMPLETED = 99
PROVIDER_FAILED = -1

DEFAULT_FAILURE_MESSAGE = "Video generation failed"


def _first_work(payload: ProviderTaskPayload) -> Optional[ProviderWork]:
    if payload.data.works:
        return payload.data.works[0]
    return None


def _resource_url(work: Optional[ProviderWork], attr: str) -> Optional[str]:
    if work is None:
        return None
    resource = getattr(work, attr)
    if resource is None or not resource.resource:
        return None
    return resource.resource


def map_provider_status(payload: ProviderTaskPayload) -> MappedStatus:
    """Map a decoded provider payload to an internal status. Never raises."""
    code = payload.status_code
    work = _first_work(payload)
    result_url = _resource_url(work, "resource")
    thumbnail_url = _resource_url(work, "cover")

    if code == PROVIDER_COMPLETED or result_url:
        return MappedStatus(
            status=TaskState.COMPLETED,
            result_url=result_url,
            thumbnail_url=thumbnail_url,
        )
    if code == PROVIDER_QUEUED:
        return MappedStatus(status=TaskState.QUEUED)
    if code == PROVIDER_PROCESSING:
        return MappedStatus(status=TaskState.PROCESSING)

    if code == PROVIDER_FAILED:
        message = payload.data.message or DEFAULT_FAILURE_MESSAGE
    else:
        message = payload.data.message or f"Unrecognized provider status: {code}"
    return MappedStatus(status=TaskState.FAILED, error_message=message)
