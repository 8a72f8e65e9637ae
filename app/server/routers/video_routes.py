import asyncio
import logging
import os
import uuid
from datetime import datetime
from traceback import format_exc
from typing import Annotated, Any, Callable, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, ConfigDict, Field

from app.models.provider import GenerationModel
from app.models.shared import TaskState, TaskType
from app.models.tasks import TaskStatusDetail
from app.server.auth import User, get_current_user
from app.services.errors import (
    PersistenceError,
    ProviderUnavailable,
    StorageUploadError,
    TaskValidationError,
)
from app.services.payments.credit_manager import CreditManager, get_credit_manager
from app.services.provider.common import (
    DEFAULT_ASPECT_RATIO,
    DEFAULT_CFG,
    ImageToVideoRequest,
    TextToVideoRequest,
    VideoProviderService,
    get_generation_model,
)
from app.services.provider.kling_302 import get_provider_service
from app.services.storage import (
    MediaStorageService,
    generate_storage_key,
    get_storage_service,
)
from app.services.task_repository import VideoTaskRepository, get_task_repository

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create a router for video generation operations
video_router = APIRouter()

LATEST_VIDEOS_LIMIT = 8


class TextToVideoBody(BaseModel):
    model: str = "kling-1.6"
    prompt: str = Field(..., min_length=1)
    negative_prompt: str = ""
    cfg: float = Field(DEFAULT_CFG, ge=0, le=1)
    aspect_ratio: str = DEFAULT_ASPECT_RATIO


class SubmitVideoResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    task_id: str = Field(..., alias="taskId")
    status: str


class LatestVideo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    video_url: Optional[str] = Field(None, alias="videoUrl")
    created_at: Optional[datetime] = None
    title: str


def _resolve_model(model_id: str, task_type: TaskType) -> GenerationModel:
    model = get_generation_model(model_id)
    if model is None or model.task_type != task_type.value:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported model for {task_type.value}: {model_id}",
        )
    return model


async def _ensure_credits(
    user: User, model: GenerationModel, credit_manager: CreditManager
) -> None:
    if not await credit_manager.has_sufficient_credits(user.user_id, model.credits):
        raise HTTPException(status_code=400, detail="Insufficient credits")


async def _submit_task(
    user: User,
    model_id: str,
    model: GenerationModel,
    definition_fields: Dict[str, Any],
    submit: Callable[[], str],
    repository: VideoTaskRepository,
) -> SubmitVideoResponse:
    """Record a task definition, submit it to the provider and start tracking it."""
    try:
        definition = await repository.create_definition(
            {
                "user_id": user.user_id,
                "task_type": model.task_type,
                "model": model_id,
                "high_quality": model.high_quality,
                "credits": model.credits,
                "additional_params": {
                    "duration": f"{model.duration}s",
                    "api_endpoint": model.endpoint,
                },
                **definition_fields,
            }
        )
    except PersistenceError as e:
        logger.error(f"Failed to create task definition: {str(e)}\n{format_exc()}")
        raise HTTPException(status_code=500, detail="Failed to create task record")

    try:
        external_task_id = await asyncio.to_thread(submit)
    except ProviderUnavailable as e:
        logger.error(
            f"Provider rejected task {definition.id}: {str(e)}\n{format_exc()}"
        )
        raise HTTPException(
            status_code=502, detail=f"Video generation service failed: {str(e)}"
        )

    try:
        await repository.create_status(definition.id, external_task_id)
    except (PersistenceError, TaskValidationError) as e:
        logger.error(
            f"Failed to create status for task {definition.id} "
            f"({external_task_id}): {str(e)}\n{format_exc()}"
        )
        raise HTTPException(
            status_code=500, detail="Failed to create task status record"
        )

    logger.info(
        f"Task {definition.id} submitted for user {user.user_id} as {external_task_id}"
    )
    return SubmitVideoResponse(
        message="Task created", task_id=definition.id, status=TaskState.PENDING.value
    )


@video_router.post("/text2video", response_model=SubmitVideoResponse)
async def text_to_video(
    body: TextToVideoBody,
    current_user: Annotated[User, Depends(get_current_user)],
    repository: Annotated[VideoTaskRepository, Depends(get_task_repository)],
    provider: Annotated[VideoProviderService, Depends(get_provider_service)],
    credit_manager: Annotated[CreditManager, Depends(get_credit_manager)],
) -> SubmitVideoResponse:
    """Submit a text-to-video generation task."""
    model = _resolve_model(body.model, TaskType.TEXT_TO_VIDEO)
    await _ensure_credits(current_user, model, credit_manager)

    request = TextToVideoRequest(
        prompt=body.prompt,
        negative_prompt=body.negative_prompt,
        cfg=body.cfg,
        aspect_ratio=body.aspect_ratio,
    )

    return await _submit_task(
        user=current_user,
        model_id=body.model,
        model=model,
        definition_fields={
            "prompt": body.prompt,
            "negative_prompt": body.negative_prompt,
            "aspect_ratio": body.aspect_ratio,
            "cfg": body.cfg,
        },
        submit=lambda: provider.submit_text_to_video(model, request),
        repository=repository,
    )


@video_router.post("/image2video", response_model=SubmitVideoResponse)
async def image_to_video(
    current_user: Annotated[User, Depends(get_current_user)],
    repository: Annotated[VideoTaskRepository, Depends(get_task_repository)],
    provider: Annotated[VideoProviderService, Depends(get_provider_service)],
    credit_manager: Annotated[CreditManager, Depends(get_credit_manager)],
    storage_service: Annotated[MediaStorageService, Depends(get_storage_service)],
    input_image: Annotated[UploadFile, File()],
    prompt: Annotated[str, Form(min_length=1)],
    model: Annotated[str, Form()] = "kling-1.6-i2v",
    negative_prompt: Annotated[str, Form()] = "",
    cfg: Annotated[float, Form(ge=0, le=1)] = DEFAULT_CFG,
) -> SubmitVideoResponse:
    """Submit an image-to-video generation task."""
    generation_model = _resolve_model(model, TaskType.IMAGE_TO_VIDEO)
    await _ensure_credits(current_user, generation_model, credit_manager)

    image = await input_image.read()
    if not image:
        raise HTTPException(status_code=400, detail="Input image is empty")

    content_type = input_image.content_type or "image/png"
    filename = input_image.filename or "input.png"
    extension = os.path.splitext(filename)[1].lstrip(".").lower() or "png"

    try:
        start_img_path = await asyncio.to_thread(
            storage_service.upload_bytes,
            image,
            generate_storage_key(
                current_user.user_id, str(uuid.uuid4()), "image", extension
            ),
            content_type,
        )
    except StorageUploadError as e:
        logger.error(f"Failed to store input image: {str(e)}\n{format_exc()}")
        raise HTTPException(status_code=500, detail="Failed to store input image")

    request = ImageToVideoRequest(
        image=image,
        filename=filename,
        content_type=content_type,
        prompt=prompt,
        negative_prompt=negative_prompt,
        cfg=cfg,
    )

    return await _submit_task(
        user=current_user,
        model_id=model,
        model=generation_model,
        definition_fields={
            "prompt": prompt,
            "negative_prompt": negative_prompt,
            "cfg": cfg,
            "start_img_path": start_img_path,
        },
        submit=lambda: provider.submit_image_to_video(generation_model, request),
        repository=repository,
    )


@video_router.get("/status/{external_task_id}", response_model=TaskStatusDetail)
async def get_video_status(
    external_task_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    repository: Annotated[VideoTaskRepository, Depends(get_task_repository)],
) -> TaskStatusDetail:
    """Get the stored status of one of the caller's tasks."""
    try:
        task_status = await repository.get_status_by_external_id(external_task_id)
        if task_status is None:
            raise HTTPException(status_code=404, detail="Task not found")

        definition = await repository.get_definition(task_status.task_id)
        if definition is None or definition.user_id != current_user.user_id:
            raise HTTPException(
                status_code=403, detail="You don't have permission to view this task"
            )

        return TaskStatusDetail(status=task_status, definition=definition)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to get task status: {str(e)}\n{format_exc()}")
        raise HTTPException(
            status_code=500, detail=f"Failed to get task status: {str(e)}"
        )


@video_router.get("/latest", response_model=List[LatestVideo])
async def get_latest_videos(
    repository: Annotated[VideoTaskRepository, Depends(get_task_repository)],
) -> List[LatestVideo]:
    """Most recently completed videos, for the landing page."""
    try:
        statuses = await repository.list_completed(
            limit=LATEST_VIDEOS_LIMIT, newest_first=True
        )

        videos = []
        for task_status in statuses:
            definition = await repository.get_definition(task_status.task_id)
            videos.append(
                LatestVideo(
                    id=task_status.id,
                    video_url=task_status.result_url,
                    created_at=task_status.created_at,
                    title=(definition.prompt if definition else None)
                    or "Untitled video",
                )
            )
        return videos

    except Exception as e:
        logger.error(f"Failed to get latest videos: {str(e)}\n{format_exc()}")
        raise HTTPException(
            status_code=500, detail=f"Failed to get latest videos: {str(e)}"
        )
