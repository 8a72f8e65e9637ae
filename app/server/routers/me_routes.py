import logging
from datetime import datetime
from traceback import format_exc
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from app.models.shared import TaskState
from app.models.users import UserCredits, UserSubscription
from app.server.auth import User, get_current_user
from app.services.favorites import FavoriteManager, get_favorite_manager
from app.services.payments.credit_manager import CreditManager, get_credit_manager
from app.services.payments.subscription_manager import (
    SubscriptionManager,
    get_subscription_manager,
)
from app.services.task_repository import VideoTaskRepository, get_task_repository

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create a router for user-specific operations
me_router = APIRouter()

TITLE_LENGTH = 20


class Creation(BaseModel):
    id: str
    type: str
    title: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    url: Optional[str] = None
    created_at: Optional[datetime] = None
    status: str
    is_favorite: bool = False


class CreationsResponse(BaseModel):
    data: List[Creation]


class FavoriteResponse(BaseModel):
    task_id: str
    is_favorite: bool


def _creation_title(prompt: Optional[str]) -> str:
    if not prompt:
        return "Untitled"
    if len(prompt) <= TITLE_LENGTH:
        return prompt
    return f"{prompt[:TITLE_LENGTH]}..."


def _creation_status(status: Optional[str]) -> str:
    # Clients only distinguish finished, failed and everything in between
    if status in (TaskState.COMPLETED.value, TaskState.FAILED.value):
        return status
    return TaskState.PROCESSING.value


@me_router.get("/creations", response_model=CreationsResponse)
async def get_user_creations(
    current_user: Annotated[User, Depends(get_current_user)],
    repository: Annotated[VideoTaskRepository, Depends(get_task_repository)],
    favorite_manager: Annotated[FavoriteManager, Depends(get_favorite_manager)],
) -> CreationsResponse:
    """Get all video tasks of the current user, newest first."""
    try:
        definitions = await repository.list_user_definitions(current_user.user_id)
        favorite_ids = await favorite_manager.list_favorite_task_ids(
            current_user.user_id
        )

        creations = []
        for definition in definitions:
            task_status = await repository.get_status_for_task(definition.id)
            creations.append(
                Creation(
                    id=definition.id,
                    type=definition.task_type,
                    title=_creation_title(definition.prompt),
                    description=definition.prompt,
                    thumbnail_url=(task_status.thumbnail_url if task_status else None)
                    or definition.start_img_path,
                    url=task_status.result_url if task_status else None,
                    created_at=definition.created_at,
                    status=_creation_status(
                        task_status.status if task_status else None
                    ),
                    is_favorite=definition.id in favorite_ids,
                )
            )

        return CreationsResponse(data=creations)

    except Exception as e:
        logger.error(f"Failed to fetch user creations: {str(e)}\n{format_exc()}")
        raise HTTPException(
            status_code=500, detail=f"Failed to fetch user creations: {str(e)}"
        )


@me_router.get("/credits", response_model=UserCredits)
async def get_user_credits(
    current_user: Annotated[User, Depends(get_current_user)],
    credit_manager: Annotated[CreditManager, Depends(get_credit_manager)],
) -> UserCredits:
    """Get the credit balance of the current user."""
    return await credit_manager.get_credits_or_default(current_user.user_id)


@me_router.get("/subscription", response_model=UserSubscription)
async def get_user_subscription(
    current_user: Annotated[User, Depends(get_current_user)],
    subscription_manager: Annotated[
        SubscriptionManager, Depends(get_subscription_manager)
    ],
) -> UserSubscription:
    """Get the latest subscription of the current user."""
    subscription = await subscription_manager.get_latest_subscription(
        current_user.user_id
    )
    if subscription is None:
        raise HTTPException(status_code=404, detail="No subscription found")
    return subscription


@me_router.post("/favorites/{task_id}", response_model=FavoriteResponse)
async def add_favorite(
    task_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    repository: Annotated[VideoTaskRepository, Depends(get_task_repository)],
    favorite_manager: Annotated[FavoriteManager, Depends(get_favorite_manager)],
) -> FavoriteResponse:
    """Mark one of the current user's tasks as a favourite."""
    definition = await repository.get_definition(task_id)
    if definition is None or definition.user_id != current_user.user_id:
        raise HTTPException(status_code=404, detail="Task not found")

    try:
        await favorite_manager.add_favorite(current_user.user_id, task_id)
    except Exception as e:
        logger.error(f"Failed to add favourite: {str(e)}\n{format_exc()}")
        raise HTTPException(status_code=500, detail=f"Failed to add favourite: {str(e)}")

    return FavoriteResponse(task_id=task_id, is_favorite=True)


@me_router.delete("/favorites/{task_id}", response_model=FavoriteResponse)
async def remove_favorite(
    task_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    favorite_manager: Annotated[FavoriteManager, Depends(get_favorite_manager)],
) -> FavoriteResponse:
    """Remove a favourite mark. Removing an unmarked task is not an error."""
    try:
        await favorite_manager.remove_favorite(current_user.user_id, task_id)
    except Exception as e:
        logger.error(f"Failed to remove favourite: {str(e)}\n{format_exc()}")
        raise HTTPException(
            status_code=500, detail=f"Failed to remove favourite: {str(e)}"
        )

    return FavoriteResponse(task_id=task_id, is_favorite=False)
