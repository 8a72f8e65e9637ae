"""
Models Package

This package contains database schema models organized by domain:
- tasks.py: Task definition and task status models
- users.py: Credits, subscription and favourite models
- provider.py: Video provider response schema and mapped status
- reconcile.py: Reconciliation pass results
- shared.py: Common base model and enumerations
"""

# Import all models for easy access
from app.models.provider import (
    GenerationModel,
    MappedStatus,
    ProviderTaskPayload,
)
from app.models.reconcile import (
    ReconcileResponse,
    ReconcileSummary,
    RehostResult,
    RehostSummary,
    TaskResult,
)
from app.models.shared import (
    NON_TERMINAL_STATES,
    TERMINAL_STATES,
    FirestoreBaseModel,
    StorageStatus,
    TaskState,
    TaskType,
)
from app.models.tasks import (
    BaseTaskDefinition,
    BaseTaskStatus,
    TaskDefinition,
    TaskStatus,
    TaskStatusDetail,
)
from app.models.users import (
    BaseUserCredits,
    BaseUserSubscription,
    Favorite,
    UserCredits,
    UserSubscription,
)

# Collection names
TASK_DEFINITIONS = "video_generation_task_definitions"
TASK_STATUSES = "video_generation_task_statuses"
USER_FAVORITES = "user_favorites"
USER_CREDITS = "user_credits"
USER_SUBSCRIPTIONS = "user_subscriptions"

# Collection model mappings for Firestore operations
COLLECTION_MODELS = {
    TASK_DEFINITIONS: TaskDefinition,
    TASK_STATUSES: TaskStatus,
    USER_FAVORITES: Favorite,
    USER_CREDITS: UserCredits,
    USER_SUBSCRIPTIONS: UserSubscription,
}

__all__ = [
    # Base models
    "FirestoreBaseModel",
    # Enums
    "TaskState",
    "TaskType",
    "StorageStatus",
    "NON_TERMINAL_STATES",
    "TERMINAL_STATES",
    # Task models
    "BaseTaskDefinition",
    "BaseTaskStatus",
    "TaskDefinition",
    "TaskStatus",
    "TaskStatusDetail",
    # User models
    "BaseUserCredits",
    "BaseUserSubscription",
    "Favorite",
    "UserCredits",
    "UserSubscription",
    # Provider models
    "GenerationModel",
    "MappedStatus",
    "ProviderTaskPayload",
    # Reconciliation models
    "ReconcileResponse",
    "ReconcileSummary",
    "RehostResult",
    "RehostSummary",
    "TaskResult",
    # Collection mappings
    "COLLECTION_MODELS",
    "TASK_DEFINITIONS",
    "TASK_STATUSES",
    "USER_FAVORITES",
    "USER_CREDITS",
    "USER_SUBSCRIPTIONS",
]
