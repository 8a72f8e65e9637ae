import logging
from traceback import format_exc
from typing import Optional

from fastapi import HTTPException

from app.models import USER_SUBSCRIPTIONS
from app.models.users import UserSubscription
from app.services.firestore import FirestoreService, get_firestore_service

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class SubscriptionManager:
    """Read access to user subscription records."""

    def __init__(self, firestore_service: Optional[FirestoreService] = None):
        self.firestore_service = firestore_service or get_firestore_service()

    async def get_latest_subscription(self, user_id: str) -> Optional[UserSubscription]:
        """
        Get the most recently created subscription of a user.

        Args:
            user_id: The user ID

        Returns:
            The newest UserSubscription or None when the user never subscribed
        """
        try:
            subscriptions = await self.firestore_service.get_user_documents(
                collection_name=USER_SUBSCRIPTIONS,
                user_id=user_id,
                limit=1,
                model_class=UserSubscription,
            )
            return subscriptions[0] if subscriptions else None

        except Exception as e:
            logger.error(
                f"Failed to get subscription for user {user_id}: {str(e)}\n{format_exc()}"
            )
            raise HTTPException(
                status_code=500, detail=f"Failed to retrieve subscription: {str(e)}"
            )


# Global manager instance
_subscription_manager = None


def get_subscription_manager() -> SubscriptionManager:
    global _subscription_manager
    if _subscription_manager is None:
        _subscription_manager = SubscriptionManager()
    return _subscription_manager
