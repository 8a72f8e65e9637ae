"""
Credit Manager

This module reads user credit balances. Balances are topped up and charged by
the billing process; generation routes only check that a user can afford a
task before submitting it.
"""

import logging
from datetime import datetime, timezone
from traceback import format_exc
from typing import Optional

from fastapi import HTTPException

from app.models import USER_CREDITS
from app.models.users import UserCredits
from app.services.firestore import FirestoreService, get_firestore_service

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class CreditManager:
    """Read access to user credit balances."""

    def __init__(self, firestore_service: Optional[FirestoreService] = None):
        self.firestore_service = firestore_service or get_firestore_service()

    async def get_credits(self, user_id: str) -> Optional[UserCredits]:
        """
        Get user's current credit record.

        Args:
            user_id: The user ID to get credits for

        Returns:
            UserCredits object or None if user has no credit record
        """
        try:
            return await self.firestore_service.get_document(
                collection_name=USER_CREDITS,
                document_id=user_id,
                model_class=UserCredits,
            )

        except Exception as e:
            logger.error(
                f"Failed to get user credits for {user_id}: {str(e)}\n{format_exc()}"
            )
            raise HTTPException(
                status_code=500, detail=f"Failed to retrieve user credits: {str(e)}"
            )

    async def get_credits_or_default(self, user_id: str) -> UserCredits:
        """Credit record of a user, or an empty balance when none exists yet."""
        credits = await self.get_credits(user_id)
        if credits is not None:
            return credits

        now = datetime.now(timezone.utc)
        return UserCredits(user_id=user_id, created_at=now, updated_at=now)

    async def has_sufficient_credits(self, user_id: str, amount: int) -> bool:
        credits = await self.get_credits(user_id)
        if credits is None:
            logger.warning(f"No credit record found for user {user_id}")
            return False

        if credits.credits_balance < amount:
            logger.warning(
                f"Insufficient credits for user {user_id}. "
                f"Available: {credits.credits_balance}, Requested: {amount}"
            )
            return False

        return True


# Global manager instance
_credit_manager = None


def get_credit_manager() -> CreditManager:
    global _credit_manager
    if _credit_manager is None:
        _credit_manager = CreditManager()
    return _credit_manager
