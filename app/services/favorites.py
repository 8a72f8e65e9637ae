import logging
from datetime import datetime, timezone
from typing import Optional, Set

from app.models import USER_FAVORITES
from app.models.users import Favorite
from app.services.firestore import FirestoreService, get_firestore_service

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class FavoriteManager:
    """User x task marks shown as favourites on the creations page."""

    def __init__(self, firestore_service: Optional[FirestoreService] = None):
        self.firestore_service = firestore_service or get_firestore_service()

    @staticmethod
    def _document_id(user_id: str, task_id: str) -> str:
        # One document per pair keeps adding idempotent
        return f"{user_id}_{task_id}"

    async def list_favorite_task_ids(self, user_id: str) -> Set[str]:
        favorites = await self.firestore_service.query_collection(
            collection_name=USER_FAVORITES,
            filters=[("user_id", "==", user_id)],
            model_class=Favorite,
        )
        return {favorite.task_id for favorite in favorites}

    async def add_favorite(self, user_id: str, task_id: str) -> None:
        await self.firestore_service.create_document(
            collection_name=USER_FAVORITES,
            document_data={
                "user_id": user_id,
                "task_id": task_id,
                "created_at": datetime.now(timezone.utc),
            },
            document_id=self._document_id(user_id, task_id),
        )
        logger.info(f"User {user_id} favourited task {task_id}")

    async def remove_favorite(self, user_id: str, task_id: str) -> None:
        await self.firestore_service.delete_document(
            collection_name=USER_FAVORITES,
            document_id=self._document_id(user_id, task_id),
        )


# Global manager instance
_favorite_manager = None


def get_favorite_manager() -> FavoriteManager:
    global _favorite_manager
    if _favorite_manager is None:
        _favorite_manager = FavoriteManager()
    return _favorite_manager
