"""
Firestore access for task and account documents.

Documents are returned as the pydantic models registered in
app.models.COLLECTION_MODELS unless a model class is passed explicitly.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar

import firebase_admin
from firebase_admin import firestore
from google.cloud.firestore import Client, DocumentReference, Query

from app.models import COLLECTION_MODELS, FirestoreBaseModel
from config import FIRESTORE_DATABASE_NAME

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

T = TypeVar("T", bound=FirestoreBaseModel)

# (field, operator, value)
Filter = Tuple[str, str, Any]


class FirestoreService:
    def __init__(
        self,
        database_name: str = FIRESTORE_DATABASE_NAME,
        client: Optional[Client] = None,
    ):
        self.database_name = database_name
        self._client = client

    @property
    def client(self) -> Client:
        """Firestore client, created from the default Firebase app on first use."""
        if self._client is None:
            try:
                app = firebase_admin.get_app()
            except ValueError:
                app = firebase_admin.initialize_app()
            self._client = firestore.client(app, database_id=self.database_name)
        return self._client

    def get_collection_ref(self, collection_name: str):
        return self.client.collection(collection_name)

    def get_document_ref(
        self, collection_name: str, document_id: str
    ) -> DocumentReference:
        return self.client.collection(collection_name).document(document_id)

    @staticmethod
    def _to_model(
        collection_name: str,
        document_id: str,
        data: Dict[str, Any],
        model_class: Optional[Type[T]],
    ):
        data["id"] = document_id
        model_class = model_class or COLLECTION_MODELS.get(collection_name)
        return model_class(**data) if model_class else data

    async def create_document(
        self,
        collection_name: str,
        document_data: Dict[str, Any],
        document_id: Optional[str] = None,
    ) -> str:
        """
        Write a new document, stamping created_at and updated_at when absent.

        The timestamps are set on document_data itself so callers can build
        their model from it. Returns the document ID, a fresh UUID by default.
        """
        document_id = document_id or str(uuid.uuid4())
        now = datetime.now(timezone.utc)
        document_data.setdefault("created_at", now)
        document_data.setdefault("updated_at", now)

        try:
            self.get_document_ref(collection_name, document_id).set(document_data)
        except Exception as e:
            logger.error(f"Failed to create {collection_name}/{document_id}: {str(e)}")
            raise

        logger.info(f"Created {collection_name}/{document_id}")
        return document_id

    async def get_document(
        self,
        collection_name: str,
        document_id: str,
        model_class: Optional[Type[T]] = None,
    ) -> Optional[T]:
        try:
            snapshot = self.get_document_ref(collection_name, document_id).get()
        except Exception as e:
            logger.error(f"Failed to read {collection_name}/{document_id}: {str(e)}")
            raise

        if not snapshot.exists:
            return None
        return self._to_model(
            collection_name, snapshot.id, snapshot.to_dict(), model_class
        )

    async def update_document(
        self, collection_name: str, document_id: str, update_data: Dict[str, Any]
    ) -> bool:
        """
        Merge update_data into an existing document and bump updated_at.

        Raises google.api_core.exceptions.NotFound for a missing document.
        """
        update_data["updated_at"] = datetime.now(timezone.utc)

        try:
            self.get_document_ref(collection_name, document_id).update(update_data)
        except Exception as e:
            logger.error(f"Failed to update {collection_name}/{document_id}: {str(e)}")
            raise

        logger.info(f"Updated {collection_name}/{document_id}")
        return True

    async def delete_document(self, collection_name: str, document_id: str) -> bool:
        try:
            self.get_document_ref(collection_name, document_id).delete()
        except Exception as e:
            logger.error(f"Failed to delete {collection_name}/{document_id}: {str(e)}")
            raise

        logger.info(f"Deleted {collection_name}/{document_id}")
        return True

    async def query_collection(
        self,
        collection_name: str,
        filters: Optional[List[Filter]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        model_class: Optional[Type[T]] = None,
    ) -> List[T]:
        """
        Run a filtered query.

        Args:
            collection_name: Collection to query
            filters: (field, operator, value) tuples, all of which must match
            order_by: Field to sort on
            descending: Sort largest/newest first
            limit: Maximum number of documents
            offset: Number of documents to skip
            model_class: Model to build instead of the collection default

        Returns:
            Matching documents as models
        """
        query = self.get_collection_ref(collection_name)
        for field, operator, value in filters or []:
            query = query.where(field, operator, value)
        if order_by:
            direction = Query.DESCENDING if descending else Query.ASCENDING
            query = query.order_by(order_by, direction=direction)
        if offset:
            query = query.offset(offset)
        if limit:
            query = query.limit(limit)

        try:
            return [
                self._to_model(collection_name, doc.id, doc.to_dict(), model_class)
                for doc in query.stream()
            ]
        except Exception as e:
            logger.error(f"Failed to query {collection_name}: {str(e)}")
            raise

    async def get_user_documents(
        self,
        collection_name: str,
        user_id: str,
        limit: Optional[int] = None,
        model_class: Optional[Type[T]] = None,
    ) -> List[T]:
        """Documents owned by user_id, newest first."""
        return await self.query_collection(
            collection_name=collection_name,
            filters=[("user_id", "==", user_id)],
            order_by="created_at",
            descending=True,
            limit=limit,
            model_class=model_class,
        )


# Global service instance
_firestore_service = None


def get_firestore_service() -> FirestoreService:
    global _firestore_service
    if _firestore_service is None:
        _firestore_service = FirestoreService()
    return _firestore_service
