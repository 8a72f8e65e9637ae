"""Shared test fixtures."""

import os

# config.py refuses to import without credentials
os.environ.setdefault("KARAVIDEO_ENV", "d")
os.environ.setdefault("KARAVIDEO_AUTH_JWT_KEY", "test-jwt-secret-with-at-least-32-bytes")
os.environ.setdefault("KARAVIDEO_302_API_KEY", "test-302-api-key")

import pytest  # noqa: E402

from fakes import FakeFirestoreClient, FakeStorageClient  # noqa: E402

from app.services.firestore import FirestoreService  # noqa: E402
from app.services.task_repository import VideoTaskRepository  # noqa: E402


@pytest.fixture()
def firestore_client() -> FakeFirestoreClient:
    return FakeFirestoreClient()


@pytest.fixture()
def firestore_service(firestore_client) -> FirestoreService:
    return FirestoreService(database_name="test", client=firestore_client)


@pytest.fixture()
def repository(firestore_service) -> VideoTaskRepository:
    return VideoTaskRepository(firestore_service)


@pytest.fixture()
def storage_client() -> FakeStorageClient:
    return FakeStorageClient()
