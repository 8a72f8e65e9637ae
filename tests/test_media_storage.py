"""Tests for bucket uploads and the completed-media rehost pass."""

import asyncio
import re

import pytest
import requests

from fakes import FakeResponse, FakeSession

from app.services.errors import StorageUploadError
from app.services.media_rehost import MediaRehoster
from app.services.storage import MediaStorageService, generate_storage_key
from config import StorageSettings

SETTINGS = StorageSettings(
    bucket_name="media", public_url="https://media.example.com"
)


def _storage(storage_client, *responses) -> MediaStorageService:
    return MediaStorageService(
        SETTINGS, client=storage_client, session=FakeSession(*responses)
    )


class TestGenerateStorageKey:
    def test_key_layout(self):
        key = generate_storage_key("user-1", "task-9", "video", "mp4")
        assert re.fullmatch(r"users/user-1/videos/task-9_\d+_[0-9a-f]{6}\.mp4", key)

    def test_keys_are_unique(self):
        keys = {generate_storage_key("u", "t", "thumbnail", "jpg") for _ in range(20)}
        assert len(keys) == 20


class TestMediaStorageService:
    def test_upload_sets_content_type_and_cache_control(self, storage_client):
        storage = _storage(storage_client)

        url = storage.upload_bytes(b"video", "users/u/videos/t.mp4", "video/mp4")

        stored = storage_client.bucket("media").objects["users/u/videos/t.mp4"]
        assert url == "https://media.example.com/users/u/videos/t.mp4"
        assert stored["data"] == b"video"
        assert stored["content_type"] == "video/mp4"
        assert stored["cache_control"] == "max-age=31536000"

    def test_upload_failure_is_storage_error(self, storage_client):
        storage_client.bucket("media").fail_uploads = True
        with pytest.raises(StorageUploadError):
            _storage(storage_client).upload_bytes(b"x", "k.mp4")

    def test_rehost_downloads_and_uploads(self, storage_client):
        storage = _storage(storage_client, FakeResponse(200, content=b"mp4-bytes"))

        url = storage.rehost_from_url(
            "https://provider.example.com/v.mp4", "k.mp4", "video/mp4"
        )

        assert url == "https://media.example.com/k.mp4"
        assert storage_client.bucket("media").objects["k.mp4"]["data"] == b"mp4-bytes"
        assert storage.session.calls[0]["timeout"] == 120

    def test_rehosting_hosted_url_twice_uploads_nothing(self, storage_client):
        storage = _storage(storage_client)
        hosted = "https://media.example.com/users/u/videos/t.mp4"

        assert storage.rehost_from_url(hosted, "k1.mp4") == hosted
        assert storage.rehost_from_url(hosted, "k2.mp4") == hosted

        assert storage.session.calls == []
        assert storage_client.bucket("media").objects == {}

    def test_lookalike_domain_is_not_hosted(self, storage_client):
        storage = _storage(storage_client)
        assert not storage.is_hosted("https://media.example.com.evil.io/x.mp4")
        assert not storage.is_hosted(None)

    def test_download_failure_is_storage_error(self, storage_client):
        storage = _storage(storage_client, FakeResponse(404))
        with pytest.raises(StorageUploadError):
            storage.rehost_from_url("https://provider.example.com/gone.mp4", "k.mp4")

    def test_download_connection_error_is_storage_error(self, storage_client):
        storage = _storage(storage_client, requests.ConnectionError("reset"))
        with pytest.raises(StorageUploadError):
            storage.rehost_from_url("https://provider.example.com/v.mp4", "k.mp4")


class TestMediaRehoster:
    def test_completed_media_is_copied_into_bucket(
        self, firestore_client, repository, storage_client
    ):
        firestore_client.seed_definition("def-a", user_id="user-7")
        firestore_client.seed_status(
            "a",
            status="completed",
            result_url="https://provider.example.com/a.mp4",
            thumbnail_url="https://provider.example.com/a.jpg",
        )
        storage = _storage(
            storage_client,
            FakeResponse(200, content=b"video"),
            FakeResponse(200, content=b"cover"),
        )

        summary = asyncio.run(MediaRehoster(repository, storage).rehost_completed())

        stored = firestore_client.status("a")
        assert summary.succeeded == 1
        assert stored["storage_status"] == "completed"
        assert stored["status"] == "completed"
        assert stored["result_url"].startswith(
            "https://media.example.com/users/user-7/videos/def-a_"
        )
        assert stored["thumbnail_url"].startswith(
            "https://media.example.com/users/user-7/thumbnails/def-a_"
        )
        assert len(storage_client.bucket("media").objects) == 2

    def test_already_rehosted_rows_are_skipped(
        self, firestore_client, repository, storage_client
    ):
        firestore_client.seed_status(
            "a",
            status="completed",
            storage_status="completed",
            result_url="https://media.example.com/users/u/videos/a.mp4",
        )
        firestore_client.seed_status("b", status="processing")
        storage = _storage(storage_client)

        summary = asyncio.run(MediaRehoster(repository, storage).rehost_completed())

        assert summary.processed == 0
        assert storage.session.calls == []

    def test_failed_download_marks_upload_failed(
        self, firestore_client, repository, storage_client
    ):
        firestore_client.seed_status(
            "a", status="completed", result_url="https://provider.example.com/a.mp4"
        )
        storage = _storage(storage_client, FakeResponse(500))

        summary = asyncio.run(MediaRehoster(repository, storage).rehost_completed())

        stored = firestore_client.status("a")
        assert summary.failed == 1
        assert stored["storage_status"] == "failed"
        assert stored["result_url"] == "https://provider.example.com/a.mp4"

    def test_completed_row_without_result_url_is_marked_failed(
        self, firestore_client, repository, storage_client
    ):
        firestore_client.seed_status("a", status="completed")

        summary = asyncio.run(
            MediaRehoster(repository, _storage(storage_client)).rehost_completed()
        )

        assert summary.failed == 1
        assert firestore_client.status("a")["storage_status"] == "failed"
