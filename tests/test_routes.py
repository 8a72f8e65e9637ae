"""HTTP tests for the cron, video and account routes."""

from datetime import timedelta

import jwt
import pytest
from fastapi.testclient import TestClient

from fakes import NOW, FakeProvider, FakeSession, provider_body

from app.models import USER_CREDITS, USER_FAVORITES, USER_SUBSCRIPTIONS
from app.server.main import app
from app.services.errors import ProviderUnavailable
from app.services.favorites import FavoriteManager, get_favorite_manager
from app.services.media_rehost import MediaRehoster, get_media_rehoster
from app.services.payments.credit_manager import CreditManager, get_credit_manager
from app.services.payments.subscription_manager import (
    SubscriptionManager,
    get_subscription_manager,
)
from app.services.provider.kling_302 import get_provider_service
from app.services.reconciler import TaskReconciler, get_task_reconciler
from app.services.storage import MediaStorageService, get_storage_service
from app.services.task_repository import get_task_repository
from config import AUTH_JWT_KEY, ReconcileSettings, StorageSettings


def _token(user_id: str = "user-1") -> str:
    return jwt.encode(
        {"sub": user_id, "aud": "authenticated", "email": f"{user_id}@example.com"},
        AUTH_JWT_KEY,
        algorithm="HS256",
    )


def _auth(user_id: str = "user-1"):
    return {"Authorization": f"Bearer {_token(user_id)}"}


@pytest.fixture()
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture()
def client(firestore_service, repository, storage_client, provider):
    storage = MediaStorageService(
        StorageSettings(bucket_name="media", public_url="https://media.example.com"),
        client=storage_client,
        session=FakeSession(),
    )
    reconciler = TaskReconciler(
        repository=repository,
        provider=provider,
        settings=ReconcileSettings(max_concurrency=3, stale_processing_hours=24),
        clock=lambda: NOW,
    )
    app.dependency_overrides = {
        get_task_repository: lambda: repository,
        get_provider_service: lambda: provider,
        get_storage_service: lambda: storage,
        get_credit_manager: lambda: CreditManager(firestore_service),
        get_subscription_manager: lambda: SubscriptionManager(firestore_service),
        get_favorite_manager: lambda: FavoriteManager(firestore_service),
        get_task_reconciler: lambda: reconciler,
        get_media_rehoster: lambda: MediaRehoster(repository, storage),
    }
    yield TestClient(app)
    app.dependency_overrides = {}


def _seed_credits(firestore_client, user_id="user-1", balance=5):
    firestore_client.seed(
        USER_CREDITS,
        user_id,
        user_id=user_id,
        credits_balance=balance,
        created_at=NOW,
        updated_at=NOW,
    )


class TestCronRoutes:
    def test_update_video_status_reports_counts(
        self, client, firestore_client, provider
    ):
        for name in "abcde":
            firestore_client.seed_status(name, status="pending")
            provider.bodies[f"ext-{name}"] = provider_body(10, task_id=f"ext-{name}")
        provider.bodies["ext-d"] = ProviderUnavailable("Provider request timed out")

        response = client.get("/cron/update-video-status")

        body = response.json()
        assert response.status_code == 200
        assert body["success"] is True
        assert body["processed"] == 5
        assert body["successCount"] == 4
        assert body["failCount"] == 1
        assert "timestamp" in body

    def test_update_video_status_with_nothing_to_do(self, client):
        body = client.get("/cron/update-video-status").json()
        assert (body["processed"], body["successCount"], body["failCount"]) == (0, 0, 0)

    def test_listing_failure_is_500(self, client, firestore_client):
        firestore_client.failing.add("stream")

        response = client.get("/cron/update-video-status")

        assert response.status_code == 500
        assert response.json()["success"] is False

    def test_rehost_media(self, client, firestore_client):
        firestore_client.seed_status(
            "a",
            status="completed",
            result_url="https://media.example.com/users/u/videos/a.mp4",
        )

        response = client.post("/cron/rehost-media")

        assert response.status_code == 200
        assert response.json()["succeeded"] == 1
        assert firestore_client.status("a")["storage_status"] == "completed"


class TestSubmitRoutes:
    def test_text_to_video_creates_definition_and_status(
        self, client, firestore_client, provider
    ):
        _seed_credits(firestore_client)

        response = client.post(
            "/video/text2video",
            json={"model": "kling-1.6-hq", "prompt": "A paper boat on a canal"},
            headers=_auth(),
        )

        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "pending"
        definition = firestore_client.collections["video_generation_task_definitions"][
            body["taskId"]
        ]
        assert definition["user_id"] == "user-1"
        assert definition["credits"] == 2
        assert definition["high_quality"] is True
        statuses = list(
            firestore_client.collections["video_generation_task_statuses"].values()
        )
        assert len(statuses) == 1
        assert statuses[0]["task_id"] == body["taskId"]
        assert statuses[0]["external_task_id"] == "ext-new-1"
        assert provider.submitted[0][0] == "text"

    def test_requires_token(self, client):
        response = client.post("/video/text2video", json={"prompt": "x"})
        assert response.status_code == 401

    def test_rejects_invalid_token(self, client):
        response = client.post(
            "/video/text2video",
            json={"prompt": "x"},
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert response.status_code == 401

    def test_insufficient_credits(self, client, firestore_client, provider):
        _seed_credits(firestore_client, balance=1)

        response = client.post(
            "/video/text2video",
            json={"model": "kling-1.6-hq", "prompt": "x"},
            headers=_auth(),
        )

        assert response.status_code == 400
        assert provider.submitted == []

    @pytest.mark.parametrize("model", ["no-such-model", "kling-1.6-i2v"])
    def test_rejects_unsupported_model(self, client, firestore_client, model):
        _seed_credits(firestore_client)
        response = client.post(
            "/video/text2video", json={"model": model, "prompt": "x"}, headers=_auth()
        )
        assert response.status_code == 400

    def test_provider_failure_is_502_without_status_row(
        self, client, firestore_client, provider
    ):
        _seed_credits(firestore_client)
        provider.submit_error = ProviderUnavailable("Provider returned HTTP 500", 500)

        response = client.post(
            "/video/text2video", json={"prompt": "x"}, headers=_auth()
        )

        assert response.status_code == 502
        assert "video_generation_task_statuses" not in firestore_client.collections

    def test_image_to_video_stores_source_image(
        self, client, firestore_client, storage_client, provider
    ):
        _seed_credits(firestore_client)

        response = client.post(
            "/video/image2video",
            data={"prompt": "The statue turns its head", "model": "kling-1.6-i2v"},
            files={"input_image": ("statue.png", b"\x89PNG-bytes", "image/png")},
            headers=_auth(),
        )

        assert response.status_code == 200
        task_id = response.json()["taskId"]
        definition = firestore_client.collections["video_generation_task_definitions"][
            task_id
        ]
        assert definition["task_type"] == "i2v"
        assert definition["start_img_path"].startswith(
            "https://media.example.com/users/user-1/images/"
        )
        assert len(storage_client.bucket("media").objects) == 1
        kind, _, request = provider.submitted[0]
        assert kind == "image"
        assert request.image == b"\x89PNG-bytes"

    def test_image_to_video_without_credits_stores_nothing(
        self, client, firestore_client, storage_client, provider
    ):
        _seed_credits(firestore_client, balance=0)

        response = client.post(
            "/video/image2video",
            data={"prompt": "The statue turns its head", "model": "kling-1.6-i2v"},
            files={"input_image": ("statue.png", b"\x89PNG-bytes", "image/png")},
            headers=_auth(),
        )

        assert response.status_code == 400
        assert storage_client.bucket("media").objects == {}
        assert provider.submitted == []
        assert "video_generation_task_definitions" not in firestore_client.collections


class TestStatusRoutes:
    def test_owner_sees_status_with_definition(self, client, firestore_client):
        firestore_client.seed_definition("def-a")
        firestore_client.seed_status("a", status="processing")

        response = client.get("/video/status/ext-a", headers=_auth())

        body = response.json()
        assert response.status_code == 200
        assert body["status"]["status"] == "processing"
        assert body["definition"]["id"] == "def-a"

    def test_other_users_task_is_forbidden(self, client, firestore_client):
        firestore_client.seed_definition("def-a", user_id="someone-else")
        firestore_client.seed_status("a")

        response = client.get("/video/status/ext-a", headers=_auth())

        assert response.status_code == 403

    def test_unknown_task_is_404(self, client):
        response = client.get("/video/status/missing", headers=_auth())
        assert response.status_code == 404

    def test_latest_lists_completed_videos_newest_first(self, client, firestore_client):
        firestore_client.seed_definition("def-old", prompt="Old clip")
        firestore_client.seed_definition("def-new", prompt=None)
        firestore_client.seed_status(
            "old",
            task_id="def-old",
            status="completed",
            result_url="https://media.example.com/old.mp4",
            updated_at=NOW - timedelta(days=2),
        )
        firestore_client.seed_status(
            "new",
            task_id="def-new",
            status="completed",
            result_url="https://media.example.com/new.mp4",
            updated_at=NOW - timedelta(hours=1),
        )
        firestore_client.seed_status("running", status="processing")

        body = client.get("/video/latest").json()

        assert [video["id"] for video in body] == ["new", "old"]
        assert body[0]["title"] == "Untitled video"
        assert body[1]["title"] == "Old clip"
        assert body[1]["videoUrl"] == "https://media.example.com/old.mp4"


class TestMeRoutes:
    def test_creations_join_status_and_favourites(self, client, firestore_client):
        firestore_client.seed_definition(
            "def-a", prompt="A very long prompt about mountains at night"
        )
        firestore_client.seed_definition(
            "def-b",
            prompt="Short",
            start_img_path="https://media.example.com/b.png",
            created_at=NOW - timedelta(hours=3),
        )
        firestore_client.seed_definition("def-c", user_id="someone-else")
        firestore_client.seed_status(
            "a",
            status="completed",
            result_url="https://media.example.com/a.mp4",
            thumbnail_url="https://media.example.com/a.jpg",
        )
        firestore_client.seed_status("b", status="queued")
        firestore_client.seed(
            USER_FAVORITES, "user-1_def-a", user_id="user-1", task_id="def-a", created_at=NOW
        )

        creations = client.get("/me/creations", headers=_auth()).json()["data"]

        assert [creation["id"] for creation in creations] == ["def-a", "def-b"]
        first, second = creations
        assert first["title"] == "A very long prompt a..."
        assert first["status"] == "completed"
        assert first["url"] == "https://media.example.com/a.mp4"
        assert first["thumbnail_url"] == "https://media.example.com/a.jpg"
        assert first["is_favorite"] is True
        assert second["title"] == "Short"
        assert second["status"] == "processing"
        assert second["thumbnail_url"] == "https://media.example.com/b.png"
        assert second["is_favorite"] is False

    def test_credits_default_to_empty_balance(self, client):
        body = client.get("/me/credits", headers=_auth()).json()
        assert body["user_id"] == "user-1"
        assert body["credits_balance"] == 0

    def test_credits_from_store(self, client, firestore_client):
        _seed_credits(firestore_client, balance=12)
        body = client.get("/me/credits", headers=_auth()).json()
        assert body["credits_balance"] == 12

    def test_missing_subscription_is_404(self, client):
        assert client.get("/me/subscription", headers=_auth()).status_code == 404

    def test_latest_subscription(self, client, firestore_client):
        firestore_client.seed(
            USER_SUBSCRIPTIONS,
            "sub-1",
            user_id="user-1",
            plan_type="pro",
            status="active",
            credits_per_period=100,
            start_date=NOW,
            end_date=NOW + timedelta(days=30),
            next_renewal_date=NOW + timedelta(days=30),
            created_at=NOW,
            updated_at=NOW,
        )

        body = client.get("/me/subscription", headers=_auth()).json()

        assert body["id"] == "sub-1"
        assert body["plan_type"] == "pro"

    def test_add_and_remove_favourite(self, client, firestore_client):
        firestore_client.seed_definition("def-a")

        added = client.post("/me/favorites/def-a", headers=_auth())
        assert added.status_code == 200
        assert "user-1_def-a" in firestore_client.collections[USER_FAVORITES]

        removed = client.delete("/me/favorites/def-a", headers=_auth())
        assert removed.json() == {"task_id": "def-a", "is_favorite": False}
        assert firestore_client.collections[USER_FAVORITES] == {}

    def test_cannot_favourite_someone_elses_task(self, client, firestore_client):
        firestore_client.seed_definition("def-a", user_id="someone-else")
        response = client.post("/me/favorites/def-a", headers=_auth())
        assert response.status_code == 404
