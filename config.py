import os

from dotenv import load_dotenv
from pydantic import BaseModel

# Load environment variables from .env file
load_dotenv()

# Environment configuration
ENV = os.getenv("KARAVIDEO_ENV", "p").lower()
if ENV not in ["d", "p"]:
    raise ValueError("KARAVIDEO_ENV must be either 'd' (development) or 'p' (production)")

# API Keys
AUTH_JWT_KEY = os.getenv("KARAVIDEO_AUTH_JWT_KEY")
if not AUTH_JWT_KEY:
    raise ValueError("KARAVIDEO_AUTH_JWT_KEY environment variable is not set")

API_302_KEY = os.getenv("KARAVIDEO_302_API_KEY")
if not API_302_KEY:
    raise ValueError("KARAVIDEO_302_API_KEY environment variable is not set")

API_302_BASE_URL = os.getenv("KARAVIDEO_302_BASE_URL", "https://api.302.ai").rstrip("/")

# Per-call timeout of provider requests, in seconds
PROVIDER_TIMEOUT_SECONDS = float(os.getenv("KARAVIDEO_PROVIDER_TIMEOUT", "30"))

# Reconciliation
RECONCILE_CONCURRENCY = int(os.getenv("KARAVIDEO_RECONCILE_CONCURRENCY", "5"))
if RECONCILE_CONCURRENCY < 1:
    raise ValueError("KARAVIDEO_RECONCILE_CONCURRENCY must be at least 1")

STALE_PROCESSING_HOURS = float(os.getenv("KARAVIDEO_STALE_PROCESSING_HOURS", "24"))
QUEUED_PROMOTION_HOURS = float(os.getenv("KARAVIDEO_QUEUED_PROMOTION_HOURS", "6"))

# Firestore
FIRESTORE_DATABASE_NAME = os.getenv("KARAVIDEO_FIRESTORE_DATABASE", "(default)")

# Google Cloud Storage
GCLOUD_STB_MEDIA_NAME = os.getenv("KARAVIDEO_STORAGE_BUCKET", "karavideo")
GCLOUD_STB_MEDIA_PUBLIC_URL = os.getenv(
    "KARAVIDEO_STORAGE_PUBLIC_URL",
    f"https://storage.googleapis.com/{GCLOUD_STB_MEDIA_NAME}",
).rstrip("/")

# Project root directory
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))


class ProviderSettings(BaseModel):
    """Credentials and endpoint of the video generation gateway."""

    api_key: str
    base_url: str
    timeout: float


class ReconcileSettings(BaseModel):
    max_concurrency: int
    stale_processing_hours: float
    queued_promotion_hours: float = 6


class StorageSettings(BaseModel):
    bucket_name: str
    public_url: str


def get_provider_settings() -> ProviderSettings:
    return ProviderSettings(
        api_key=API_302_KEY,
        base_url=API_302_BASE_URL,
        timeout=PROVIDER_TIMEOUT_SECONDS,
    )


def get_reconcile_settings() -> ReconcileSettings:
    return ReconcileSettings(
        max_concurrency=RECONCILE_CONCURRENCY,
        stale_processing_hours=STALE_PROCESSING_HOURS,
        queued_promotion_hours=QUEUED_PROMOTION_HOURS,
    )


def get_storage_settings() -> StorageSettings:
    return StorageSettings(
        bucket_name=GCLOUD_STB_MEDIA_NAME,
        public_url=GCLOUD_STB_MEDIA_PUBLIC_URL,
    )
