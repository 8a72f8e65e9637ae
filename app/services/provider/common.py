from abc import ABC, abstractmethod
from typing import Dict, Optional

from pydantic import BaseModel

from app.models.provider import GenerationModel, ProviderTaskPayload
from app.models.shared import TaskType

# Models offered to users, keyed by the identifier stored on task definitions.
GENERATION_MODELS: Dict[str, GenerationModel] = {
    "kling-1.6": GenerationModel(
        name="Text to Video 1.6 Standard-5s",
        endpoint="klingai/m2v_16_txt2video_5s",
        task_type=TaskType.TEXT_TO_VIDEO.value,
        duration=5,
        high_quality=False,
        credits=1,
    ),
    "kling-1.6-hq": GenerationModel(
        name="Text to Video 1.6 HQ-5s",
        endpoint="klingai/m2v_16_txt2video_hq_5s",
        task_type=TaskType.TEXT_TO_VIDEO.value,
        duration=5,
        high_quality=True,
        credits=2,
    ),
    "kling-1.6-i2v": GenerationModel(
        name="Image to Video 1.6 Standard-5s",
        endpoint="klingai/m2v_16_img2video_5s",
        task_type=TaskType.IMAGE_TO_VIDEO.value,
        duration=5,
        high_quality=False,
        credits=2,
    ),
    "kling-1.6-i2v-hq-10s": GenerationModel(
        name="Image to Video 1.6 HQ-10s",
        endpoint="klingai/m2v_16_img2video_hq_10s",
        task_type=TaskType.IMAGE_TO_VIDEO.value,
        duration=10,
        high_quality=True,
        credits=6,
    ),
}

DEFAULT_CFG = 0.3
DEFAULT_ASPECT_RATIO = "1:1"


class TextToVideoRequest(BaseModel):
    prompt: str
    negative_prompt: str = ""
    cfg: float = DEFAULT_CFG
    aspect_ratio: str = DEFAULT_ASPECT_RATIO


class ImageToVideoRequest(BaseModel):
    image: bytes
    filename: str = "input.png"
    content_type: str = "image/png"
    prompt: str
    negative_prompt: str = ""
    cfg: float = DEFAULT_CFG


class VideoProviderService(ABC):
    """Abstract base class for video generation providers."""

    @abstractmethod
    def fetch_status(self, external_task_id: str) -> ProviderTaskPayload:
        """Fetch the current state of a task from the provider."""
        pass

    @abstractmethod
    def submit_text_to_video(
        self, model: GenerationModel, request: TextToVideoRequest
    ) -> str:
        """Submit a text-to-video job and return the provider task ID."""
        pass

    @abstractmethod
    def submit_image_to_video(
        self, model: GenerationModel, request: ImageToVideoRequest
    ) -> str:
        """Submit an image-to-video job and return the provider task ID."""
        pass


def get_generation_model(model_id: str) -> Optional[GenerationModel]:
    return GENERATION_MODELS.get(model_id)
