import logging
from traceback import format_exc
from typing import Any, Dict, Optional

import requests
from pydantic import ValidationError

from app.models.provider import GenerationModel, ProviderTaskPayload
from app.services.errors import ProviderUnavailable, SchemaMismatch, TaskValidationError
from app.services.provider.common import (
    ImageToVideoRequest,
    TextToVideoRequest,
    VideoProviderService,
)
from config import ProviderSettings, get_provider_settings

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class Kling302ProviderService(VideoProviderService):
    """Kling models re-sold through the 302.ai gateway."""

    STATUS_PATH = "klingai/task/{task_id}/fetch"

    def __init__(
        self,
        settings: ProviderSettings,
        session: Optional[requests.Session] = None,
    ):
        self.settings = settings
        self.session = session or requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.settings.base_url}/{path.lstrip('/')}"

    def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        """Send a request to the gateway and return the parsed JSON body.

        Every transport-level failure, including timeouts, non-2xx answers and
        bodies that are not JSON, surfaces as ProviderUnavailable.
        """
        headers = kwargs.pop("headers", {})
        headers["Authorization"] = f"Bearer {self.settings.api_key}"

        try:
            response = self.session.request(
                method, url, headers=headers, timeout=self.settings.timeout, **kwargs
            )
        except requests.Timeout as e:
            logger.warning(f"Provider request timed out: {method} {url}")
            raise ProviderUnavailable(f"Provider request timed out: {str(e)}")
        except requests.RequestException as e:
            logger.error(f"Provider request failed: {str(e)}\n{format_exc()}")
            raise ProviderUnavailable(f"Provider request failed: {str(e)}")

        if not 200 <= response.status_code < 300:
            logger.error(
                f"Provider returned HTTP {response.status_code} for {method} {url}: "
                f"{response.text[:200]}"
            )
            raise ProviderUnavailable(
                f"Provider returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Provider returned invalid JSON for {method} {url}")
            raise ProviderUnavailable(f"Provider returned invalid JSON: {str(e)}")

    @staticmethod
    def _decode(body: Dict[str, Any]) -> ProviderTaskPayload:
        try:
            return ProviderTaskPayload.model_validate(body)
        except ValidationError as e:
            raise SchemaMismatch(f"Unexpected provider response: {str(e)}")

    def fetch_status(self, external_task_id: str) -> ProviderTaskPayload:
        if not external_task_id or not external_task_id.strip():
            raise TaskValidationError("External task ID is empty")

        url = self._url(self.STATUS_PATH.format(task_id=external_task_id))
        payload = self._decode(self._request("GET", url))

        if payload.status_code is None:
            raise SchemaMismatch(
                f"Provider response for {external_task_id} carries no status code"
            )
        return payload

    def _submission_task_id(self, body: Dict[str, Any]) -> str:
        payload = self._decode(body)
        if payload.data.task is None or not payload.data.task.id:
            raise SchemaMismatch("Provider response carries no data.task.id")
        return payload.data.task.id

    def submit_text_to_video(
        self, model: GenerationModel, request: TextToVideoRequest
    ) -> str:
        body = self._request(
            "POST",
            self._url(model.endpoint),
            json={
                "prompt": request.prompt,
                "negative_prompt": request.negative_prompt,
                "cfg": request.cfg,
                "aspect_ratio": request.aspect_ratio,
            },
        )
        task_id = self._submission_task_id(body)
        logger.info(f"Submitted text-to-video task {task_id} to {model.endpoint}")
        return task_id

    def submit_image_to_video(
        self, model: GenerationModel, request: ImageToVideoRequest
    ) -> str:
        form = {"prompt": request.prompt, "cfg": str(request.cfg)}
        if request.negative_prompt:
            form["negative_prompt"] = request.negative_prompt

        body = self._request(
            "POST",
            self._url(model.endpoint),
            data=form,
            files={
                "input_image": (
                    request.filename,
                    request.image,
                    request.content_type,
                )
            },
        )
        task_id = self._submission_task_id(body)
        logger.info(f"Submitted image-to-video task {task_id} to {model.endpoint}")
        return task_id


# Global service instance
_provider_service = None


def get_provider_service() -> VideoProviderService:
    """Get a singleton provider client built from process configuration."""
    global _provider_service
    if _provider_service is None:
        _provider_service = Kling302ProviderService(get_provider_settings())
    return _provider_service
