"""Client for the vehicle-counting inference API."""

from typing import Dict, Sequence

import httpx
from pydantic import BaseModel, Field, ValidationError

from ..acquisition.fetcher import CameraImage
from ..errors import InferenceError
from ..utils.logger import logger as LOGGER

HEALTH_PATH = "/api/health/"
INFERENCE_PATH = "/api/inference/"


class HealthResponse(BaseModel):
    message: str = ""


class InferenceResponse(BaseModel):
    vehicle_counts: Dict[str, int] = Field(
        ..., description="Vehicle count per uploaded image name."
    )


class InferenceClient:
    """Uploads camera images and returns vehicle counts per image name."""

    def __init__(self, client: httpx.AsyncClient, base_url: str, timeout: float = 60.0):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def health_endpoint(self) -> str:
        return self.base_url + HEALTH_PATH

    @property
    def inference_endpoint(self) -> str:
        return self.base_url + INFERENCE_PATH

    async def health(self) -> bool:
        """Return True if the API answers its health check."""
        try:
            response = await self.client.get(self.health_endpoint, timeout=self.timeout)
            response.raise_for_status()
            payload = HealthResponse.model_validate(response.json())
        except (httpx.HTTPError, ValueError, ValidationError) as e:
            LOGGER.error(f"Health check against {self.health_endpoint} failed: {e}")
            return False

        return "API is up" in payload.message

    async def count_vehicles(self, images: Sequence[CameraImage]) -> Dict[str, int]:
        """Submit images in one multipart request.

        Raises:
            InferenceError: On transport errors, error statuses or an invalid response body.
        """
        if not images:
            return {}

        files = [("images", (image.name, image.data, image.content_type)) for image in images]

        try:
            response = await self.client.post(self.inference_endpoint, files=files, timeout=self.timeout)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise InferenceError(f"Inference request failed: {e}") from e

        try:
            payload = InferenceResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise InferenceError(f"Invalid inference response: {e}") from e

        negative = {name: count for name, count in payload.vehicle_counts.items() if count < 0}
        if negative:
            raise InferenceError(f"Inference returned negative counts: {negative}")

        return payload.vehicle_counts
