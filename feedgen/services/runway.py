"""RunwayML client for reference-image driven image and video generation."""

from __future__ import annotations

import re
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from ..errors import ProviderError
from ..types import ContentType, GenerationRequest, Provider
from ..utils.files import sha256_hex
from .base import request_json

RUNWAY_MODEL = "gen3a_turbo"
RUNWAY_API_VERSION = "2024-11-06"
DEFAULT_RUNWAY_URL = "https://api.runwayml.com/v1"
MAX_ASSET_URL_LENGTH = 2048
_IP_HOST_PATTERN = re.compile(r"^\d{1,3}(\.\d{1,3}){3}$")


def is_valid_reference_url(url: Optional[str]) -> bool:
    """Check the URL shape Runway accepts for reference assets.

    Only the format is validated; the asset itself is never fetched.
    """
    if not url or len(url) > MAX_ASSET_URL_LENGTH:
        return False
    parsed = urlparse(url)
    if parsed.scheme != "https" or not parsed.hostname:
        return False
    return not _IP_HOST_PATTERN.match(parsed.hostname)


class RunwayClient:
    """Handles communication with RunwayML's generation endpoints.

    When ``use_mock`` is True the client returns deterministic payloads shaped
    like a finished Runway task so batches remain testable offline.
    """

    name = Provider.RUNWAY.value

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        use_mock: bool = True,
        timeout: int = 60,
    ) -> None:
        self._api_key = api_key
        self._api_url = api_url or DEFAULT_RUNWAY_URL
        self._use_mock = use_mock
        self._timeout = timeout

    def submit(self, request: GenerationRequest) -> Dict[str, Any]:
        """Submit one image or video generation and return the raw task payload."""
        if request.content_type is ContentType.TEXT:
            raise ProviderError(self.name, "Runway does not generate text content.")

        body = self._build_body(request)
        if self._use_mock:
            return self._mock_response(request, body)
        if not self._api_key:
            raise ProviderError(self.name, "RunwayML API key is missing; cannot call service.")

        kind = "video" if request.content_type is ContentType.VIDEO else "image"
        return request_json(
            self.name,
            "POST",
            self._resolve_endpoint(f"{kind}/generations"),
            headers=self._headers(),
            timeout=self._timeout,
            payload=body,
        )

    def _build_body(self, request: GenerationRequest) -> Dict[str, Any]:
        spec = request.format_spec
        body: Dict[str, Any] = {
            "prompt": self._compose_prompt(request),
            "model": RUNWAY_MODEL,
            "aspect_ratio": spec.aspect_ratio or "16:9",
            "watermark": False,
        }
        if spec.width and spec.height:
            body["width"] = spec.width
            body["height"] = spec.height
        if request.content_type is ContentType.VIDEO:
            body["duration"] = spec.duration_sec or 5
        if is_valid_reference_url(request.reference_image_url):
            body["image"] = request.reference_image_url
        return body

    @staticmethod
    def _compose_prompt(request: GenerationRequest) -> str:
        parts = [request.instruction.strip()]
        if request.item_name:
            parts.append(f"Product: {request.item_name}.")
        if request.item_description:
            parts.append(request.item_description.strip())
        return " ".join(part for part in parts if part)

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "X-Runway-Version": RUNWAY_API_VERSION,
        }

    def _resolve_endpoint(self, path: str) -> str:
        base = (self._api_url or "").rstrip("/")
        return f"{base}/{path.lstrip('/')}"

    def _mock_response(self, request: GenerationRequest, body: Dict[str, Any]) -> Dict[str, Any]:
        task_id = sha256_hex(f"{request.item_id}|{body['prompt']}".encode("utf-8"))[:24]
        ext = "mp4" if request.content_type is ContentType.VIDEO else "png"
        return {
            "id": task_id,
            "status": "SUCCEEDED",
            "output": [f"https://mock.feedgen.local/runway/{task_id}.{ext}"],
            "request": body,
        }
