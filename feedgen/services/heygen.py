"""HeyGen avatar video client: asynchronous submit plus status and listing endpoints."""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, List, Optional

from ..config import DEFAULT_HEYGEN_AVATAR_ID, DEFAULT_HEYGEN_VOICE_ID
from ..errors import ProviderError
from ..types import ContentType, GenerationRequest, Provider
from ..utils.files import sha256_hex
from .base import request_json

DEFAULT_HEYGEN_URL = "https://api.heygen.com"
CALLBACK_PREFIX = "feedgen"


def make_callback_id(item_id: str, timestamp_ms: int) -> str:
    """Tracking id sent with each job and echoed back by list and webhook payloads."""
    return f"{CALLBACK_PREFIX}_{item_id}_{timestamp_ms}"


class HeyGenClient:
    """Submits avatar videos and queries their progress.

    ``submit`` only returns a job handle; the finished video is discovered
    later through :meth:`check_status`, :meth:`list_jobs` or a webhook.
    """

    name = Provider.HEYGEN.value

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        avatar_id: str = DEFAULT_HEYGEN_AVATAR_ID,
        voice_id: str = DEFAULT_HEYGEN_VOICE_ID,
        use_mock: bool = True,
        timeout: int = 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._api_key = api_key
        self._api_url = api_url or DEFAULT_HEYGEN_URL
        self._avatar_id = avatar_id
        self._voice_id = voice_id
        self._use_mock = use_mock
        self._timeout = timeout
        self._clock = clock
        self._mock_jobs: Dict[str, str] = {}

    def submit(self, request: GenerationRequest) -> Dict[str, Any]:
        """Start an avatar video job; the payload carries ``data.video_id``."""
        if request.content_type is not ContentType.VIDEO:
            raise ProviderError(self.name, f"HeyGen only renders video, got {request.content_type.value}.")

        callback_id = make_callback_id(request.item_id, int(self._clock() * 1000))
        body = self._build_body(request, callback_id)
        if self._use_mock:
            return self._mock_submit(request, callback_id)

        self._ensure_api_ready()
        response = request_json(
            self.name,
            "POST",
            self._resolve_endpoint("v2/video/generate"),
            headers=self._headers(),
            timeout=self._timeout,
            payload=body,
        )
        self._raise_for_api_error(response)
        response.setdefault("callback_id", callback_id)
        return response

    def check_status(self, job_id: str) -> Dict[str, Any]:
        """Return the raw ``video_status.get`` payload for one job."""
        if self._use_mock:
            return {
                "code": 100,
                "data": {
                    "id": job_id,
                    "status": "completed",
                    "video_url": self._mock_video_url(job_id),
                    "callback_id": self._mock_jobs.get(job_id),
                },
            }

        self._ensure_api_ready()
        response = request_json(
            self.name,
            "GET",
            self._resolve_endpoint("v1/video_status.get"),
            headers=self._headers(),
            timeout=self._timeout,
            params={"video_id": job_id},
        )
        self._raise_for_api_error(response)
        return response

    def list_jobs(self) -> List[Dict[str, Any]]:
        """Return every job the account knows about, newest first as HeyGen orders them."""
        if self._use_mock:
            return [
                {
                    "video_id": job_id,
                    "status": "completed",
                    "video_url": self._mock_video_url(job_id),
                    "callback_id": callback_id,
                }
                for job_id, callback_id in self._mock_jobs.items()
            ]

        self._ensure_api_ready()
        response = request_json(
            self.name,
            "GET",
            self._resolve_endpoint("v1/video.list"),
            headers=self._headers(),
            timeout=self._timeout,
        )
        self._raise_for_api_error(response)
        data = response.get("data")
        videos = data.get("videos") if isinstance(data, dict) else None
        if not isinstance(videos, list):
            return []
        return [video for video in videos if isinstance(video, dict)]

    def share_url(self, job_id: str) -> Optional[str]:
        """Exchange a finished job for a public share link.

        ``video_url`` values from the status endpoints are signed and expire;
        the share link does not. Returns ``None`` when the response carries no
        link.
        """
        if self._use_mock:
            return f"https://mock.feedgen.local/heygen/share/{job_id}.mp4"

        self._ensure_api_ready()
        response = request_json(
            self.name,
            "POST",
            self._resolve_endpoint("v1/video/share"),
            headers=self._headers(),
            timeout=self._timeout,
            payload={"video_id": job_id},
        )
        self._raise_for_api_error(response)
        data = response.get("data")
        if isinstance(data, dict):
            data = data.get("share_url") or data.get("url")
        if isinstance(data, str) and data.strip():
            return data.strip()
        return None

    def _build_body(self, request: GenerationRequest, callback_id: str) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "video_inputs": [
                {
                    "character": {
                        "type": "avatar",
                        "avatar_id": self._avatar_id,
                        "avatar_style": "normal",
                    },
                    "voice": {
                        "type": "text",
                        "input_text": request.instruction,
                        "voice_id": self._voice_id,
                    },
                    "background": {"type": "color", "value": "#000000"},
                }
            ],
            "title": f"{request.item_name or request.item_id} - {request.channel}",
            "callback_id": callback_id,
        }
        spec = request.format_spec
        if spec.width and spec.height:
            body["dimension"] = {"width": spec.width, "height": spec.height}
        return body

    def _ensure_api_ready(self) -> None:
        if not self._api_key:
            raise ProviderError(self.name, "HeyGen API key is missing; cannot call service.")

    def _headers(self) -> Dict[str, str]:
        return {
            "X-Api-Key": self._api_key or "",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    def _resolve_endpoint(self, path: str) -> str:
        base = (self._api_url or "").rstrip("/")
        return f"{base}/{path.lstrip('/')}"

    def _raise_for_api_error(self, response: Dict[str, Any]) -> None:
        error = response.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else error
            raise ProviderError(self.name, f"API error: {message}")
        code = response.get("code")
        if code is not None and str(code) not in {"0", "100"}:
            message = response.get("message") or response.get("msg") or "Unknown error"
            raise ProviderError(self.name, f"API error [{code}]: {message}")

    def _mock_submit(self, request: GenerationRequest, callback_id: str) -> Dict[str, Any]:
        job_id = sha256_hex(f"{request.item_id}|{callback_id}".encode("utf-8"))[:32]
        self._mock_jobs[job_id] = callback_id
        return {"error": None, "data": {"video_id": job_id}, "callback_id": callback_id}

    @staticmethod
    def _mock_video_url(job_id: str) -> str:
        return f"https://mock.feedgen.local/heygen/{job_id}.mp4"
