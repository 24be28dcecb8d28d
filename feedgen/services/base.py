"""Provider adapter protocols and the shared JSON transport."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Protocol

import requests

from ..errors import ProviderError
from ..types import GenerationRequest


class ProviderAdapter(Protocol):
    """Wraps one external generation API behind a single submit call."""

    name: str

    def submit(self, request: GenerationRequest) -> Dict[str, Any]:
        ...


class JobStatusSource(Protocol):
    """Status endpoints of an asynchronous provider."""

    name: str

    def check_status(self, job_id: str) -> Dict[str, Any]:
        ...

    def list_jobs(self) -> List[Dict[str, Any]]:
        ...

    def share_url(self, job_id: str) -> Optional[str]:
        ...


def request_json(
    provider: str,
    method: str,
    url: str,
    *,
    headers: Mapping[str, str],
    timeout: float,
    payload: Optional[dict] = None,
    params: Optional[dict] = None,
) -> Dict[str, Any]:
    """Issue exactly one HTTP call and return the decoded JSON body.

    Transport failures, non-2xx responses and undecodable bodies all surface
    as :class:`ProviderError`.
    """
    try:
        response = requests.request(
            method,
            url,
            json=payload,
            params=params,
            headers=dict(headers),
            timeout=timeout,
        )
    except requests.Timeout as exc:
        raise ProviderError(provider, exc, timed_out=True) from exc
    except requests.RequestException as exc:
        raise ProviderError(provider, exc) from exc

    if not response.ok:
        detail = (response.text or "").strip()[:500] or response.reason
        raise ProviderError(provider, f"HTTP {response.status_code}: {detail}")

    try:
        body = response.json()
    except ValueError as exc:
        raise ProviderError(provider, f"invalid JSON response: {exc}") from exc
    if not isinstance(body, dict):
        raise ProviderError(provider, f"unexpected JSON payload type {type(body).__name__}")
    return body
